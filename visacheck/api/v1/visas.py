from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from visacheck.core.visa_catalog import get_visa_catalog
from visacheck.schemas.visa import CountrySummary, CountryVisaTypesResponse, VisaSearchHit, VisaTypeDefinition

router = APIRouter()


@router.get("/countries", response_model=list[CountrySummary])
async def list_countries():
    return get_visa_catalog().countries()


@router.get("/countries/{country_code}", response_model=CountryVisaTypesResponse)
async def get_country(country_code: str):
    visa_types = get_visa_catalog().for_country(country_code)
    if not visa_types:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Country not found.")
    return CountryVisaTypesResponse(
        country_code=visa_types[0].country_code,
        country_name=visa_types[0].country_name,
        visa_types=visa_types,
    )


@router.get("/countries/{country_code}/visa-types/{visa_type_id}", response_model=VisaTypeDefinition)
async def get_visa_type(country_code: str, visa_type_id: str):
    visa_type = get_visa_catalog().find(country_code, visa_type_id)
    if visa_type is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Visa type not found.")
    return visa_type


@router.get("/visa-types/search", response_model=list[VisaSearchHit])
async def search_visa_types(q: str = Query(default="", max_length=100)):
    if not q.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required.")
    return [
        VisaSearchHit(
            country_code=visa.country_code,
            country_name=visa.country_name,
            visa_type_id=visa.visa_type_id,
            visa_name=visa.visa_name,
            description=visa.description,
            max_score_cap=visa.max_score_cap,
        )
        for visa in get_visa_catalog().search(q)
    ]
