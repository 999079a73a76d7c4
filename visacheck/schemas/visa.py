from __future__ import annotations

from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EducationLevel = Literal["high_school", "bachelor", "master", "phd"]
LanguageLevel = Literal["a1", "a2", "b1", "b2", "c1", "c2"]
DocumentKind = Literal[
    "resume",
    "education",
    "experience",
    "personal_statement",
    "language_certificate",
    "other",
]

EDUCATION_ORDER: tuple[EducationLevel, ...] = ("high_school", "bachelor", "master", "phd")
CEFR_ORDER: tuple[LanguageLevel, ...] = ("a1", "a2", "b1", "b2", "c1", "c2")
DOCUMENT_KINDS: tuple[str, ...] = get_args(DocumentKind)


class RequiredDocument(BaseModel):
    document_type: DocumentKind
    is_required: bool = True
    description: str = ""


class EligibilityCriteria(BaseModel):
    min_experience_years: int = Field(ge=0)
    min_education_level: EducationLevel
    specializations: list[str] = Field(default_factory=list)
    language_requirement: LanguageLevel = "b1"
    minimum_salary: int | None = Field(default=None, ge=0)

    @field_validator("min_education_level", "language_requirement", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("specializations")
    @classmethod
    def _normalize_specializations(cls, value: list[str]) -> list[str]:
        return [item.strip().lower() for item in value if item and item.strip()]


class ScoringWeights(BaseModel):
    experience: int = Field(ge=0, le=100)
    education: int = Field(ge=0, le=100)
    specialization: int = Field(ge=0, le=100)
    language: int = Field(ge=0, le=100)
    document_quality: int = Field(ge=0, le=100)

    def total(self) -> int:
        return self.experience + self.education + self.specialization + self.language + self.document_quality

    @model_validator(mode="after")
    def _validate_total(self):
        total = self.total()
        if total != 100:
            raise ValueError(f"scoring weights must sum to 100 (got {total})")
        return self


class VisaTypeDefinition(BaseModel):
    """Reference data for one visa type; read-only during an evaluation."""

    model_config = ConfigDict(frozen=True)

    country_code: str = Field(min_length=2, max_length=3)
    country_name: str
    visa_type_id: str = Field(min_length=1)
    visa_name: str
    description: str = ""
    required_documents: list[RequiredDocument] = Field(default_factory=list)
    eligibility_criteria: EligibilityCriteria
    scoring_weights: ScoringWeights
    max_score_cap: int = Field(default=85, ge=0, le=100)
    processing_time_weeks: int | None = Field(default=None, ge=0)
    success_rate_percent: int | None = Field(default=None, ge=0, le=100)
    official_link: str | None = None

    @field_validator("country_code")
    @classmethod
    def _upper_country(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("visa_type_id")
    @classmethod
    def _lower_visa_id(cls, value: str) -> str:
        return value.strip().lower()

    def required_document_kinds(self) -> set[str]:
        return {doc.document_type for doc in self.required_documents if doc.is_required}


class VisaTypeSummary(BaseModel):
    visa_type_id: str
    visa_name: str
    description: str
    required_documents: list[RequiredDocument] = Field(default_factory=list)
    min_experience_years: int
    min_education_level: EducationLevel
    max_score_cap: int
    processing_time_weeks: int | None = None
    success_rate_percent: int | None = None


class CountrySummary(BaseModel):
    country_code: str
    country_name: str
    visa_types: list[VisaTypeSummary] = Field(default_factory=list)


class CountryVisaTypesResponse(BaseModel):
    country_code: str
    country_name: str
    visa_types: list[VisaTypeDefinition] = Field(default_factory=list)


class VisaSearchHit(BaseModel):
    country_code: str
    country_name: str
    visa_type_id: str
    visa_name: str
    description: str
    max_score_cap: int


def summarize_visa_type(visa_type: VisaTypeDefinition) -> VisaTypeSummary:
    return VisaTypeSummary(
        visa_type_id=visa_type.visa_type_id,
        visa_name=visa_type.visa_name,
        description=visa_type.description,
        required_documents=list(visa_type.required_documents),
        min_experience_years=visa_type.eligibility_criteria.min_experience_years,
        min_education_level=visa_type.eligibility_criteria.min_education_level,
        max_score_cap=visa_type.max_score_cap,
        processing_time_weeks=visa_type.processing_time_weeks,
        success_rate_percent=visa_type.success_rate_percent,
    )
