from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from visacheck.ai.types import AIClient
from visacheck.core.config import settings
from visacheck.core.evaluation_store import EvaluationStore, EvaluationStoreError, get_evaluation_store
from visacheck.integrations.email import send_evaluation_results, smtp_ready
from visacheck.parsing.models import DocumentUpload
from visacheck.schemas.evaluation import (
    EmailResultsRequest,
    EmailResultsResponse,
    EvaluationCreateResponse,
    EvaluationHistoryResponse,
    EvaluationRecord,
    EvaluationSubmission,
)
from visacheck.schemas.visa import DOCUMENT_KINDS
from visacheck.services.evaluation_service import VisaTypeNotFoundError, submit_evaluation
from visacheck.services.reporting import render_text_report

router = APIRouter()

_READ_CHUNK_BYTES = 1024 * 64


def get_oracle(request: Request) -> AIClient | None:
    return getattr(request.app.state, "oracle", None)


def _normalize_kind(kinds: list[str], index: int) -> str:
    if index >= len(kinds):
        return "other"
    kind = (kinds[index] or "").strip().lower()
    return kind if kind in DOCUMENT_KINDS else "other"


async def _read_upload(upload: UploadFile) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > settings.max_upload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=(
                    f"File '{upload.filename}' is too large. "
                    f"Maximum allowed size is {settings.max_upload_bytes // (1024 * 1024)} MB."
                ),
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def _collect_uploads(files: list[UploadFile], kinds: list[str]) -> list[DocumentUpload]:
    if len(files) > settings.max_upload_files:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Too many documents. Maximum allowed is {settings.max_upload_files}.",
        )
    uploads: list[DocumentUpload] = []
    for index, upload in enumerate(files):
        content = await _read_upload(upload)
        uploads.append(
            DocumentUpload(
                file_name=upload.filename or f"document-{index + 1}",
                declared_kind=_normalize_kind(kinds, index),
                content=content,
            )
        )
    return uploads


def _load_record(store: EvaluationStore, evaluation_id: str) -> EvaluationRecord:
    record = store.get(evaluation_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Evaluation not found.")
    return record


@router.post(
    "/evaluations",
    response_model=EvaluationCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_evaluation(
    first_name: str = Form(...),
    last_name: str = Form(...),
    email: str = Form(...),
    current_location: str = Form(...),
    professional_summary: str = Form(...),
    target_country: str = Form(...),
    visa_type: str = Form(...),
    visa_type_id: str = Form(...),
    phone: str | None = Form(default=None),
    documents: list[UploadFile] | None = File(default=None),
    document_kinds: list[str] | None = Form(default=None),
    store: EvaluationStore = Depends(get_evaluation_store),
    oracle: AIClient | None = Depends(get_oracle),
):
    try:
        submission = EvaluationSubmission(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            current_location=current_location,
            professional_summary=professional_summary,
            target_country=target_country,
            visa_type=visa_type,
            visa_type_id=visa_type_id,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc

    uploads = await _collect_uploads(documents or [], document_kinds or [])

    try:
        record = await submit_evaluation(submission, uploads, store=store, oracle=oracle)
    except VisaTypeNotFoundError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    except EvaluationStoreError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    return EvaluationCreateResponse(
        evaluation_id=record.evaluation_id,
        email=record.applicant.email,
        status=record.status,
        score=record.result.final_score,
        score_category=record.result.category,
        evaluation_source=record.result.evaluation_source,
        message="Evaluation completed successfully",
    )


@router.get("/evaluations/user/{email}", response_model=EvaluationHistoryResponse)
async def list_user_evaluations(email: str, store: EvaluationStore = Depends(get_evaluation_store)):
    items = store.list_for_email(email, limit=20)
    return EvaluationHistoryResponse(evaluations=items, count=len(items))


@router.get("/evaluations/{evaluation_id}", response_model=EvaluationRecord)
async def get_evaluation(evaluation_id: str, store: EvaluationStore = Depends(get_evaluation_store)):
    return _load_record(store, evaluation_id)


@router.get("/evaluations/{evaluation_id}/report", response_class=PlainTextResponse)
async def get_evaluation_report(evaluation_id: str, store: EvaluationStore = Depends(get_evaluation_store)):
    record = _load_record(store, evaluation_id)
    return PlainTextResponse(render_text_report(record))


@router.post("/evaluations/{evaluation_id}/email-results", response_model=EmailResultsResponse)
async def email_evaluation_results(
    evaluation_id: str,
    payload: EmailResultsRequest,
    store: EvaluationStore = Depends(get_evaluation_store),
):
    record = _load_record(store, evaluation_id)
    if payload.email != record.applicant.email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email does not match the evaluation record.",
        )
    if not smtp_ready():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Email delivery is not configured.",
        )

    sent = await asyncio.to_thread(send_evaluation_results, record, payload.email)
    if not sent:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to send the email. Please try again later.",
        )
    return EmailResultsResponse(status="sent", message=f"Results sent to {payload.email}")
