from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from visacheck.ai.types import AIClient
from visacheck.core.evaluation_store import EvaluationStore, expiry_for, new_evaluation_id, utc_now
from visacheck.core.visa_catalog import VisaCatalog, get_visa_catalog
from visacheck.parsing.models import DocumentUpload, ParsedDocument
from visacheck.parsing.parse import extract_documents
from visacheck.schemas.evaluation import (
    EvaluationRecord,
    EvaluationResult,
    EvaluationSubmission,
    UploadedDocumentMeta,
)
from visacheck.schemas.visa import VisaTypeDefinition
from visacheck.services.criteria_evaluator import evaluate_criteria
from visacheck.services.insights import build_reasoning, generate_insights
from visacheck.services.scoring import score_assessments

logger = logging.getLogger(__name__)


class VisaTypeNotFoundError(RuntimeError):
    def __init__(self, message: str, status_code: int = 404):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PipelineOutput:
    result: EvaluationResult
    documents: tuple[ParsedDocument, ...]


def resolve_visa_type(
    target_country: str,
    visa_type_id: str,
    catalog: VisaCatalog | None = None,
) -> VisaTypeDefinition:
    catalog = catalog or get_visa_catalog()
    visa_type = catalog.find(target_country, visa_type_id)
    if visa_type is None:
        # Accept the country name as well as its code.
        country = (target_country or "").strip().lower()
        for candidate in catalog.visa_types:
            if candidate.country_name.lower() == country:
                visa_type = catalog.find(candidate.country_code, visa_type_id)
                break
    if visa_type is None:
        raise VisaTypeNotFoundError(f"Visa type '{visa_type_id}' not found for country '{target_country}'.")
    return visa_type


async def evaluate_application(
    applicant_text: str,
    uploads: Sequence[DocumentUpload],
    visa_type: VisaTypeDefinition,
    *,
    oracle: AIClient | None = None,
    timeout_s: float | None = None,
) -> PipelineOutput:
    """Run extract -> evaluate -> score -> insights for one applicant.

    Always completes: document and oracle failures degrade instead of raising.
    """
    documents = await extract_documents(uploads)
    evaluation = await evaluate_criteria(
        applicant_text,
        documents,
        visa_type,
        oracle=oracle,
        timeout_s=timeout_s,
    )
    outcome = score_assessments(evaluation.assessments, visa_type)
    insights = generate_insights(outcome.breakdown, evaluation, visa_type, outcome.final_score)
    result = EvaluationResult(
        final_score=outcome.final_score,
        breakdown=outcome.breakdown,
        category=outcome.category,
        strengths=insights.strengths,
        improvements=insights.improvements,
        next_steps=insights.next_steps,
        summary=insights.summary,
        reasoning=build_reasoning(outcome.breakdown, evaluation, visa_type, outcome.final_score),
        evaluation_source=evaluation.source,
        criteria=list(evaluation.assessments),
    )
    return PipelineOutput(result=result, documents=tuple(documents))


def _document_meta(uploads: Sequence[DocumentUpload], documents: Sequence[ParsedDocument]) -> list[UploadedDocumentMeta]:
    return [
        UploadedDocumentMeta(
            document_type=doc.declared_kind,
            file_name=doc.file_name,
            file_size=upload.size,
            parse_success=doc.parse_success,
            word_count=doc.word_count,
        )
        for upload, doc in zip(uploads, documents)
    ]


async def submit_evaluation(
    submission: EvaluationSubmission,
    uploads: Sequence[DocumentUpload],
    *,
    store: EvaluationStore,
    oracle: AIClient | None = None,
    catalog: VisaCatalog | None = None,
) -> EvaluationRecord:
    visa_type = resolve_visa_type(submission.target_country, submission.visa_type_id, catalog)
    output = await evaluate_application(
        submission.professional_summary,
        uploads,
        visa_type,
        oracle=oracle,
    )

    now = utc_now()
    record = EvaluationRecord(
        evaluation_id=new_evaluation_id(),
        applicant=submission,
        uploaded_documents=_document_meta(uploads, output.documents),
        result=output.result,
        evaluated_at=now,
        created_at=now,
        expires_at=expiry_for(now),
    )
    store.create(record)
    logger.info(
        "evaluation_created id=%s visa=%s/%s score=%s category=%s source=%s documents=%s",
        record.evaluation_id,
        visa_type.country_code,
        visa_type.visa_type_id,
        record.result.final_score,
        record.result.category,
        record.result.evaluation_source,
        len(record.uploaded_documents),
    )
    return record
