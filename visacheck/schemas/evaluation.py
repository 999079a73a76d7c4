from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from visacheck.schemas.visa import EducationLevel, LanguageLevel

Dimension = Literal["experience", "education", "specialization", "language", "document_quality"]
EvidenceTier = Literal["none", "weak", "moderate", "strong", "exceptional"]
ScoreCategory = Literal["strong_candidate", "moderate_fit", "consider_alternatives", "not_recommended"]
EvaluationSource = Literal["oracle", "rule_based"]

DIMENSIONS: tuple[Dimension, ...] = (
    "experience",
    "education",
    "specialization",
    "language",
    "document_quality",
)


class CriterionAssessment(BaseModel):
    dimension: Dimension
    score: int = Field(ge=0, le=100)
    evidence_quality: EvidenceTier | None = None
    evidence_found: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)


class ApplicantProfile(BaseModel):
    """Aggregate profile facts; any field may be unknown."""

    years_of_experience: float | None = None
    education_level: EducationLevel | None = None
    specialization: str | None = None
    language_level: LanguageLevel | None = None


class ScoreBreakdown(BaseModel):
    experience: int = Field(ge=0, le=100)
    education: int = Field(ge=0, le=100)
    specialization: int = Field(ge=0, le=100)
    language: int = Field(ge=0, le=100)
    document_quality: int = Field(ge=0, le=100)

    def get(self, dimension: Dimension) -> int:
        return int(getattr(self, dimension))


class EvaluationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    final_score: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    category: ScoreCategory
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    summary: str
    reasoning: str
    evaluation_source: EvaluationSource = "rule_based"
    criteria: list[CriterionAssessment] = Field(default_factory=list)


class EvaluationSubmission(BaseModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str | None = Field(default=None, max_length=40)
    current_location: str = Field(min_length=2, max_length=200)
    professional_summary: str = Field(min_length=50, max_length=20000)
    target_country: str = Field(min_length=2, max_length=80)
    visa_type: str = Field(min_length=1, max_length=200)
    visa_type_id: str = Field(min_length=1, max_length=80)

    @field_validator("first_name", "last_name", "current_location", "target_country", "visa_type", "visa_type_id", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("phone", mode="before")
    @classmethod
    def _blank_phone(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class UploadedDocumentMeta(BaseModel):
    document_type: str
    file_name: str
    file_size: int = Field(ge=0)
    parse_success: bool
    word_count: int = Field(default=0, ge=0)


class EvaluationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    evaluation_id: str
    applicant: EvaluationSubmission
    uploaded_documents: list[UploadedDocumentMeta] = Field(default_factory=list)
    result: EvaluationResult
    status: Literal["completed"] = "completed"
    evaluated_at: datetime
    created_at: datetime
    expires_at: datetime


class EvaluationCreateResponse(BaseModel):
    evaluation_id: str
    email: str
    status: str
    score: int
    score_category: ScoreCategory
    evaluation_source: EvaluationSource
    message: str


class EvaluationHistoryItem(BaseModel):
    evaluation_id: str
    target_country: str
    visa_type: str
    score: int
    score_category: ScoreCategory
    created_at: datetime
    evaluated_at: datetime


class EvaluationHistoryResponse(BaseModel):
    evaluations: list[EvaluationHistoryItem] = Field(default_factory=list)
    count: int


class EmailResultsRequest(BaseModel):
    email: str = Field(min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class EmailResultsResponse(BaseModel):
    status: str
    message: str
