from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from visacheck.ai.types import AIClient
from visacheck.core.config import settings
from visacheck.parsing.models import ParsedDocument
from visacheck.parsing.parse import combine_document_text
from visacheck.schemas.evaluation import (
    DIMENSIONS,
    ApplicantProfile,
    CriterionAssessment,
    Dimension,
    EvaluationSource,
    EvidenceTier,
)
from visacheck.schemas.visa import EducationLevel, LanguageLevel, VisaTypeDefinition
from visacheck.services.oracle_prompt import TIER_BANDS, build_system_prompt, build_user_prompt
from visacheck.services.scoring import (
    document_quality_score,
    education_score,
    experience_score,
    language_score,
    parsed_document_bonus,
    specialization_score,
)

logger = logging.getLogger(__name__)

SPECIALIZATION_VOCABULARY: tuple[str, ...] = (
    "technology",
    "engineering",
    "medicine",
    "business",
    "arts",
    "science",
    "education",
)
DEFAULT_EDUCATION: EducationLevel = "bachelor"
DEFAULT_LANGUAGE: LanguageLevel = "b2"
DEFAULT_SPECIALIZATION = "general"

_EXPERIENCE_RE = re.compile(r"(\d+)\+?\s*(?:years?|yrs?)\b")
_CEFR_RE = re.compile(r"\b([abc][12])\b")
_EDUCATION_PATTERNS: tuple[tuple[EducationLevel, re.Pattern[str]], ...] = (
    ("phd", re.compile(r"\b(?:phd|doctorate)\b")),
    ("master", re.compile(r"\b(?:masters?|msc|mba)\b")),
    ("bachelor", re.compile(r"\b(?:bachelors?|bsc)\b")),
    ("high_school", re.compile(r"\b(?:high school|diploma)\b")),
)


class OracleError(RuntimeError):
    pass


class OracleCriterion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dimension: Dimension
    evidence_quality: EvidenceTier
    score: int = Field(ge=0, le=100)
    evidence_found: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)

    @field_validator("dimension", "evidence_quality", mode="before")
    @classmethod
    def _normalize_tag(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("evidence_found", "gaps")
    @classmethod
    def _drop_blank(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item and item.strip()]

    @model_validator(mode="after")
    def _score_matches_tier(self):
        low, high = TIER_BANDS[self.evidence_quality]
        if not low <= self.score <= high:
            raise ValueError(
                f"{self.dimension}: score {self.score} outside the '{self.evidence_quality}' band {low}-{high}"
            )
        return self


class OracleProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    years_of_experience: float = Field(ge=0, le=80)
    education_level: EducationLevel
    field_of_expertise: str = Field(min_length=1, max_length=200)
    language_proficiency: LanguageLevel

    @field_validator("education_level", "language_proficiency", "field_of_expertise", mode="before")
    @classmethod
    def _normalize(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class OracleResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    criteria: list[OracleCriterion]
    profile: OracleProfile

    @model_validator(mode="after")
    def _one_per_dimension(self):
        seen = [item.dimension for item in self.criteria]
        missing = [dimension for dimension in DIMENSIONS if dimension not in seen]
        duplicated = sorted({dimension for dimension in seen if seen.count(dimension) > 1})
        if missing:
            raise ValueError(f"missing criteria: {', '.join(missing)}")
        if duplicated:
            raise ValueError(f"duplicated criteria: {', '.join(duplicated)}")
        return self


@dataclass(frozen=True)
class CriteriaEvaluation:
    source: EvaluationSource
    assessments: tuple[CriterionAssessment, ...]
    profile: ApplicantProfile

    def assessment(self, dimension: Dimension) -> CriterionAssessment | None:
        for item in self.assessments:
            if item.dimension == dimension:
                return item
        return None


def extract_applicant_profile(applicant_text: str) -> ApplicantProfile:
    """Coarse lexical profile facts used when no oracle judgment is available."""
    text = (applicant_text or "").lower()

    years = 0
    match = _EXPERIENCE_RE.search(text)
    if match:
        years = int(match.group(1))

    education: EducationLevel = DEFAULT_EDUCATION
    for level, pattern in _EDUCATION_PATTERNS:
        if pattern.search(text):
            education = level
            break

    specialization = next((term for term in SPECIALIZATION_VOCABULARY if term in text), DEFAULT_SPECIALIZATION)

    language: LanguageLevel = DEFAULT_LANGUAGE
    cefr = _CEFR_RE.search(text)
    if cefr:
        language = cefr.group(1)  # type: ignore[assignment]

    return ApplicantProfile(
        years_of_experience=years,
        education_level=education,
        specialization=specialization,
        language_level=language,
    )


def assess_profile(
    profile: ApplicantProfile,
    visa_type: VisaTypeDefinition,
    documents: Sequence[ParsedDocument],
) -> list[CriterionAssessment]:
    criteria = visa_type.eligibility_criteria
    uploaded_kinds = [doc.declared_kind for doc in documents]
    scores: dict[Dimension, int] = {
        "experience": experience_score(profile.years_of_experience, criteria.min_experience_years),
        "education": education_score(profile.education_level, criteria.min_education_level),
        "specialization": specialization_score(profile.specialization, criteria.specializations),
        "language": language_score(profile.language_level, criteria.language_requirement),
        "document_quality": document_quality_score(uploaded_kinds, visa_type.required_document_kinds()),
    }
    return [CriterionAssessment(dimension=dimension, score=scores[dimension]) for dimension in DIMENSIONS]


def evaluate_rule_based(
    applicant_text: str,
    documents: Sequence[ParsedDocument],
    visa_type: VisaTypeDefinition,
) -> CriteriaEvaluation:
    profile = extract_applicant_profile(applicant_text)
    return CriteriaEvaluation(
        source="rule_based",
        assessments=tuple(assess_profile(profile, visa_type, documents)),
        profile=profile,
    )


def parse_oracle_response(raw: str) -> OracleResponse:
    if not (raw or "").strip():
        raise OracleError("empty oracle response")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise OracleError(f"oracle response is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise OracleError("oracle response is not a JSON object")
    try:
        return OracleResponse.model_validate(payload)
    except ValidationError as exc:
        raise OracleError(f"oracle response failed validation: {exc.error_count()} error(s)") from exc


def _assessments_from_oracle(response: OracleResponse, documents: Sequence[ParsedDocument]) -> list[CriterionAssessment]:
    by_dimension = {item.dimension: item for item in response.criteria}
    parsed_count = sum(1 for doc in documents if doc.parse_success)
    assessments: list[CriterionAssessment] = []
    for dimension in DIMENSIONS:
        item = by_dimension[dimension]
        score = item.score
        if dimension == "document_quality":
            score = min(100, score + parsed_document_bonus(parsed_count))
        assessments.append(
            CriterionAssessment(
                dimension=dimension,
                score=score,
                evidence_quality=item.evidence_quality,
                evidence_found=list(item.evidence_found),
                gaps=list(item.gaps),
            )
        )
    return assessments


async def _evaluate_with_oracle(
    oracle: AIClient,
    applicant_text: str,
    documents: Sequence[ParsedDocument],
    visa_type: VisaTypeDefinition,
    timeout_s: float,
) -> CriteriaEvaluation:
    user_prompt = build_user_prompt(applicant_text, combine_document_text(documents), visa_type)
    raw = await asyncio.wait_for(
        oracle.complete_json(system_prompt=build_system_prompt(), user_prompt=user_prompt),
        timeout=timeout_s,
    )
    response = parse_oracle_response(raw)
    profile = ApplicantProfile(
        years_of_experience=response.profile.years_of_experience,
        education_level=response.profile.education_level,
        specialization=response.profile.field_of_expertise,
        language_level=response.profile.language_proficiency,
    )
    return CriteriaEvaluation(
        source="oracle",
        assessments=tuple(_assessments_from_oracle(response, documents)),
        profile=profile,
    )


async def evaluate_criteria(
    applicant_text: str,
    documents: Sequence[ParsedDocument],
    visa_type: VisaTypeDefinition,
    *,
    oracle: AIClient | None = None,
    timeout_s: float | None = None,
) -> CriteriaEvaluation:
    """Assess the five scoring dimensions, via the oracle when one is injected.

    Any oracle failure (timeout, transport error, malformed or schema-invalid
    payload) downgrades to the rule-based path. The oracle is called at most once.
    """
    if oracle is not None:
        timeout = settings.oracle_timeout_s if timeout_s is None else timeout_s
        try:
            evaluation = await _evaluate_with_oracle(oracle, applicant_text, documents, visa_type, timeout)
            logger.info(
                "oracle_evaluation_ok visa=%s/%s",
                visa_type.country_code,
                visa_type.visa_type_id,
            )
            return evaluation
        except Exception as exc:  # noqa: BLE001 - deterministic fallback is expected
            logger.warning(
                "oracle_evaluation_failed visa=%s/%s fallback=rule_based error=%s: %s",
                visa_type.country_code,
                visa_type.visa_type_id,
                type(exc).__name__,
                exc,
            )
    return evaluate_rule_based(applicant_text, documents, visa_type)
