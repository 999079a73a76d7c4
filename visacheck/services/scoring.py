from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from visacheck.schemas.evaluation import DIMENSIONS, CriterionAssessment, ScoreBreakdown, ScoreCategory
from visacheck.schemas.visa import CEFR_ORDER, EDUCATION_ORDER, ScoringWeights, VisaTypeDefinition

EDUCATION_BASELINES: dict[str, int] = {
    "high_school": 40,
    "bachelor": 65,
    "master": 85,
    "phd": 100,
}

SPECIALIZATION_EXACT = 100
SPECIALIZATION_PARTIAL = 75
SPECIALIZATION_NONE = 50
SPECIALIZATION_UNRESTRICTED = 80

LANGUAGE_UNKNOWN = 60
LANGUAGE_MEETS = 80

DOCUMENT_BASE = 60
DOCUMENT_COMPLETE_BONUS = 25
DOCUMENT_INCOMPLETE_PENALTY = 20

CATEGORY_THRESHOLDS: tuple[tuple[int, ScoreCategory], ...] = (
    (75, "strong_candidate"),
    (60, "moderate_fit"),
    (40, "consider_alternatives"),
)

_WORD_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class ScoreOutcome:
    breakdown: ScoreBreakdown
    weighted_score: int
    final_score: int
    category: ScoreCategory


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def experience_score(years: float | None, min_years: int) -> int:
    years = max(0.0, float(years or 0))
    if years < min_years:
        return clamp_score(years / min_years * 40)
    above = min(years - min_years, 10)
    return clamp_score(50 + above / 10 * 50)


def education_score(level: str | None, required_level: str) -> int:
    own = EDUCATION_BASELINES.get(level or "", 0)
    required = EDUCATION_BASELINES[required_level]
    if level in EDUCATION_ORDER and EDUCATION_ORDER.index(level) >= EDUCATION_ORDER.index(required_level):
        return own
    return clamp_score(own / required * 50)


def _words(value: str) -> list[str]:
    return [word for word in _WORD_RE.findall(value) if len(word) >= 3]


def specialization_score(specialization: str | None, allowed: Sequence[str]) -> int:
    allowed_clean = [item.strip().lower() for item in allowed if item and item.strip()]
    if not allowed_clean:
        return SPECIALIZATION_UNRESTRICTED

    own = (specialization or "").strip().lower()
    if not own:
        return SPECIALIZATION_NONE
    if own in allowed_clean:
        return SPECIALIZATION_EXACT

    own_words = _words(own)
    for entry in allowed_clean:
        if own in entry or entry in own:
            return SPECIALIZATION_PARTIAL
        if any(word in entry for word in own_words):
            return SPECIALIZATION_PARTIAL
    return SPECIALIZATION_NONE


def language_score(level: str | None, required_level: str) -> int:
    own = (level or "").strip().lower()
    if own not in CEFR_ORDER:
        return LANGUAGE_UNKNOWN
    gap = CEFR_ORDER.index(own) - CEFR_ORDER.index(required_level)
    if gap == 0:
        return LANGUAGE_MEETS
    if gap > 0:
        return min(100, LANGUAGE_MEETS + 5 * gap)
    return max(30, LANGUAGE_UNKNOWN - 10 * abs(gap))


def has_all_required_documents(uploaded_kinds: Iterable[str], required_kinds: Iterable[str]) -> bool:
    uploaded = {kind.strip().lower() for kind in uploaded_kinds if kind}
    if not uploaded:
        return False
    return all(kind in uploaded for kind in required_kinds)


def document_quality_score(uploaded_kinds: Sequence[str], required_kinds: Iterable[str]) -> int:
    score = DOCUMENT_BASE
    if has_all_required_documents(uploaded_kinds, required_kinds):
        score += DOCUMENT_COMPLETE_BONUS
    else:
        score -= DOCUMENT_INCOMPLETE_PENALTY

    count = len(uploaded_kinds)
    if count >= 5:
        score += 15
    elif count >= 3:
        score += 10
    return clamp_score(score)


def parsed_document_bonus(parsed_count: int) -> int:
    bonus = 0
    if parsed_count >= 5:
        bonus += 5
    if parsed_count >= 8:
        bonus += 5
    return bonus


def breakdown_from_assessments(assessments: Sequence[CriterionAssessment]) -> ScoreBreakdown:
    by_dimension = {item.dimension: item.score for item in assessments}
    missing = [dimension for dimension in DIMENSIONS if dimension not in by_dimension]
    if missing:
        raise ValueError(f"missing assessments for: {', '.join(missing)}")
    return ScoreBreakdown(**by_dimension)


def weighted_score(breakdown: ScoreBreakdown, weights: ScoringWeights) -> int:
    total = sum(breakdown.get(dimension) * getattr(weights, dimension) / 100 for dimension in DIMENSIONS)
    return clamp_score(total)


def categorize(score: int) -> ScoreCategory:
    for threshold, category in CATEGORY_THRESHOLDS:
        if score >= threshold:
            return category
    return "not_recommended"


def score_assessments(assessments: Sequence[CriterionAssessment], visa_type: VisaTypeDefinition) -> ScoreOutcome:
    breakdown = breakdown_from_assessments(assessments)
    raw = weighted_score(breakdown, visa_type.scoring_weights)
    final = min(raw, visa_type.max_score_cap)
    return ScoreOutcome(
        breakdown=breakdown,
        weighted_score=raw,
        final_score=final,
        category=categorize(final),
    )
