from __future__ import annotations

from dataclasses import dataclass, field

from visacheck.schemas.evaluation import DIMENSIONS, Dimension, ScoreBreakdown
from visacheck.schemas.visa import VisaTypeDefinition
from visacheck.services.criteria_evaluator import CriteriaEvaluation

STRENGTH_THRESHOLDS: dict[Dimension, int] = {
    "experience": 80,
    "education": 85,
    "specialization": 90,
    "language": 85,
    "document_quality": 80,
}
IMPROVEMENT_THRESHOLDS: dict[Dimension, int] = {
    "experience": 60,
    "education": 65,
    "language": 70,
    "document_quality": 70,
    "specialization": 60,
}

_DIMENSION_LABELS = {
    "experience": "Experience",
    "education": "Education",
    "specialization": "Specialization",
    "language": "Language",
    "document_quality": "Documents",
}

_TONE = {
    "strong": "You are a strong candidate for this visa type!",
    "moderate": "You have a moderate fit for this visa type.",
    "weak": "You may want to consider improving certain areas or exploring alternative visa options.",
}


@dataclass(frozen=True)
class Insights:
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    summary: str = ""


def _format_years(years: float) -> str:
    return str(int(years)) if float(years).is_integer() else f"{years:g}"


def _humanize(value: str) -> str:
    return value.replace("_", " ")


def _with_note(sentence: str, note: str | None) -> str:
    return f"{sentence} ({note})" if note else sentence


def _first_evidence(evaluation: CriteriaEvaluation, dimension: Dimension) -> str | None:
    assessment = evaluation.assessment(dimension)
    if assessment is None or not assessment.evidence_found:
        return None
    return assessment.evidence_found[0]


def _first_gap(evaluation: CriteriaEvaluation, dimension: Dimension) -> str | None:
    assessment = evaluation.assessment(dimension)
    if assessment is None or not assessment.gaps:
        return None
    return assessment.gaps[0]


def _strengths(breakdown: ScoreBreakdown, evaluation: CriteriaEvaluation, visa_type: VisaTypeDefinition) -> list[str]:
    profile = evaluation.profile
    sentences: dict[str, str] = {}

    if profile.years_of_experience is not None:
        sentences["experience"] = (
            f"Strong professional background with {_format_years(profile.years_of_experience)} years of experience"
        )
    else:
        sentences["experience"] = "Strong professional background"

    if profile.education_level:
        sentences["education"] = f"Advanced educational qualification ({_humanize(profile.education_level)} degree)"
    else:
        sentences["education"] = "Advanced educational qualification"

    sentences["specialization"] = f"Excellent specialization match for {visa_type.visa_name}"

    if profile.language_level:
        sentences["language"] = f"Strong language proficiency ({profile.language_level.upper()})"
    else:
        sentences["language"] = "Strong language proficiency"

    sentences["document_quality"] = "Comprehensive documentation provided"

    strengths: list[str] = []
    for dimension in DIMENSIONS:
        if breakdown.get(dimension) >= STRENGTH_THRESHOLDS[dimension]:
            strengths.append(_with_note(sentences[dimension], _first_evidence(evaluation, dimension)))
    return strengths


def _improvements(breakdown: ScoreBreakdown, evaluation: CriteriaEvaluation, visa_type: VisaTypeDefinition) -> list[str]:
    criteria = visa_type.eligibility_criteria
    sentences = {
        "experience": (
            f"Gain more relevant work experience (minimum {criteria.min_experience_years} years required)"
        ),
        "education": (
            f"Consider pursuing higher education (minimum {_humanize(criteria.min_education_level)} required)"
        ),
        "language": f"Improve language proficiency to {criteria.language_requirement.upper()} level",
        "document_quality": "Ensure all required documents are complete and up-to-date",
        "specialization": "Consider gaining experience in specialized areas relevant to this visa type",
    }

    improvements: list[str] = []
    for dimension, threshold in IMPROVEMENT_THRESHOLDS.items():
        if breakdown.get(dimension) < threshold:
            improvements.append(_with_note(sentences[dimension], _first_gap(evaluation, dimension)))
    return improvements


def _next_steps(final_score: int, visa_type: VisaTypeDefinition) -> list[str]:
    if final_score >= 75:
        steps = [
            f"Prepare comprehensive application for {visa_type.visa_name}",
            "Gather all supporting documentation and certifications",
            "Consider consulting with an immigration attorney",
        ]
    elif final_score >= 60:
        steps = [
            "Address the improvement areas mentioned above",
            "Gather additional supporting evidence for your application",
            "Consider alternative visa options that may be a better fit",
        ]
    else:
        steps = [
            "Focus on building qualifications in key areas (experience, education)",
            "Explore alternative visa types that match your current profile",
            "Consider professional development and certifications",
        ]
    steps.append(f"Visit official website: {visa_type.official_link or 'Contact immigration authority'}")
    return steps


def build_summary(final_score: int, visa_type: VisaTypeDefinition) -> str:
    if final_score >= 75:
        tone = _TONE["strong"]
    elif final_score >= 60:
        tone = _TONE["moderate"]
    else:
        tone = _TONE["weak"]
    return f"Based on your profile, you scored {final_score}/100 for the {visa_type.visa_name}. {tone}"


def generate_insights(
    breakdown: ScoreBreakdown,
    evaluation: CriteriaEvaluation,
    visa_type: VisaTypeDefinition,
    final_score: int,
) -> Insights:
    """Rule-based strengths, improvements and next steps for one scored run."""
    return Insights(
        strengths=_strengths(breakdown, evaluation, visa_type),
        improvements=_improvements(breakdown, evaluation, visa_type),
        next_steps=_next_steps(final_score, visa_type),
        summary=build_summary(final_score, visa_type),
    )


def build_reasoning(
    breakdown: ScoreBreakdown,
    evaluation: CriteriaEvaluation,
    visa_type: VisaTypeDefinition,
    final_score: int,
) -> str:
    weights = visa_type.scoring_weights
    parts: list[str] = [
        f"Score calculated for {visa_type.visa_name} in {visa_type.country_name}:",
        "",
        "Component Scores:",
    ]
    for dimension in DIMENSIONS:
        parts.append(
            f"- {_DIMENSION_LABELS[dimension]}: {breakdown.get(dimension)}/100 "
            f"(weight: {getattr(weights, dimension)}%)"
        )
    parts.extend(["", f"Final Score: {final_score}/100 (capped at {visa_type.max_score_cap})", ""])

    if visa_type.success_rate_percent:
        parts.append(f"Historical success rate: {visa_type.success_rate_percent}%")
    if visa_type.processing_time_weeks:
        parts.append(f"Average processing time: {visa_type.processing_time_weeks} weeks")

    if evaluation.source == "oracle":
        parts.extend(["", "Criteria Analysis:"])
        for assessment in evaluation.assessments:
            tier = (assessment.evidence_quality or "none").upper()
            parts.append(f"- {_DIMENSION_LABELS[assessment.dimension]}: {assessment.score}/100 ({tier})")
            evidence = ", ".join(assessment.evidence_found) or "None found"
            parts.append(f"  Evidence: {evidence}")
            if assessment.gaps:
                parts.append(f"  Gaps: {'; '.join(assessment.gaps)}")
    else:
        parts.extend(["", "Basic scoring (AI analysis not available)."])

    return "\n".join(parts).rstrip()
