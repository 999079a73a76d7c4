from __future__ import annotations

from visacheck.schemas.evaluation import EvaluationRecord

CATEGORY_LABELS = {
    "strong_candidate": "Strong candidate",
    "moderate_fit": "Moderate fit",
    "consider_alternatives": "Consider alternatives",
    "not_recommended": "Not recommended",
}

CATEGORY_MESSAGES = {
    "strong_candidate": "You are a strong candidate!",
    "moderate_fit": "You have good potential for this visa.",
    "consider_alternatives": "You may want to explore alternative options.",
    "not_recommended": "This visa may not be the best fit at this time.",
}

_BREAKDOWN_LABELS = (
    ("experience", "Experience"),
    ("education", "Education"),
    ("specialization", "Specialization"),
    ("language", "Language"),
    ("document_quality", "Documents"),
)


def _section(title: str, items: list[str]) -> list[str]:
    if not items:
        return []
    return ["", title, *[f"  - {item}" for item in items]]


def render_text_report(record: EvaluationRecord) -> str:
    """Plain-text report for one stored evaluation. Reads the record only."""
    applicant = record.applicant
    result = record.result

    lines = [
        "Visa Eligibility Evaluation",
        "=" * 27,
        f"Applicant: {applicant.first_name} {applicant.last_name}",
        f"Visa: {applicant.visa_type} ({applicant.target_country})",
        f"Evaluation ID: {record.evaluation_id}",
        f"Evaluated: {record.evaluated_at.strftime('%Y-%m-%d %H:%M UTC')}",
        "",
        f"Score: {result.final_score}/100 - {CATEGORY_LABELS[result.category]}",
        CATEGORY_MESSAGES[result.category],
        "",
        result.summary,
        "",
        "Score breakdown:",
    ]
    for field_name, label in _BREAKDOWN_LABELS:
        lines.append(f"  {label:<15} {getattr(result.breakdown, field_name):>3}/100")

    lines.extend(_section("Strengths:", result.strengths))
    lines.extend(_section("Areas to improve:", result.improvements))
    lines.extend(_section("Next steps:", result.next_steps))

    if record.uploaded_documents:
        lines.extend(["", "Documents reviewed:"])
        for doc in record.uploaded_documents:
            state = "parsed" if doc.parse_success else "not readable"
            lines.append(f"  - {doc.file_name} ({doc.document_type}, {state})")

    lines.extend(
        [
            "",
            f"This report is available until {record.expires_at.strftime('%Y-%m-%d')}.",
            "This self-assessment is informational and is not legal advice.",
        ]
    )
    return "\n".join(lines)
