from __future__ import annotations

from visacheck.schemas.visa import VisaTypeDefinition

MAX_APPLICANT_CHARS = 8000
MAX_DOCUMENT_CHARS = 20000

TIER_BANDS: dict[str, tuple[int, int]] = {
    "none": (0, 20),
    "weak": (21, 40),
    "moderate": (41, 60),
    "strong": (61, 80),
    "exceptional": (81, 100),
}

_RESPONSE_SHAPE = (
    "{\n"
    '  "criteria": [\n'
    "    {\n"
    '      "dimension": "experience|education|specialization|language|document_quality",\n'
    '      "evidence_quality": "none|weak|moderate|strong|exceptional",\n'
    '      "score": 0-100,\n'
    '      "evidence_found": ["specific evidence quoted or paraphrased from the input"],\n'
    '      "gaps": ["specific missing or weak evidence"]\n'
    "    }\n"
    "  ],\n"
    '  "profile": {\n'
    '    "years_of_experience": number,\n'
    '    "education_level": "high_school|bachelor|master|phd",\n'
    '    "field_of_expertise": "specific field",\n'
    '    "language_proficiency": "a1|a2|b1|b2|c1|c2"\n'
    "  }\n"
    "}"
)


def build_system_prompt() -> str:
    return (
        "You are an experienced immigration case assessor. "
        "You give strict, realistic evaluations of visa eligibility based only on the evidence provided. "
        "Never invent achievements that are not in the input. "
        "Always return a single valid JSON object and nothing else."
    )


def _band_lines() -> str:
    return ", ".join(f"{low}-{high}={tier}" for tier, (low, high) in TIER_BANDS.items())


def build_user_prompt(applicant_text: str, document_text: str, visa_type: VisaTypeDefinition) -> str:
    criteria = visa_type.eligibility_criteria
    specializations = ", ".join(criteria.specializations) or "any field"
    required_docs = ", ".join(sorted(visa_type.required_document_kinds())) or "none"
    salary_line = (
        f"- Minimum salary: {criteria.minimum_salary}\n" if criteria.minimum_salary is not None else ""
    )
    documents = (document_text or "").strip()[:MAX_DOCUMENT_CHARS]
    if not documents:
        documents = "[No documents provided or documents could not be parsed]"

    return (
        f"VISA TYPE: {visa_type.visa_name} ({visa_type.country_name})\n"
        f"{visa_type.description}\n\n"
        "ELIGIBILITY THRESHOLDS:\n"
        f"- Minimum years of experience: {criteria.min_experience_years}\n"
        f"- Minimum education level: {criteria.min_education_level}\n"
        f"- Eligible specializations: {specializations}\n"
        f"- Language requirement (CEFR): {criteria.language_requirement.upper()}\n"
        f"{salary_line}"
        f"- Required document kinds: {required_docs}\n\n"
        "APPLICANT PROFESSIONAL SUMMARY:\n"
        f"{(applicant_text or '').strip()[:MAX_APPLICANT_CHARS]}\n\n"
        "SUPPORTING DOCUMENTS (each prefixed with its kind and file name):\n"
        f"{documents}\n\n"
        "TASK:\n"
        "Judge each of these five dimensions independently: "
        "experience, education, specialization, language, document_quality.\n"
        "For each dimension:\n"
        "1. List the concrete evidence present.\n"
        "2. Assign an evidence quality tier: none/weak/moderate/strong/exceptional.\n"
        f"3. Give a 0-100 score inside the tier's band ({_band_lines()}).\n"
        "4. List the concrete gaps against the thresholds above.\n"
        "For document_quality, judge how complete and convincing the supporting documents are.\n"
        "Also extract the applicant's profile facts.\n\n"
        "Return exactly one entry per dimension, as a JSON object with this structure:\n"
        f"{_RESPONSE_SHAPE}"
    )
