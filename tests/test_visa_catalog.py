import sys
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from visacheck.core.visa_catalog import get_visa_catalog, load_visa_catalog, parse_visa_catalog  # noqa: E402
from visacheck.schemas.visa import DOCUMENT_KINDS, RequiredDocument  # noqa: E402

_ENTRY = {
    "country_code": "de",
    "country_name": "Germany",
    "visa_type_id": "eu_blue_card",
    "visa_name": "EU Blue Card",
    "eligibility_criteria": {
        "min_experience_years": 3,
        "min_education_level": "Bachelor",
        "specializations": ["technology"],
        "language_requirement": "A1",
    },
    "scoring_weights": {
        "experience": 27,
        "education": 28,
        "specialization": 25,
        "language": 12,
        "document_quality": 8,
    },
    "max_score_cap": 86,
}


def _entry(**overrides) -> dict:
    data = {**_ENTRY}
    data.update(overrides)
    return data


class VisaCatalogTests(unittest.TestCase):
    def test_bundled_catalog_is_valid(self):
        catalog = get_visa_catalog()
        self.assertEqual(len(catalog.visa_types), 10)
        for visa_type in catalog.visa_types:
            self.assertEqual(visa_type.scoring_weights.total(), 100, visa_type.visa_type_id)
            self.assertTrue(visa_type.required_document_kinds())

    def test_find_is_case_insensitive(self):
        catalog = get_visa_catalog()
        o1a = catalog.find("us", "O1A")
        self.assertIsNotNone(o1a)
        self.assertEqual(o1a.max_score_cap, 85)
        self.assertEqual(o1a.eligibility_criteria.language_requirement, "b2")
        self.assertIsNone(catalog.find("US", "tier2"))

    def test_countries_group_visa_types(self):
        countries = {country.country_code: country for country in get_visa_catalog().countries()}
        self.assertEqual(len(countries), 9)
        self.assertEqual(
            sorted(visa.visa_type_id for visa in countries["US"].visa_types),
            ["h1b", "o1a"],
        )

    def test_search(self):
        catalog = get_visa_catalog()
        self.assertEqual([visa.visa_type_id for visa in catalog.search("blue card")], ["eu_blue_card"])
        self.assertEqual(catalog.search("   "), [])

    def test_parse_normalizes_entries(self):
        catalog = parse_visa_catalog({"visa_types": [_entry()]})
        visa_type = catalog.visa_types[0]
        self.assertEqual(visa_type.country_code, "DE")
        self.assertEqual(visa_type.eligibility_criteria.min_education_level, "bachelor")
        self.assertEqual(visa_type.eligibility_criteria.language_requirement, "a1")

    def test_weights_must_sum_to_100(self):
        bad = _entry(scoring_weights={**_ENTRY["scoring_weights"], "language": 20})
        with self.assertRaisesRegex(RuntimeError, "sum to 100"):
            parse_visa_catalog({"visa_types": [bad]})

    def test_duplicate_visa_type(self):
        with self.assertRaisesRegex(RuntimeError, "Duplicate"):
            parse_visa_catalog({"visa_types": [_entry(), _entry(country_code="DE")]})

    def test_missing_top_level_list(self):
        with self.assertRaises(RuntimeError):
            parse_visa_catalog({"visas": []})

    def test_document_kinds_are_the_accepted_document_types(self):
        self.assertIn("language_certificate", DOCUMENT_KINDS)
        self.assertEqual(DOCUMENT_KINDS[-1], "other")
        for kind in DOCUMENT_KINDS:
            self.assertEqual(RequiredDocument(document_type=kind).document_type, kind)
        with self.assertRaises(ValidationError):
            RequiredDocument(document_type="passport_scan")

    def test_load_errors(self):
        with tempfile.TemporaryDirectory() as tmp:
            missing = Path(tmp) / "missing.yaml"
            with self.assertRaisesRegex(RuntimeError, "not found"):
                load_visa_catalog(missing)

            broken = Path(tmp) / "broken.yaml"
            broken.write_text("visa_types: [unclosed", encoding="utf-8")
            with self.assertRaisesRegex(RuntimeError, "Invalid YAML"):
                load_visa_catalog(broken)


if __name__ == "__main__":
    unittest.main()
