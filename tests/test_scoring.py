import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from visacheck.schemas.evaluation import CriterionAssessment, ScoreBreakdown  # noqa: E402
from visacheck.schemas.visa import ScoringWeights  # noqa: E402
from visacheck.services.scoring import (  # noqa: E402
    categorize,
    document_quality_score,
    education_score,
    experience_score,
    has_all_required_documents,
    language_score,
    parsed_document_bonus,
    round_half_up,
    score_assessments,
    specialization_score,
    weighted_score,
)
from tests.factories import make_visa_type  # noqa: E402


def assessments_from(**scores) -> list[CriterionAssessment]:
    return [CriterionAssessment(dimension=name, score=value) for name, value in scores.items()]


class DimensionScoreTests(unittest.TestCase):
    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(67.49), 67)

    def test_experience_at_minimum_is_fifty(self):
        for minimum in (0, 1, 3, 5, 12):
            self.assertEqual(experience_score(minimum, minimum), 50)

    def test_experience_saturates_ten_years_past_minimum(self):
        for minimum in (0, 2, 5):
            self.assertEqual(experience_score(minimum + 10, minimum), 100)
            self.assertEqual(experience_score(minimum + 25, minimum), 100)

    def test_experience_below_minimum_is_penalized(self):
        self.assertEqual(experience_score(2, 5), 16)
        self.assertEqual(experience_score(0, 5), 0)
        self.assertEqual(experience_score(None, 3), 0)
        self.assertLess(experience_score(4.9, 5), 50)

    def test_experience_above_minimum(self):
        self.assertEqual(experience_score(8, 5), 65)

    def test_education(self):
        self.assertEqual(education_score("bachelor", "bachelor"), 65)
        self.assertEqual(education_score("phd", "bachelor"), 100)
        self.assertEqual(education_score("master", "bachelor"), 85)
        self.assertEqual(education_score("high_school", "bachelor"), 31)
        self.assertEqual(education_score("bachelor", "master"), 38)
        self.assertEqual(education_score(None, "bachelor"), 0)

    def test_specialization_ordering(self):
        allowed = ["technology", "engineering"]
        self.assertEqual(specialization_score("Technology", allowed), 100)
        self.assertEqual(specialization_score("software technology", allowed), 75)
        self.assertEqual(specialization_score("tech", allowed), 75)
        self.assertEqual(specialization_score("culinary", allowed), 50)
        self.assertEqual(specialization_score("general", []), 80)
        self.assertEqual(specialization_score(None, allowed), 50)

    def test_language(self):
        self.assertEqual(language_score("b1", "b1"), 80)
        self.assertEqual(language_score("b2", "b1"), 85)
        self.assertEqual(language_score("c2", "a1"), 100)
        self.assertEqual(language_score("a2", "b1"), 50)
        self.assertEqual(language_score("a1", "c1"), 30)
        self.assertEqual(language_score(None, "b1"), 60)

    def test_document_quality(self):
        required = {"resume", "education"}
        self.assertEqual(document_quality_score([], required), 40)
        self.assertEqual(document_quality_score(["resume"], required), 40)
        self.assertEqual(document_quality_score(["resume", "education", "other"], required), 95)
        self.assertEqual(document_quality_score(["other"] * 3, required), 50)
        self.assertEqual(
            document_quality_score(["resume", "education", "other", "other", "other"], required),
            100,
        )
        self.assertEqual(document_quality_score([], set()), 40)

    def test_completeness_needs_an_upload(self):
        self.assertFalse(has_all_required_documents([], set()))
        self.assertTrue(has_all_required_documents(["other"], set()))
        self.assertFalse(has_all_required_documents(["resume"], {"resume", "education"}))

    def test_parsed_document_bonus(self):
        self.assertEqual(parsed_document_bonus(4), 0)
        self.assertEqual(parsed_document_bonus(5), 5)
        self.assertEqual(parsed_document_bonus(8), 10)


class CategoryTests(unittest.TestCase):
    def test_boundaries(self):
        expected = {
            0: "not_recommended",
            39: "not_recommended",
            40: "consider_alternatives",
            59: "consider_alternatives",
            60: "moderate_fit",
            74: "moderate_fit",
            75: "strong_candidate",
            100: "strong_candidate",
        }
        for score, category in expected.items():
            self.assertEqual(categorize(score), category, score)


class WeightedScoreTests(unittest.TestCase):
    def test_reference_breakdown(self):
        visa = make_visa_type()
        outcome = score_assessments(
            assessments_from(experience=50, education=65, specialization=100, language=85, document_quality=40),
            visa,
        )
        self.assertEqual(outcome.weighted_score, 68)
        self.assertEqual(outcome.final_score, 68)
        self.assertEqual(outcome.category, "moderate_fit")

    def test_cap_is_applied_before_category(self):
        visa = make_visa_type(max_score_cap=70)
        outcome = score_assessments(
            assessments_from(experience=100, education=100, specialization=100, language=100, document_quality=100),
            visa,
        )
        self.assertEqual(outcome.weighted_score, 100)
        self.assertEqual(outcome.final_score, 70)
        self.assertEqual(outcome.category, "moderate_fit")

    def test_final_score_never_exceeds_cap(self):
        weights = ScoringWeights(experience=30, education=25, specialization=20, language=15, document_quality=10)
        for cap in (0, 40, 78, 85, 100):
            visa = make_visa_type(max_score_cap=cap)
            for value in range(0, 101, 10):
                breakdown = ScoreBreakdown(
                    experience=value,
                    education=100 - value,
                    specialization=value,
                    language=100,
                    document_quality=value // 2,
                )
                outcome = score_assessments(
                    assessments_from(**breakdown.model_dump()),
                    visa,
                )
                self.assertGreaterEqual(outcome.final_score, 0)
                self.assertLessEqual(outcome.final_score, cap)
                self.assertEqual(outcome.final_score, min(weighted_score(breakdown, weights), cap))

    def test_missing_dimension_is_rejected(self):
        with self.assertRaises(ValueError):
            score_assessments(assessments_from(experience=50, education=65), make_visa_type())


if __name__ == "__main__":
    unittest.main()
