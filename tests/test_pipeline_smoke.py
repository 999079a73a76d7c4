import sys
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from visacheck.main import app  # noqa: E402
from visacheck.parsing.models import DocumentUpload  # noqa: E402
from visacheck.services.evaluation_service import evaluate_application  # noqa: E402
from tests.factories import make_visa_type  # noqa: E402
from tests.test_criteria_evaluator import StubOracle  # noqa: E402


class PipelineSmokeTests(unittest.IsolatedAsyncioTestCase):
    async def test_reference_scenario(self):
        visa = make_visa_type(required_documents=[])
        output = await evaluate_application(
            "I have 5 years of experience as a developer, a bachelor degree and I work in technology.",
            [],
            visa,
        )
        result = output.result
        self.assertEqual(result.breakdown.model_dump(), {
            "experience": 50,
            "education": 65,
            "specialization": 100,
            "language": 85,
            "document_quality": 40,
        })
        self.assertEqual(result.final_score, 68)
        self.assertEqual(result.category, "moderate_fit")
        self.assertEqual(result.evaluation_source, "rule_based")
        self.assertEqual(output.documents, ())

    async def test_failing_oracle_still_completes(self):
        oracle = StubOracle(error=RuntimeError("service unavailable"))
        uploads = [DocumentUpload(file_name="photo.jpeg", declared_kind="resume", content=b"\xff\xd8\xff")]
        output = await evaluate_application(
            "Nurse with 3 years of experience, diploma in healthcare, English B1.",
            uploads,
            make_visa_type(),
            oracle=oracle,
            timeout_s=0.5,
        )
        self.assertEqual(output.result.evaluation_source, "rule_based")
        self.assertFalse(output.documents[0].parse_success)
        self.assertLessEqual(output.result.final_score, 85)
        self.assertTrue(output.result.summary.startswith("Based on your profile, you scored"))


class AppSmokeTests(unittest.TestCase):
    def test_health_endpoint(self):
        response = TestClient(app).get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy", "oracle": "disabled"})


if __name__ == "__main__":
    unittest.main()
