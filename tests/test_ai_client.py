import sys
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from visacheck.ai.config import AIConfig  # noqa: E402
from visacheck.ai.factory import build_ai_client  # noqa: E402
from visacheck.ai.providers.openai_provider import OpenAIProvider  # noqa: E402
from visacheck.core import lifespan as lifespan_module  # noqa: E402
from visacheck.core.evaluation_store import EvaluationStore  # noqa: E402
from visacheck.main import app  # noqa: E402


def _config(**overrides) -> AIConfig:
    values = dict(
        provider="openai",
        model="gpt-4o",
        api_key="sk-test",
        base_url=None,
        timeout_s=5.0,
        temperature=0.3,
    )
    values.update(overrides)
    return AIConfig(**values)


class ClosingOracle:
    def __init__(self):
        self.closed = False

    async def complete_json(self, *, system_prompt: str, user_prompt: str) -> str:
        return "{}"

    async def aclose(self) -> None:
        self.closed = True


class OracleClientTests(unittest.IsolatedAsyncioTestCase):
    def test_missing_api_key_fails_at_construction(self):
        with self.assertRaisesRegex(RuntimeError, "OPENAI_API_KEY"):
            OpenAIProvider(model="gpt-4o", api_key="  ")
        with self.assertRaises(RuntimeError):
            build_ai_client(_config(api_key=None))

    def test_unsupported_provider(self):
        with self.assertRaisesRegex(ValueError, "gemini"):
            build_ai_client(_config(provider="gemini"))

    async def test_openai_provider_is_built_and_closed(self):
        client = build_ai_client(_config())
        self.assertIsInstance(client, OpenAIProvider)
        await client.aclose()


class LifespanTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = EvaluationStore(str(Path(self._tmp.name) / "evaluations.db"))

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()

    def test_oracle_is_built_on_startup_and_closed_on_shutdown(self):
        oracle = ClosingOracle()
        enabled = replace(lifespan_module.settings, oracle_enabled=True)
        with patch.object(lifespan_module, "settings", enabled), patch.object(
            lifespan_module, "build_ai_client", return_value=oracle
        ) as build, patch.object(lifespan_module, "get_evaluation_store", return_value=self.store):
            with TestClient(app) as client:
                self.assertIs(app.state.oracle, oracle)
                health = client.get("/v1/health")
                self.assertEqual(health.json(), {"status": "healthy", "oracle": "enabled"})
                self.assertFalse(oracle.closed)

        build.assert_called_once_with()
        self.assertTrue(oracle.closed)
        self.assertIsNone(app.state.oracle)

    def test_disabled_oracle_is_never_built(self):
        disabled = replace(lifespan_module.settings, oracle_enabled=False)
        with patch.object(lifespan_module, "settings", disabled), patch.object(
            lifespan_module, "build_ai_client"
        ) as build, patch.object(lifespan_module, "get_evaluation_store", return_value=self.store):
            with TestClient(app) as client:
                self.assertIsNone(app.state.oracle)
                self.assertEqual(client.get("/v1/health").json()["oracle"], "disabled")

        build.assert_not_called()


if __name__ == "__main__":
    unittest.main()
