from __future__ import annotations

from visacheck.ai.config import AIConfig, load_ai_config
from visacheck.ai.providers.openai_provider import OpenAIProvider
from visacheck.ai.types import AIClient


def build_ai_client(cfg: AIConfig | None = None) -> AIClient:
    cfg = cfg or load_ai_config()

    if cfg.provider == "openai":
        return OpenAIProvider(
            model=cfg.model,
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            timeout_s=cfg.timeout_s,
            temperature=cfg.temperature,
        )

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")
