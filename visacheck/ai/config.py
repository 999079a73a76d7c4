from __future__ import annotations

from dataclasses import dataclass

from visacheck.core.config import settings


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    api_key: str | None
    base_url: str | None
    timeout_s: float
    temperature: float


def load_ai_config() -> AIConfig:
    return AIConfig(
        provider=settings.ai_provider,
        model=settings.ai_model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_s=settings.oracle_timeout_s,
        temperature=settings.oracle_temperature,
    )
