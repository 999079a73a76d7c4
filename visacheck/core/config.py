from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    evaluation_db_path: str
    evaluation_ttl_days: int
    visa_catalog_path: str | None
    max_upload_bytes: int
    max_upload_files: int
    oracle_enabled: bool
    oracle_timeout_s: float
    oracle_temperature: float
    ai_provider: str
    ai_model: str
    openai_api_key: str | None
    openai_base_url: str | None
    smtp_host: str | None
    smtp_port: int
    smtp_user: str | None
    smtp_password: str | None
    smtp_from: str | None
    smtp_use_tls: bool
    smtp_fallback_ssl: bool


settings = Settings(
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    evaluation_db_path=_get_env("EVALUATION_DB_PATH", "data/evaluations.db") or "data/evaluations.db",
    evaluation_ttl_days=_get_env_int("EVALUATION_TTL_DAYS", 90),
    visa_catalog_path=_get_env("VISA_CATALOG_PATH"),
    max_upload_bytes=_get_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
    max_upload_files=_get_env_int("MAX_UPLOAD_FILES", 10),
    oracle_enabled=_get_env_bool("ORACLE_ENABLED", False),
    oracle_timeout_s=_get_env_float("ORACLE_TIMEOUT_S", 30.0),
    oracle_temperature=_get_env_float("ORACLE_TEMPERATURE", 0.3),
    ai_provider=(_get_env("AI_PROVIDER", "openai") or "openai").strip().lower(),
    ai_model=(_get_env("AI_MODEL", "gpt-4o") or "gpt-4o").strip(),
    openai_api_key=_get_env("OPENAI_API_KEY"),
    openai_base_url=_get_env("OPENAI_BASE_URL"),
    smtp_host=_get_env("SMTP_HOST"),
    smtp_port=_get_env_int("SMTP_PORT", 587),
    smtp_user=_get_env("SMTP_USER"),
    smtp_password=_get_env("SMTP_PASSWORD"),
    smtp_from=_get_env("SMTP_FROM"),
    smtp_use_tls=_get_env_bool("SMTP_USE_TLS", True),
    smtp_fallback_ssl=_get_env_bool("SMTP_FALLBACK_SSL", True),
)

if settings.ai_provider not in {"openai"}:
    raise RuntimeError("AI_PROVIDER must be 'openai'.")

if settings.oracle_enabled and not (settings.openai_api_key or "").strip():
    raise RuntimeError("ORACLE_ENABLED=true requires OPENAI_API_KEY to be set.")
