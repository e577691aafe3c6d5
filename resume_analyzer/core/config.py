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


def _get_env_float(name: str, default: float | None) -> float | None:
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
    rate_limit: str
    rate_limit_enabled: bool
    cors_allowed_origins: tuple[str, ...]
    database_path: str
    blob_storage_dir: str
    max_upload_bytes: int
    binary_extraction_mode: str
    ai_provider: str
    ai_model: str
    ai_api_key: str | None
    ai_base_url: str
    ai_timeout_s: float
    ai_transport_retries: int
    ai_temperature: float | None


settings = Settings(
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    cors_allowed_origins=_get_env_list("CORS_ALLOWED_ORIGINS", ["*"]),
    database_path=_get_env("DATABASE_PATH", "data/resume_analyzer.db") or "data/resume_analyzer.db",
    blob_storage_dir=_get_env("BLOB_STORAGE_DIR", "data/blobs") or "data/blobs",
    max_upload_bytes=_get_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
    binary_extraction_mode=(_get_env("BINARY_EXTRACTION_MODE", "placeholder") or "placeholder").strip().lower(),
    ai_provider=(_get_env("AI_PROVIDER", "openai") or "openai").strip().lower(),
    ai_model=(_get_env("AI_MODEL", "google/gemini-2.5-flash") or "google/gemini-2.5-flash").strip(),
    ai_api_key=_get_env("AI_API_KEY") or _get_env("OPENAI_API_KEY"),
    ai_base_url=_get_env("AI_BASE_URL", "https://ai.gateway.lovable.dev/v1") or "https://ai.gateway.lovable.dev/v1",
    ai_timeout_s=_get_env_float("AI_TIMEOUT_S", 60.0) or 60.0,
    ai_transport_retries=max(0, _get_env_int("AI_TRANSPORT_RETRIES", 0)),
    ai_temperature=_get_env_float("AI_TEMPERATURE", None),
)

if settings.binary_extraction_mode not in {"placeholder", "parse"}:
    raise RuntimeError("BINARY_EXTRACTION_MODE must be either 'placeholder' or 'parse'.")
