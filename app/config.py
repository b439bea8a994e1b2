"""
app/config.py

Application-level configuration helpers.

Settings are resolved once per process from environment variables (and the
optional project `.env` files) and handed to services explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

INSIGHT_PROVIDERS = frozenset({"openai", "gemini", "mock", "none"})

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class UploadSettings:
    """
    Runtime settings for the policy upload pipeline.
    """

    endpoint_name: str = "/upload"
    log_row_errors: bool = True


@dataclass(frozen=True)
class PolicyQuerySettings:
    """
    Pagination bounds for policy listing.
    """

    default_limit: int = 25
    max_limit: int = 100


@dataclass(frozen=True)
class InsightSettings:
    """
    LLM backend used by the insight generator.

    ``provider`` is "none" when no backend is configured; insights then come
    from the deterministic fallback.
    """

    provider: str = "none"
    api_key: str | None = None
    model: str = DEFAULT_OPENAI_MODEL
    base_url: str | None = None
    max_retries: int = 1
    max_tokens: int = 1000


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    return UploadSettings(
        endpoint_name=_get_str_env("UPLOAD_ENDPOINT_NAME", "/upload"),
        log_row_errors=_get_bool_env("UPLOAD_LOG_ROW_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_policy_query_settings() -> PolicyQuerySettings:
    max_limit = max(1, _get_int_env("POLICIES_MAX_LIMIT", 100))
    default_limit = min(max(1, _get_int_env("POLICIES_DEFAULT_LIMIT", 25)), max_limit)
    return PolicyQuerySettings(default_limit=default_limit, max_limit=max_limit)


def resolve_insight_provider() -> str:
    """
    Pick the LLM provider.

    INSIGHTS_PROVIDER wins when set to a known value; otherwise OpenAI is
    preferred over Gemini based on which API key is present.
    """

    explicit = (_get_optional_str_env("INSIGHTS_PROVIDER") or "").lower()
    if explicit in INSIGHT_PROVIDERS:
        return explicit
    if _get_optional_str_env("OPENAI_API_KEY"):
        return "openai"
    if _get_optional_str_env("GOOGLE_API_KEY"):
        return "gemini"
    return "none"


@lru_cache(maxsize=1)
def get_insight_settings() -> InsightSettings:
    """
    Return cached insight generator settings.
    """

    provider = resolve_insight_provider()
    max_retries = max(0, _get_int_env("INSIGHTS_MAX_RETRIES", 1))
    max_tokens = max(64, _get_int_env("INSIGHTS_MAX_TOKENS", 1000))

    if provider == "openai":
        return InsightSettings(
            provider=provider,
            api_key=_get_optional_str_env("OPENAI_API_KEY"),
            model=_get_str_env("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            base_url=_get_optional_str_env("OPENAI_BASE_URL"),
            max_retries=max_retries,
            max_tokens=max_tokens,
        )
    if provider == "gemini":
        return InsightSettings(
            provider=provider,
            api_key=_get_optional_str_env("GOOGLE_API_KEY"),
            model=_get_str_env("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            base_url=_get_str_env("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL),
            max_retries=max_retries,
            max_tokens=max_tokens,
        )
    return InsightSettings(provider=provider, max_retries=max_retries, max_tokens=max_tokens)
