"""
config.py — Centralised configuration for the capability router

Upstream endpoint, credential, pinned model overrides, timeouts and retry
knobs are read from the environment.  The static priority lists and the
hardcoded last-resort selections live here too; nothing deeper in the stack
hard-codes a model id.
"""

from __future__ import annotations

import os
from typing import Any

from .errors import ConfigurationError
from .models import CapabilityTag


def _env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key, "").lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    return default


def _env_optional(key: str) -> str | None:
    val = os.getenv(key, "").strip()
    return val or None


class Settings:
    """
    Settings object populated from environment variables.

    Values are read when the object is constructed, so a process reads them
    once at startup.  Keyword arguments override individual fields, which is
    how tests build isolated configurations.
    """

    def __init__(self, **overrides: Any) -> None:
        # Server
        self.host: str = os.getenv("ROUTER_HOST", "0.0.0.0")
        self.port: int = int(os.getenv("ROUTER_PORT", "7544"))
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.debug: bool = _env_bool("DEBUG", False)

        # Upstream provider
        self.base_url: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
        self.api_key: str = os.getenv("OPENROUTER_API_KEY", "")
        self.app_url: str = os.getenv("APP_URL", "https://receipe2.khtain.com")
        self.app_name: str = os.getenv("APP_NAME", "Receipt Helper AI")

        # Pinned overrides (optional, one per capability)
        self.vision_model: str | None = _env_optional("OPENROUTER_VISION_MODEL")
        self.reasoning_model: str | None = _env_optional("OPENROUTER_REASONING_MODEL")
        self.default_model: str | None = _env_optional("OPENROUTER_DEFAULT_MODEL")

        # Timeouts (seconds)
        self.catalog_timeout: float = float(os.getenv("CATALOG_TIMEOUT", "30"))
        self.vision_timeout: float = float(os.getenv("VISION_TIMEOUT", "120"))
        self.reasoning_timeout: float = float(os.getenv("REASONING_TIMEOUT", "180"))
        self.default_timeout: float = float(os.getenv("DEFAULT_TIMEOUT", "60"))

        # Retry policy
        self.max_retries: int = int(os.getenv("MAX_RETRIES", "3"))
        self.retry_base_delay: float = float(os.getenv("RETRY_BASE_DELAY", "1.0"))
        self.retry_max_jitter: float = float(os.getenv("RETRY_MAX_JITTER", "0.5"))

        # CORS
        self.cors_allowed_origins: str = os.getenv("CORS_ALLOWED_ORIGINS", "")
        self.cors_allow_all: bool = _env_bool("CORS_ALLOW_ALL", True)

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @property
    def cors_origins(self) -> list:
        """Return a list of allowed CORS origins. Empty list means none."""
        if self.cors_allow_all:
            return ["*"]
        raw = (self.cors_allowed_origins or "").strip()
        if not raw:
            return []
        return [o.strip() for o in raw.split(",") if o.strip()]

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def require_api_key(self) -> str:
        """Return the upstream credential or raise ConfigurationError."""
        if not self.api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")
        return self.api_key

    def pinned_models(self) -> dict[CapabilityTag, str | None]:
        return {
            CapabilityTag.VISION: self.vision_model,
            CapabilityTag.REASONING: self.reasoning_model,
            CapabilityTag.DEFAULT: self.default_model,
        }

    def timeout_for(self, capability: CapabilityTag) -> float:
        return {
            CapabilityTag.VISION: self.vision_timeout,
            CapabilityTag.REASONING: self.reasoning_timeout,
            CapabilityTag.DEFAULT: self.default_timeout,
        }[capability]

    def headers(self) -> dict[str, str]:
        """Auth and attribution headers sent on every upstream request."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.app_url,
            "X-Title": self.app_name,
        }


# ══════════════════════════════════════════════════════════════════════════════
# Model priority lists  — single source of truth
# ══════════════════════════════════════════════════════════════════════════════

# Stable, well-tested models, most preferred first.  Used as a priority hint
# independent of whatever the provider newly lists.
PREFERRED_MODELS: dict[CapabilityTag, list[str]] = {
    CapabilityTag.VISION: [
        "anthropic/claude-3.5-sonnet",
        "anthropic/claude-3.5-sonnet-20241022",
        "openai/gpt-4o",
        "google/gemini-pro-1.5",
        "anthropic/claude-3-sonnet-20240229",
    ],
    CapabilityTag.REASONING: [
        "anthropic/claude-sonnet-4",
        "anthropic/claude-3.5-sonnet",
        "openai/o1",
        "openai/o1-preview",
        "deepseek/deepseek-r1",
        "anthropic/claude-3-opus-20240229",
    ],
    CapabilityTag.DEFAULT: [
        "anthropic/claude-3.5-sonnet",
        "openai/gpt-4o-mini",
        "google/gemini-flash-1.5",
        "anthropic/claude-3-haiku-20240307",
    ],
}

# Last resort when the catalog offers nothing usable: (primary, fallbacks)
DEFAULT_SELECTIONS: dict[CapabilityTag, tuple[str, tuple[str, ...]]] = {
    CapabilityTag.VISION: (
        "anthropic/claude-3.5-sonnet",
        ("anthropic/claude-3-sonnet-20240229", "google/gemini-pro-1.5"),
    ),
    CapabilityTag.REASONING: (
        "anthropic/claude-sonnet-4",
        ("openai/o1", "deepseek/deepseek-r1"),
    ),
    CapabilityTag.DEFAULT: (
        "anthropic/claude-3.5-sonnet",
        ("openai/gpt-4o-mini", "google/gemini-flash-1.5"),
    ),
}

# Per-capability request defaults
REQUEST_DEFAULTS: dict[CapabilityTag, dict[str, Any]] = {
    CapabilityTag.VISION: {"temperature": 0.1, "max_tokens": 4096},
    CapabilityTag.REASONING: {"temperature": 0.2, "max_tokens": 8192, "effort": "high"},
    CapabilityTag.DEFAULT: {"temperature": 0.3, "max_tokens": 4096},
}


def load_env_file(path: str | os.PathLike[str] | None = None) -> bool:
    """Load a local .env file into the process environment.

    Existing variables are never overwritten.  Returns True if a file was
    found and loaded.
    """
    from dotenv import load_dotenv

    return load_dotenv(path, override=False)
