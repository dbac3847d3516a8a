"""Centralised settings for web2md.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

Components never read the environment themselves: they receive a
:class:`Settings` instance explicitly (the module-level ``settings`` is only
the default the service layer and the API app fall back to).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    worker_url: str = field(
        default_factory=lambda: os.environ.get("WORKER_URL", "")
    )
    fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_TIMEOUT", "60.0"))
    )

    # ------------------------------------------------------------------
    # Cloudflare Browser Rendering (rendered fetch + markdown endpoint)
    # ------------------------------------------------------------------
    cloudflare_account_id: str = field(
        default_factory=lambda: os.environ.get("CLOUDFLARE_ACCOUNT_ID", "")
    )
    cloudflare_api_key: str = field(
        default_factory=lambda: os.environ.get("CLOUDFLARE_API_KEY", "")
    )
    cloudflare_api_base: str = field(
        default_factory=lambda: os.environ.get(
            "CLOUDFLARE_API_BASE", "https://api.cloudflare.com/client/v4"
        )
    )

    # ------------------------------------------------------------------
    # Markdown conversion
    # ------------------------------------------------------------------
    worker_ai_url: str = field(
        default_factory=lambda: os.environ.get("WORKER_AI_URL", "")
    )
    gemini_api_key: str = field(
        default_factory=lambda: os.environ.get("GEMINI_API_KEY", "")
    )
    gemini_model: str = field(
        default_factory=lambda: os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
    )
    deepseek_api_key: str = field(
        default_factory=lambda: os.environ.get("DEEPSEEK_API_KEY", "")
    )
    deepseek_model: str = field(
        default_factory=lambda: os.environ.get("DEEPSEEK_MODEL", "deepseek-chat")
    )
    deepseek_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "DEEPSEEK_BASE_URL", "https://api.deepseek.com"
        )
    )
    convert_timeout: float = field(
        default_factory=lambda: float(os.environ.get("CONVERT_TIMEOUT", "120.0"))
    )

    # ------------------------------------------------------------------
    # HTTP adapter / logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )
    cors_origins: list[str] = field(
        default_factory=lambda: _split_csv(os.environ.get("CORS_ORIGINS", "*"))
    )

    @property
    def browser_rendering_configured(self) -> bool:
        """``True`` when both Cloudflare credentials are present."""
        return bool(self.cloudflare_account_id and self.cloudflare_api_key)


# Module-level default. Components take settings explicitly; callers that
# don't care can pass this one:
#   from web2md.config import settings
settings = Settings()
