"""Shared fixtures: explicit settings so no test depends on the environment."""

from __future__ import annotations

import pytest

from web2md.config import Settings

WORKER_URL = "https://proxy.test/"
CF_BASE = "https://cf.test/client/v4"
CF_CONTENT = f"{CF_BASE}/accounts/acc-123/browser-rendering/content"
CF_MARKDOWN = f"{CF_BASE}/accounts/acc-123/browser-rendering/markdown"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        worker_url=WORKER_URL,
        fetch_timeout=5.0,
        cloudflare_account_id="acc-123",
        cloudflare_api_key="cf-token",
        cloudflare_api_base=CF_BASE,
        worker_ai_url="https://worker-ai.test/convert",
        gemini_api_key="gemini-key",
        deepseek_api_key="deepseek-key",
        convert_timeout=5.0,
        log_level="DEBUG",
        cors_origins=["*"],
    )
