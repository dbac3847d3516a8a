"""Tests for the FastAPI HTTP adapter.

Fetching is patched on ``web2md.service`` and the converter chain is swapped
through ``app.state.chain_factory``, so no external services are required.
"""

from __future__ import annotations

import json
from typing import Generator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from web2md.api.app import create_app
from web2md.api.schemas import OptionsBody, request_options
from web2md.config import Settings
from web2md.converter.chain import ChainResult
from web2md.errors import FetchError
from web2md.models import FetchResult, FetchSource, ScrapeOptions

_PAGE = (
    "<html><head><title>Pricing — Acme</title></head>"
    "<body><div class='cookie-consent'>We use cookies</div><h2>Plans</h2><p>Pick the plan that fits.</p></body></html>"
)
_IMAGE_PAGE = '<p>Diagram of the plans</p><img src="https://x.test/a.png">'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _StaticChain:
    def __init__(self, markdown: str) -> None:
        self.markdown = markdown

    async def run(self, html: str, options: ScrapeOptions) -> ChainResult:
        return ChainResult(markdown=self.markdown, backend="turndown")


def _parse_sse(content: bytes) -> list[dict]:
    """Parse raw SSE response bytes into a list of event dicts."""
    events = []
    for line in content.decode().splitlines():
        line = line.strip()
        if line.startswith("data: "):
            events.append(json.loads(line[len("data: "):]))
    return events


def _error_fields(response) -> list[str]:
    """Field names named by a 422 request-validation response."""
    return [str(error["loc"][-1]) for error in response.json()["detail"]]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def client(settings: Settings) -> Generator[TestClient, None, None]:
    app = create_app(settings)
    app.state.chain_factory = lambda s, o: _StaticChain("## Plans\n\nPick the plan that fits.")

    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestScrapeEndpoint:
    def test_success(self, client: TestClient) -> None:
        fetched = FetchResult(html=_PAGE, source=FetchSource.BROWSER_RENDER)
        with patch("web2md.service.fetch_html", AsyncMock(return_value=fetched)) as fetch:
            response = client.post(
                "/api/scrape",
                json={"url": "acme.test/pricing", "options": {"useBrowser": True}},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["url"] == "https://acme.test/pricing"
        assert body["data"]["title"] == "Pricing"
        assert body["data"]["source"] == "browserRender"
        assert body["data"]["chars"] == len(_PAGE)
        options = fetch.await_args.args[1]
        assert options.use_browser is True

    def test_missing_url(self, client: TestClient) -> None:
        response = client.post("/api/scrape", json={})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "URL is required"}

    def test_invalid_url(self, client: TestClient) -> None:
        response = client.post("/api/scrape", json={"url": "ftp://x"})
        assert response.status_code == 400
        assert response.json()["error"] == "Only HTTP and HTTPS protocols are allowed"

    def test_fetch_failure_is_500(self, client: TestClient) -> None:
        fetch = AsyncMock(side_effect=FetchError("Failed to fetch via proxy: timeout"))
        with patch("web2md.service.fetch_html", fetch):
            response = client.post("/api/scrape", json={"url": "https://acme.test/"})

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Failed to fetch via proxy: timeout",
        }


class TestCleanEndpoint:
    def test_clean_html(self, client: TestClient) -> None:
        response = client.post("/api/clean", json={"html": _PAGE})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["url"] is None
        assert data["title"] == "Pricing"
        assert "cookies" not in data["cleanedHtml"]
        assert "<h2>Plans</h2>" in data["cleanedHtml"]
        assert data["chars"] == len(data["cleanedHtml"])

    def test_requires_input(self, client: TestClient) -> None:
        response = client.post("/api/clean", json={})
        assert response.status_code == 400

    def test_unknown_provider_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/clean", json={"html": _PAGE, "options": {"aiProvider": "gpt"}}
        )
        assert response.status_code == 422
        assert _error_fields(response) == ["aiProvider"]

    def test_string_flag_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/clean", json={"html": _IMAGE_PAGE, "options": {"includeImages": "false"}}
        )
        assert response.status_code == 422
        assert _error_fields(response) == ["includeImages"]

    def test_boolean_flag_applied(self, client: TestClient) -> None:
        response = client.post(
            "/api/clean", json={"html": _IMAGE_PAGE, "options": {"includeImages": False}}
        )
        assert response.status_code == 200
        assert "<img" not in response.json()["data"]["cleanedHtml"]


class TestOptionsBody:
    def test_camel_case_keys(self) -> None:
        body = OptionsBody.model_validate(
            {"includeLinks": False, "useBrowser": True, "aiProvider": "deepseek"}
        )
        assert body.to_options() == ScrapeOptions(
            include_links=False, use_browser=True, ai_provider="deepseek"
        )

    def test_null_fields_keep_defaults(self) -> None:
        body = OptionsBody.model_validate({"includeImages": None, "aiProvider": None})
        assert body.to_options() == ScrapeOptions()

    def test_missing_options_use_defaults(self) -> None:
        assert request_options(None) == ScrapeOptions()


class TestConvertEndpoint:
    def test_streams_events(self, client: TestClient) -> None:
        response = client.post("/api/convert", json={"html": _PAGE})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _parse_sse(response.content)

        statuses = [e["status"] for e in events if e["type"] == "status"]
        assert statuses == ["CLEANING", "CONVERTING", "SUCCESS"]
        assert events[-1]["type"] == "result"
        assert events[-1]["data"]["title"] == "Pricing"
        assert events[-1]["data"]["markdown"] == "## Plans\n\nPick the plan that fits."

    def test_invalid_url_streams_error(self, client: TestClient) -> None:
        response = client.post("/api/convert", json={"url": "file:///etc/passwd"})

        events = _parse_sse(response.content)
        assert events == [
            {"type": "status", "status": "ERROR"},
            {"type": "error", "message": "Only HTTP and HTTPS protocols are allowed"},
        ]

    def test_requires_input(self, client: TestClient) -> None:
        response = client.post("/api/convert", json={})
        assert response.status_code == 400
        assert response.json()["success"] is False
