"""Thin async client for the Cloudflare Browser Rendering REST API.

Two endpoints are used:

``/browser-rendering/content``
    Render a URL in a headless browser and return the resulting HTML.
    Used by the fetcher for JS-heavy pages.

``/browser-rendering/markdown``
    Convert an HTML document to Markdown server-side.  Used as the last
    remote stage of the converter chain.

Both answer with ``{"success": bool, "result": str, "errors": [...]}``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from web2md.config import Settings
from web2md.errors import Web2MdError

logger = logging.getLogger(__name__)


def _remote_error_message(response: httpx.Response) -> str:
    """Pull the most useful error message out of a Cloudflare response."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    errors = data.get("errors") if isinstance(data, dict) else None
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        return str(errors[0].get("message", "Unknown error"))
    return f"HTTP {response.status_code}"


class BrowserRenderingClient:
    """Call the Browser Rendering endpoints with bearer-token auth.

    Failures are raised as *error_cls* so each caller keeps its own place in
    the error taxonomy (``FetchError`` for fetching, ``ConversionError`` for
    the converter chain).
    """

    def __init__(
        self,
        account_id: str,
        api_key: str,
        api_base: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 60.0,
    ) -> None:
        self.account_id = account_id
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, timeout: float | None = None) -> "BrowserRenderingClient":
        return cls(
            account_id=settings.cloudflare_account_id,
            api_key=settings.cloudflare_api_key,
            api_base=settings.cloudflare_api_base,
            timeout=timeout if timeout is not None else settings.fetch_timeout,
        )

    def _endpoint(self, name: str) -> str:
        return f"{self.api_base}/accounts/{self.account_id}/browser-rendering/{name}"

    async def _post(
        self,
        name: str,
        payload: dict[str, Any],
        error_cls: type[Web2MdError],
    ) -> str:
        if not self.account_id or not self.api_key:
            raise error_cls("Cloudflare account ID or API key not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._endpoint(name),
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as exc:
            raise error_cls(f"Browser Rendering request failed: {exc!r}") from exc

        if not response.is_success:
            message = _remote_error_message(response)
            logger.error(
                "Browser Rendering %s failed status=%s error=%s",
                name,
                response.status_code,
                message,
            )
            raise error_cls(f"Browser Rendering error: {message}")

        try:
            data = response.json()
        except ValueError as exc:
            raise error_cls("Browser Rendering returned invalid JSON") from exc

        if not isinstance(data, dict) or not data.get("success"):
            message = _remote_error_message(response)
            logger.error("Browser Rendering %s unsuccessful error=%s", name, message)
            raise error_cls(f"Browser Rendering error: {message}")

        result = data.get("result")
        return result if isinstance(result, str) else ""

    async def content(self, url: str, error_cls: type[Web2MdError]) -> str:
        """Return the rendered HTML of *url*."""
        return await self._post("content", {"url": url}, error_cls)

    async def markdown(self, html: str, error_cls: type[Web2MdError]) -> str:
        """Return a Markdown rendition of *html*."""
        return await self._post("markdown", {"html": html}, error_cls)
