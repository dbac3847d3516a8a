"""Raw HTML retrieval via the proxy worker or Cloudflare Browser Rendering.

Two strategies:

* **Proxy fetch** — a plain HTTP GET through the configured worker, with the
  target passed as ``?url=``.  Fast, but sees only server-rendered HTML.
* **Rendered fetch** — the page is loaded in a remote headless browser so
  client-side scripts run before the HTML is captured.

``fetch_html`` picks between them from ``ScrapeOptions.use_browser`` and
degrades to the proxy if rendering fails.
"""

from __future__ import annotations

import logging

import httpx

from web2md.browser_rendering import BrowserRenderingClient
from web2md.config import Settings
from web2md.errors import FetchError
from web2md.models import FetchResult, FetchSource, ScrapeOptions

logger = logging.getLogger(__name__)

# Anything at or below this many characters is an error page or an empty
# response, not a document.
_MIN_CONTENT_CHARS = 50

_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; web2md/1.0)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


async def fetch_via_proxy(url: str, settings: Settings) -> FetchResult:
    """GET *url* through the proxy worker.

    Raises:
        FetchError: If the worker is not configured, the request fails or
            times out, or the body is too short to be a page.
    """
    if not settings.worker_url:
        raise FetchError("WORKER_URL environment variable is not set")

    proxy_url = str(httpx.URL(settings.worker_url, params={"url": url}))
    logger.info("Fetching url=%s mode=proxy", url)

    try:
        async with httpx.AsyncClient(
            headers=_DEFAULT_HEADERS,
            timeout=settings.fetch_timeout,
            follow_redirects=True,
        ) as client:
            response = await client.get(proxy_url)
            text = response.text

        if len(text) <= _MIN_CONTENT_CHARS:
            raise FetchError("Content too short")
    except (httpx.HTTPError, FetchError) as exc:
        logger.error("Proxy fetch failed url=%s error=%r", url, exc)
        raise FetchError(f"Failed to fetch via proxy: {exc}") from exc

    logger.info("Proxy fetch succeeded url=%s chars=%d", url, len(text))
    return FetchResult(html=text, source=FetchSource.PROXY, proxy_url=proxy_url)


async def fetch_rendered_html(url: str, settings: Settings) -> FetchResult:
    """Render *url* with Cloudflare Browser Rendering and return its HTML.

    Raises:
        FetchError: If credentials are missing, the API call fails, or the
            service reports ``success: false``.
    """
    logger.info("Fetching url=%s mode=browserRender", url)
    client = BrowserRenderingClient.from_settings(settings)
    html = await client.content(url, FetchError)
    if not html.strip():
        raise FetchError("Browser Rendering returned empty content")
    logger.info("Rendered fetch succeeded url=%s chars=%d", url, len(html))
    return FetchResult(html=html, source=FetchSource.BROWSER_RENDER)


async def fetch_html(url: str, options: ScrapeOptions, settings: Settings) -> FetchResult:
    """Fetch *url* with the strategy selected by *options*.

    With ``use_browser`` the rendered fetch is tried first and any failure
    falls back to the proxy instead of propagating.  Without it the proxy is
    the only strategy.
    """
    if options.use_browser:
        try:
            return await fetch_rendered_html(url, settings)
        except (FetchError, httpx.HTTPError) as exc:
            logger.warning(
                "Rendered fetch failed url=%s error=%s; falling back to proxy",
                url,
                exc,
            )
    return await fetch_via_proxy(url, settings)
