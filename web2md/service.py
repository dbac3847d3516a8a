"""Transport-neutral operations behind the HTTP adapter.

Each function validates its input, runs the relevant pipeline stages and
returns plain results.  ``convert`` yields the wire-shaped event dicts that
the API streams as Server-Sent Events.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from bs4 import BeautifulSoup

from web2md.cleaner import clean_html, extract_title
from web2md.config import Settings, settings as default_settings
from web2md.converter.chain import build_default_chain
from web2md.errors import ValidationError
from web2md.models import (
    CleanResponse,
    ErrorEvent,
    PipelineStatus,
    ScrapeOptions,
    ScrapeResponse,
    StatusEvent,
)
from web2md.pipeline import ChainFactory, convert_stream
from web2md.scraper.fetcher import fetch_html
from web2md.url import validate_url

logger = logging.getLogger(__name__)

_MISSING_INPUT = "Either url or html must be provided"


async def scrape(
    url: str,
    options: ScrapeOptions | None = None,
    *,
    settings: Settings | None = None,
) -> ScrapeResponse:
    """Fetch *url* and return its raw HTML with the extracted title."""
    settings = settings or default_settings
    options = options or ScrapeOptions()
    target = validate_url(url)

    fetched = await fetch_html(target, options, settings)
    title = extract_title(BeautifulSoup(fetched.html, "html.parser"))
    logger.info("Scraped url=%s source=%s chars=%d", target, fetched.source.value, fetched.char_count)
    return ScrapeResponse(
        url=target,
        title=title,
        html=fetched.html,
        source=fetched.source,
        chars=fetched.char_count,
    )


async def clean(
    html: str | None = None,
    url: str | None = None,
    options: ScrapeOptions | None = None,
    *,
    settings: Settings | None = None,
) -> CleanResponse:
    """Clean HTML fetched from *url*, or the supplied *html*.

    When both are given the URL wins and *html* is ignored.
    """
    settings = settings or default_settings
    options = options or ScrapeOptions()

    target: str | None = None
    if url:
        target = validate_url(url)
        fetched = await fetch_html(target, options, settings)
        source_html = fetched.html
    elif html:
        source_html = html
    else:
        raise ValidationError(_MISSING_INPUT)

    cleaned = clean_html(source_html, target, options)
    return CleanResponse(
        url=target,
        title=cleaned.title,
        cleaned_html=cleaned.html,
        chars=len(cleaned.html),
    )


async def convert(
    url: str | None = None,
    html: str | None = None,
    options: ScrapeOptions | None = None,
    *,
    settings: Settings | None = None,
    chain_factory: ChainFactory = build_default_chain,
) -> AsyncIterator[dict[str, Any]]:
    """Run the full pipeline and yield each event as its wire dict."""
    target: str | None = None
    try:
        if url:
            target = validate_url(url)
        elif not html:
            raise ValidationError(_MISSING_INPUT)
    except ValidationError as exc:
        logger.warning("Rejected convert request: %s", exc)
        yield StatusEvent(PipelineStatus.ERROR).to_dict()
        yield ErrorEvent(str(exc)).to_dict()
        return

    async for event in convert_stream(
        target,
        options,
        raw_html=html,
        settings=settings,
        chain_factory=chain_factory,
    ):
        yield event.to_dict()
