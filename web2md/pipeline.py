"""Fetch → Clean → Convert orchestration as an async event stream.

``convert_stream`` is an async generator of :data:`PipelineEvent` objects.
Status events follow a fixed state machine::

    SCRAPING → CLEANING → CONVERTING → SUCCESS
        (any non-terminal state) → ERROR

``SCRAPING`` is skipped when raw HTML is supplied.  Log events narrate the
sub-steps in between (fetch source, character counts, converter attempts) so
a client can render live progress.  The stream always ends with either
``status(SUCCESS)`` + ``result`` or ``status(ERROR)`` + ``error``.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Callable, Iterator

import httpx

from web2md.cleaner import clean_html
from web2md.cleaner.title import UNTITLED
from web2md.config import Settings, settings as default_settings
from web2md.converter.chain import ChainResult, ConverterChain, build_default_chain
from web2md.errors import ConversionError, ValidationError, Web2MdError
from web2md.models import (
    ErrorEvent,
    FetchResult,
    FetchSource,
    LogEvent,
    PipelineEvent,
    PipelineStatus,
    ResultEvent,
    ScrapeOptions,
    StatusEvent,
)
from web2md.scraper.fetcher import fetch_html, fetch_rendered_html

logger = logging.getLogger(__name__)

ChainFactory = Callable[[Settings, ScrapeOptions], ConverterChain]

EMPTY_AFTER_RETRY = (
    "Content too short or empty after retry. Possible unsupported content."
)
GENERIC_FAILURE = "Unknown error occurred"


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

_TRANSITIONS: dict[PipelineStatus | None, frozenset[PipelineStatus]] = {
    None: frozenset({PipelineStatus.SCRAPING, PipelineStatus.CLEANING, PipelineStatus.ERROR}),
    PipelineStatus.SCRAPING: frozenset({PipelineStatus.CLEANING, PipelineStatus.ERROR}),
    PipelineStatus.CLEANING: frozenset({PipelineStatus.CONVERTING, PipelineStatus.ERROR}),
    PipelineStatus.CONVERTING: frozenset({PipelineStatus.SUCCESS, PipelineStatus.ERROR}),
    PipelineStatus.SUCCESS: frozenset(),
    PipelineStatus.ERROR: frozenset(),
}


class PipelineStateMachine:
    """Tracks the run's status and rejects transitions the pipeline forbids."""

    def __init__(self) -> None:
        self.state: PipelineStatus | None = None

    @property
    def terminal(self) -> bool:
        return self.state in (PipelineStatus.SUCCESS, PipelineStatus.ERROR)

    def advance(self, status: PipelineStatus) -> StatusEvent:
        if status not in _TRANSITIONS[self.state]:
            current = self.state.value if self.state else "START"
            raise RuntimeError(f"Illegal pipeline transition {current} -> {status.value}")
        self.state = status
        return StatusEvent(status)


# ---------------------------------------------------------------------------
# Progress narration
# ---------------------------------------------------------------------------

def _fetch_log_events(url: str, fetched: FetchResult) -> Iterator[LogEvent]:
    if fetched.source is FetchSource.PROXY:
        yield LogEvent("info", f"Worker proxy: fetching {url} via {fetched.proxy_url}")
        yield LogEvent("info", f"Worker proxy: fetched HTML ({fetched.char_count} chars)")
    else:
        yield LogEvent(
            "info", f"Browser Rendering: fetched rendered HTML ({fetched.char_count} chars)"
        )
        yield LogEvent(
            "info",
            f"Fetched raw HTML url={url} chars={fetched.char_count}",
            auto_enable_browser=True,
        )


def _conversion_log_events(result: ChainResult) -> Iterator[LogEvent]:
    for failure in result.failures:
        yield LogEvent("warn", f"{failure.name} conversion failed: {failure.reason}")
    if result.backend:
        yield LogEvent(
            "info", f"Converted with {result.backend} ({len(result.markdown)} chars)"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def convert_stream(
    url: str | None,
    options: ScrapeOptions | None = None,
    raw_html: str | None = None,
    *,
    settings: Settings | None = None,
    chain_factory: ChainFactory = build_default_chain,
) -> AsyncIterator[PipelineEvent]:
    """Yield pipeline events for converting *url* (or *raw_html*) to Markdown.

    Args:
        url: Already-validated page URL.  Also used as the base for
            absolutising links.  May be ``None`` when *raw_html* is given.
        options: Per-run options; defaults apply when omitted.
        raw_html: HTML supplied directly; skips fetching and disables the
            browser-rendering retry.
        settings: Explicit configuration; the module default otherwise.
        chain_factory: Builds the converter chain for a given set of options.

    Yields:
        ``StatusEvent``, ``LogEvent``, ``ResultEvent`` and ``ErrorEvent``
        objects in pipeline order.
    """
    settings = settings or default_settings
    options = options or ScrapeOptions()
    machine = PipelineStateMachine()

    try:
        # ------------------------------------------------------------------
        # 1. Scraping
        # ------------------------------------------------------------------
        if raw_html:
            source_html = raw_html
            logger.info("Using provided HTML, skipping scrape step")
        else:
            if not url:
                raise ValidationError("Either url or html must be provided")
            yield machine.advance(PipelineStatus.SCRAPING)
            yield LogEvent(
                "info",
                f"Scraping: {url} (useBrowser={str(options.use_browser).lower()})",
            )
            fetched = await fetch_html(url, options, settings)
            source_html = fetched.html
            for event in _fetch_log_events(url, fetched):
                yield event

        # ------------------------------------------------------------------
        # 2. Cleaning
        # ------------------------------------------------------------------
        yield machine.advance(PipelineStatus.CLEANING)
        cleaned = clean_html(source_html, url, options)
        yield LogEvent("info", f"Cleaned HTML: title={cleaned.title!r} chars={len(cleaned.html)}")

        # ------------------------------------------------------------------
        # 3. Converting
        # ------------------------------------------------------------------
        yield machine.advance(PipelineStatus.CONVERTING)
        yield LogEvent("info", f"Converting with AI (primary={options.ai_provider})...")
        chain_result = await chain_factory(settings, options).run(cleaned.html, options)
        for event in _conversion_log_events(chain_result):
            yield event

        markdown = chain_result.markdown
        title = cleaned.title
        result_html = source_html

        if not markdown.strip():
            logger.warning("Conversion produced empty markdown url=%s", url)
            yield LogEvent(
                "warn",
                "Conversion produced empty markdown, retrying with browser rendering...",
                auto_enable_browser=True,
            )

            # Only a URL can be re-fetched; raw HTML input has no retry.
            if url:
                try:
                    rendered = await fetch_rendered_html(url, settings)
                    yield LogEvent(
                        "info",
                        f"Browser Rendering: fetched rendered HTML ({rendered.char_count} chars)",
                    )
                    retry_options = options.with_browser()
                    recleaned = clean_html(rendered.html, url, retry_options)
                    retry_result = await chain_factory(settings, retry_options).run(
                        recleaned.html, retry_options
                    )
                    for event in _conversion_log_events(retry_result):
                        yield event
                    markdown = retry_result.markdown
                    if markdown.strip():
                        result_html = rendered.html
                        if title == UNTITLED:
                            title = recleaned.title
                except (Web2MdError, httpx.HTTPError) as exc:
                    logger.warning("Browser rendering retry failed url=%s error=%s", url, exc)
                    yield LogEvent("error", f"Browser rendering retry failed: {exc}")

            if not markdown.strip():
                raise ConversionError(EMPTY_AFTER_RETRY)

        # ------------------------------------------------------------------
        # 4. Success
        # ------------------------------------------------------------------
        logger.info("Conversion succeeded markdownChars=%d", len(markdown))
        yield machine.advance(PipelineStatus.SUCCESS)
        yield ResultEvent(url=url or "", title=title, markdown=markdown, html=result_html)

    except Exception as exc:  # noqa: BLE001
        if machine.terminal:
            raise
        if isinstance(exc, Web2MdError):
            logger.warning("Pipeline failed url=%s error=%s", url, exc)
        else:
            logger.exception("Unexpected pipeline error url=%s", url)
        message = str(exc) or GENERIC_FAILURE
        yield machine.advance(PipelineStatus.ERROR)
        yield ErrorEvent(message)
