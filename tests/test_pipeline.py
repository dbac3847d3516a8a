"""Tests for the Fetch → Clean → Convert orchestrator.

Fetchers are patched on ``web2md.pipeline`` with ``AsyncMock``; the converter
chain is injected through ``chain_factory`` so every run is offline.  The
real cleaner runs on the fixture HTML.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from web2md.config import Settings
from web2md.converter.chain import ChainResult, StageFailure
from web2md.errors import FetchError
from web2md.models import (
    ErrorEvent,
    FetchResult,
    FetchSource,
    LogEvent,
    PipelineStatus,
    ResultEvent,
    ScrapeOptions,
    StatusEvent,
)
from web2md.pipeline import EMPTY_AFTER_RETRY, PipelineStateMachine, convert_stream

_URL = "https://example.com/post"
_PROXY_HTML = "<html><body><div id='root'></div><p>Loading...</p></body></html>"
_RENDERED_HTML = (
    "<html><head><title>Rendered App | Example</title></head>"
    "<body><h1>Rendered App</h1><p>Client-side content that only exists after scripts run.</p></body></html>"
)
_ARTICLE_HTML = (
    "<html><head><title>Field Notes — Example</title></head>"
    "<body><nav><a href='/'>Home</a></nav><h1>Field Notes</h1><p>Hello world</p></body></html>"
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _FakeChain:
    """Stands in for ``ConverterChain``; records what it was asked to convert."""

    def __init__(self, result: ChainResult) -> None:
        self.result = result
        self.html: str | None = None
        self.options: ScrapeOptions | None = None

    async def run(self, html: str, options: ScrapeOptions) -> ChainResult:
        self.html = html
        self.options = options
        return self.result


def _factory(*chains: _FakeChain) -> MagicMock:
    return MagicMock(side_effect=list(chains))


async def _collect(stream) -> list[Any]:
    return [event async for event in stream]


def _statuses(events: list[Any]) -> list[PipelineStatus]:
    return [event.status for event in events if isinstance(event, StatusEvent)]


def _logs(events: list[Any]) -> list[LogEvent]:
    return [event for event in events if isinstance(event, LogEvent)]


def _proxy_result(html: str) -> FetchResult:
    return FetchResult(html=html, source=FetchSource.PROXY, proxy_url=f"https://proxy.test/?url={_URL}")


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class TestPipelineStateMachine:
    def test_full_path(self) -> None:
        machine = PipelineStateMachine()
        for status in (
            PipelineStatus.SCRAPING,
            PipelineStatus.CLEANING,
            PipelineStatus.CONVERTING,
            PipelineStatus.SUCCESS,
        ):
            assert machine.advance(status) == StatusEvent(status)
        assert machine.terminal

    def test_raw_html_path_starts_at_cleaning(self) -> None:
        machine = PipelineStateMachine()
        machine.advance(PipelineStatus.CLEANING)
        assert machine.state is PipelineStatus.CLEANING

    def test_error_from_any_non_terminal_state(self) -> None:
        machine = PipelineStateMachine()
        machine.advance(PipelineStatus.SCRAPING)
        machine.advance(PipelineStatus.ERROR)
        assert machine.terminal

    @pytest.mark.parametrize(
        "path",
        [
            [PipelineStatus.CONVERTING],
            [PipelineStatus.SCRAPING, PipelineStatus.CONVERTING],
            [PipelineStatus.CLEANING, PipelineStatus.SUCCESS],
            [PipelineStatus.CLEANING, PipelineStatus.CONVERTING, PipelineStatus.SUCCESS, PipelineStatus.ERROR],
        ],
    )
    def test_illegal_transitions(self, path: list[PipelineStatus]) -> None:
        machine = PipelineStateMachine()
        with pytest.raises(RuntimeError, match="Illegal pipeline transition"):
            for status in path:
                machine.advance(status)


# ---------------------------------------------------------------------------
# convert_stream
# ---------------------------------------------------------------------------

class TestConvertStream:
    async def test_url_happy_path(self, settings: Settings) -> None:
        chain = _FakeChain(ChainResult(markdown="# Field Notes\n\nHello world", backend="worker-ai"))
        with patch("web2md.pipeline.fetch_html", AsyncMock(return_value=_proxy_result(_ARTICLE_HTML))):
            events = await _collect(
                convert_stream(_URL, ScrapeOptions(), settings=settings, chain_factory=_factory(chain))
            )

        assert _statuses(events) == [
            PipelineStatus.SCRAPING,
            PipelineStatus.CLEANING,
            PipelineStatus.CONVERTING,
            PipelineStatus.SUCCESS,
        ]
        messages = [log.message for log in _logs(events)]
        assert messages[0] == f"Scraping: {_URL} (useBrowser=false)"
        assert any("Worker proxy: fetching" in m and "proxy.test" in m for m in messages)
        assert any(m.startswith("Cleaned HTML:") for m in messages)
        assert "Converted with worker-ai (26 chars)" in messages

        result = events[-1]
        assert isinstance(result, ResultEvent)
        assert result.url == _URL
        assert result.title == "Field Notes"
        assert result.markdown == "# Field Notes\n\nHello world"
        assert result.html == _ARTICLE_HTML
        # The chain sees cleaned HTML, not the raw page.
        assert chain.html is not None and "<nav" not in chain.html

    async def test_raw_html_skips_scraping(self, settings: Settings) -> None:
        chain = _FakeChain(ChainResult(markdown="Hello world", backend="turndown"))
        fetch = AsyncMock()
        with patch("web2md.pipeline.fetch_html", fetch):
            events = await _collect(
                convert_stream(None, raw_html=_ARTICLE_HTML, settings=settings, chain_factory=_factory(chain))
            )

        fetch.assert_not_awaited()
        assert _statuses(events) == [
            PipelineStatus.CLEANING,
            PipelineStatus.CONVERTING,
            PipelineStatus.SUCCESS,
        ]
        result = events[-1]
        assert isinstance(result, ResultEvent)
        assert result.url == ""
        assert result.html == _ARTICLE_HTML

    async def test_empty_markdown_retries_with_rendered_html(self, settings: Settings) -> None:
        first = _FakeChain(ChainResult(markdown="", backend=None, failures=[StageFailure("worker-ai", "empty output")]))
        retry = _FakeChain(ChainResult(markdown="# Rendered App\n\nClient-side content", backend="gemini"))
        rendered = FetchResult(html=_RENDERED_HTML, source=FetchSource.BROWSER_RENDER)

        with patch("web2md.pipeline.fetch_html", AsyncMock(return_value=_proxy_result(_PROXY_HTML))), \
                patch("web2md.pipeline.fetch_rendered_html", AsyncMock(return_value=rendered)) as render:
            events = await _collect(
                convert_stream(_URL, ScrapeOptions(), settings=settings, chain_factory=_factory(first, retry))
            )

        render.assert_awaited_once_with(_URL, settings)
        assert _statuses(events) == [
            PipelineStatus.SCRAPING,
            PipelineStatus.CLEANING,
            PipelineStatus.CONVERTING,
            PipelineStatus.SUCCESS,
        ]

        warning_index = next(
            i for i, e in enumerate(events)
            if isinstance(e, LogEvent) and e.level == "warn" and e.auto_enable_browser
        )
        converting_index = events.index(StatusEvent(PipelineStatus.CONVERTING))
        success_index = events.index(StatusEvent(PipelineStatus.SUCCESS))
        assert converting_index < warning_index < success_index
        assert events[-1] == ResultEvent(
            url=_URL,
            title="Rendered App",
            markdown="# Rendered App\n\nClient-side content",
            html=_RENDERED_HTML,
        )
        assert sum(isinstance(e, ResultEvent) for e in events) == 1
        assert retry.options is not None and retry.options.use_browser is True
        assert retry.html is not None and "Client-side content" in retry.html

    async def test_retry_failure_is_terminal(self, settings: Settings) -> None:
        first = _FakeChain(ChainResult(markdown="", backend=None))

        with patch("web2md.pipeline.fetch_html", AsyncMock(return_value=_proxy_result(_PROXY_HTML))), \
                patch(
                    "web2md.pipeline.fetch_rendered_html",
                    AsyncMock(side_effect=FetchError("Cloudflare account ID or API key not configured")),
                ):
            events = await _collect(
                convert_stream(_URL, settings=settings, chain_factory=_factory(first))
            )

        error_logs = [log for log in _logs(events) if log.level == "error"]
        assert len(error_logs) == 1
        assert "not configured" in error_logs[0].message
        assert _statuses(events)[-1] is PipelineStatus.ERROR
        assert events[-1] == ErrorEvent(EMPTY_AFTER_RETRY)
        assert not any(isinstance(e, ResultEvent) for e in events)

    async def test_empty_raw_html_result_has_no_retry(self, settings: Settings) -> None:
        first = _FakeChain(ChainResult(markdown="", backend=None))
        render = AsyncMock()

        with patch("web2md.pipeline.fetch_rendered_html", render):
            events = await _collect(
                convert_stream(None, raw_html="<div></div>", settings=settings, chain_factory=_factory(first))
            )

        render.assert_not_awaited()
        assert events[-2] == StatusEvent(PipelineStatus.ERROR)
        assert events[-1] == ErrorEvent(EMPTY_AFTER_RETRY)

    async def test_rendered_fetch_hints_browser_mode(self, settings: Settings) -> None:
        chain = _FakeChain(ChainResult(markdown="# Rendered App", backend="gemini"))
        rendered = FetchResult(html=_RENDERED_HTML, source=FetchSource.BROWSER_RENDER)

        with patch("web2md.pipeline.fetch_html", AsyncMock(return_value=rendered)):
            events = await _collect(
                convert_stream(
                    _URL,
                    ScrapeOptions(use_browser=True),
                    settings=settings,
                    chain_factory=_factory(chain),
                )
            )

        hinted = [log for log in _logs(events) if log.auto_enable_browser]
        assert len(hinted) == 1
        assert hinted[0].to_dict()["autoEnableBrowser"] is True
        assert isinstance(events[-1], ResultEvent)

    async def test_converter_failures_are_logged(self, settings: Settings) -> None:
        chain = _FakeChain(
            ChainResult(
                markdown="Body",
                backend="turndown",
                failures=[StageFailure("gemini", "GEMINI_API_KEY is not defined")],
            )
        )
        events = await _collect(
            convert_stream(None, raw_html=_ARTICLE_HTML, settings=settings, chain_factory=_factory(chain))
        )

        warnings = [log.message for log in _logs(events) if log.level == "warn"]
        assert warnings == ["gemini conversion failed: GEMINI_API_KEY is not defined"]

    async def test_fetch_failure(self, settings: Settings) -> None:
        fetch = AsyncMock(side_effect=FetchError("Failed to fetch via proxy: Content too short"))
        with patch("web2md.pipeline.fetch_html", fetch):
            events = await _collect(
                convert_stream(_URL, settings=settings, chain_factory=_factory())
            )

        assert _statuses(events) == [PipelineStatus.SCRAPING, PipelineStatus.ERROR]
        assert events[-1] == ErrorEvent("Failed to fetch via proxy: Content too short")

    async def test_unexpected_error_is_reported(self, settings: Settings) -> None:
        factory = MagicMock(side_effect=RuntimeError("boom"))
        events = await _collect(
            convert_stream(None, raw_html=_ARTICLE_HTML, settings=settings, chain_factory=factory)
        )

        assert _statuses(events) == [
            PipelineStatus.CLEANING,
            PipelineStatus.CONVERTING,
            PipelineStatus.ERROR,
        ]
        assert events[-1] == ErrorEvent("boom")

    async def test_missing_input(self, settings: Settings) -> None:
        events = await _collect(convert_stream(None, settings=settings, chain_factory=_factory()))

        assert events == [
            StatusEvent(PipelineStatus.ERROR),
            ErrorEvent("Either url or html must be provided"),
        ]
