"""Ordered fallback over Markdown backends.

Default order (highest to lowest):
  1. Worker AI — cheapest and fastest.
  2. The user's AI provider (``ScrapeOptions.ai_provider``, default Gemini).
  3. The other AI provider.
  4. Cloudflare Browser Rendering ``/markdown``.
  5. Local markdownify conversion.

``ConverterChain`` tries each backend in order and returns the first
non-blank result.  A backend that raises or returns blank output is logged and
skipped.  If every backend fails, the tag-stripped input is the last resort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from web2md.browser_rendering import BrowserRenderingClient
from web2md.config import Settings
from web2md.converter.fallback import strip_tags
from web2md.converter.providers import (
    BrowserRenderingMarkdownBackend,
    DeepSeekBackend,
    GeminiBackend,
    LocalMarkdownBackend,
    MarkdownBackend,
    WorkerAIBackend,
)
from web2md.models import AIProvider, ScrapeOptions

logger = logging.getLogger(__name__)

LAST_RESORT = "strip-tags"


@dataclass
class StageFailure:
    name: str
    reason: str


@dataclass
class ChainResult:
    """Outcome of one chain run: the Markdown and how it was obtained."""

    markdown: str
    backend: str | None
    failures: list[StageFailure] = field(default_factory=list)


class ConverterChain:
    """Try backends in order; return the first non-blank Markdown."""

    def __init__(self, backends: list[MarkdownBackend]) -> None:
        self._backends = backends

    @property
    def names(self) -> list[str]:
        return [backend.name for backend in self._backends]

    async def run(self, html: str, options: ScrapeOptions) -> ChainResult:
        failures: list[StageFailure] = []
        for backend in self._backends:
            logger.info("Attempting %s conversion", backend.name)
            try:
                markdown = await backend.convert(html, options)
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s conversion failed: %s", backend.name, exc)
                failures.append(StageFailure(backend.name, str(exc) or type(exc).__name__))
                continue

            if markdown and markdown.strip():
                logger.info("%s conversion succeeded length=%d", backend.name, len(markdown))
                return ChainResult(markdown=markdown, backend=backend.name, failures=failures)

            logger.warning("%s returned empty markdown", backend.name)
            failures.append(StageFailure(backend.name, "empty output"))

        text = strip_tags(html)
        logger.error("All converters failed; last-resort text length=%d", len(text))
        return ChainResult(markdown=text, backend=LAST_RESORT if text else None, failures=failures)

    async def convert(self, html: str, options: ScrapeOptions) -> str:
        """Return Markdown for *html*, or ``""`` if nothing could be extracted."""
        return (await self.run(html, options)).markdown


# ---------------------------------------------------------------------------
# Default chain factory
# ---------------------------------------------------------------------------

def _ai_backend(provider: AIProvider, settings: Settings) -> MarkdownBackend:
    if provider == "deepseek":
        return DeepSeekBackend(
            api_key=settings.deepseek_api_key,
            model=settings.deepseek_model,
            base_url=settings.deepseek_base_url,
            timeout=settings.convert_timeout,
        )
    return GeminiBackend(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.convert_timeout,
    )


def build_default_chain(settings: Settings, options: ScrapeOptions) -> ConverterChain:
    """Worker AI → primary AI → secondary AI → Browser Rendering → local."""
    return ConverterChain(
        [
            WorkerAIBackend(settings.worker_ai_url, timeout=settings.convert_timeout),
            _ai_backend(options.ai_provider, settings),
            _ai_backend(options.fallback_provider, settings),
            BrowserRenderingMarkdownBackend(
                BrowserRenderingClient.from_settings(settings, timeout=settings.convert_timeout)
            ),
            LocalMarkdownBackend(),
        ]
    )
