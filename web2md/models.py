"""Data models for the web-to-markdown pipeline.

These are plain Python objects created fresh for every request; nothing here
outlives a single pipeline run.  Each event type knows its own wire shape
(``to_dict``) so transports can serialise the stream without inspecting it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Literal, Mapping, Union, get_args

from web2md.errors import ValidationError

AIProvider = Literal["gemini", "deepseek"]
LogLevel = Literal["info", "warn", "error", "debug"]

# camelCase wire key -> dataclass field
_OPTION_KEYS = {
    "includeImages": "include_images",
    "includeLinks": "include_links",
    "useBrowser": "use_browser",
    "aiProvider": "ai_provider",
}


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScrapeOptions:
    """Per-run options, immutable for the duration of a pipeline run."""

    include_images: bool = True
    include_links: bool = True
    use_browser: bool = False
    ai_provider: AIProvider = "gemini"

    def __post_init__(self) -> None:
        if self.ai_provider not in get_args(AIProvider):
            raise ValidationError(
                f"Unknown AI provider {self.ai_provider!r}; "
                f"expected one of {', '.join(get_args(AIProvider))}"
            )

    @property
    def fallback_provider(self) -> AIProvider:
        """The AI provider tried after :attr:`ai_provider`."""
        return "deepseek" if self.ai_provider == "gemini" else "gemini"

    def with_browser(self) -> "ScrapeOptions":
        """Return a copy with ``use_browser`` forced on."""
        return replace(self, use_browser=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ScrapeOptions":
        """Build options from a request payload.

        Accepts the camelCase wire keys as well as the snake_case field names.
        Unknown keys and ``None`` values are ignored so defaults apply.
        """
        if not data:
            return cls()
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _OPTION_KEYS.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "includeImages": self.include_images,
            "includeLinks": self.include_links,
            "useBrowser": self.use_browser,
            "aiProvider": self.ai_provider,
        }


# ---------------------------------------------------------------------------
# Stage outputs
# ---------------------------------------------------------------------------

class FetchSource(str, Enum):
    PROXY = "proxy"
    BROWSER_RENDER = "browserRender"


@dataclass
class FetchResult:
    """Raw HTML produced by the fetcher, tagged with how it was obtained."""

    html: str
    source: FetchSource
    proxy_url: str | None = None
    char_count: int = field(init=False)

    def __post_init__(self) -> None:
        self.char_count = len(self.html)


@dataclass
class CleanedDocument:
    """Output of the HTML cleaner."""

    title: str
    html: str


@dataclass
class ScrapeResponse:
    url: str
    title: str
    html: str
    source: FetchSource
    chars: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "html": self.html,
            "source": self.source.value,
            "chars": self.chars,
        }


@dataclass
class CleanResponse:
    url: str | None
    title: str
    cleaned_html: str
    chars: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "cleanedHtml": self.cleaned_html,
            "chars": self.chars,
        }


# ---------------------------------------------------------------------------
# Pipeline events
# ---------------------------------------------------------------------------

class PipelineStatus(str, Enum):
    SCRAPING = "SCRAPING"
    CLEANING = "CLEANING"
    CONVERTING = "CONVERTING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class StatusEvent:
    status: PipelineStatus

    def to_dict(self) -> dict[str, Any]:
        return {"type": "status", "status": self.status.value}


@dataclass(frozen=True)
class LogEvent:
    level: LogLevel
    message: str
    # Hint for the UI that enabling browser rendering may help.
    auto_enable_browser: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": "log",
            "level": self.level,
            "message": self.message,
        }
        if self.auto_enable_browser:
            payload["autoEnableBrowser"] = True
        return payload


@dataclass(frozen=True)
class ResultEvent:
    url: str
    title: str
    markdown: str
    html: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "result",
            "data": {
                "url": self.url,
                "title": self.title,
                "markdown": self.markdown,
                "html": self.html,
            },
        }


@dataclass(frozen=True)
class ErrorEvent:
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "error", "message": self.message}


PipelineEvent = Union[StatusEvent, LogEvent, ResultEvent, ErrorEvent]
