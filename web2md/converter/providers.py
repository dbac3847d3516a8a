"""Markdown conversion backends.

Every backend shares one interface: ``await backend.convert(html, options)``
returns Markdown, returns ``""`` when it produced nothing, or raises
:class:`~web2md.errors.ConversionError`.  Backends are built from explicit
configuration; none of them reads the environment.

Backends
--------
``worker-ai``
    Small hosted model behind a Cloudflare Worker.  Fast and cheap.
``gemini`` / ``deepseek``
    LangChain chat models driven by the shared prompt in
    :mod:`web2md.converter.prompts`.
``cloudflare-markdown``
    Browser Rendering's non-AI ``/markdown`` endpoint.
``turndown``
    Local markdownify conversion; never needs the network.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from langchain_core.messages import HumanMessage, SystemMessage

from web2md.browser_rendering import BrowserRenderingClient
from web2md.converter.fallback import fallback_convert
from web2md.converter.prompts import SYSTEM_INSTRUCTION, build_prompt, strip_code_fences
from web2md.errors import ConversionError
from web2md.models import ScrapeOptions

logger = logging.getLogger(__name__)

_AI_TEMPERATURE = 0.1


def _message_text(message: Any) -> str:
    """Return the text of a LangChain message whose content may be parts."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content or "")


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class MarkdownBackend(ABC):
    """Abstract base class for a single conversion backend."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name used in logs and progress events."""

    @abstractmethod
    async def convert(self, html: str, options: ScrapeOptions) -> str:
        """Return Markdown for *html*; ``""`` means "nothing produced"."""


# ---------------------------------------------------------------------------
# Worker AI
# ---------------------------------------------------------------------------

class WorkerAIBackend(MarkdownBackend):
    """POST the HTML to the Worker AI endpoint; expects ``{"markdown": ...}``."""

    def __init__(self, url: str, timeout: float = 120.0) -> None:
        self.url = url
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "worker-ai"

    async def convert(self, html: str, options: ScrapeOptions) -> str:
        if not self.url:
            raise ConversionError("WORKER_AI_URL is not configured")

        payload = {
            "html": html,
            "options": {
                "includeImages": options.include_images,
                "includeLinks": options.include_links,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ConversionError(
                f"Worker returned status {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ConversionError(f"Worker AI request failed: {exc!r}") from exc

        markdown = data.get("markdown") if isinstance(data, dict) else None
        return markdown if isinstance(markdown, str) else ""


# ---------------------------------------------------------------------------
# LLM providers
# ---------------------------------------------------------------------------

class LLMBackend(MarkdownBackend):
    """Shared prompt/response handling for chat-model backends."""

    def __init__(self, api_key: str, model: str, timeout: float = 120.0) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @abstractmethod
    def _build_llm(self) -> Any:
        """Return a LangChain chat model (imported lazily)."""

    async def convert(self, html: str, options: ScrapeOptions) -> str:
        llm = self._build_llm()
        messages = [
            SystemMessage(content=SYSTEM_INSTRUCTION),
            HumanMessage(content=build_prompt(html, options)),
        ]
        try:
            response = await llm.ainvoke(messages)
        except Exception as exc:  # noqa: BLE001
            raise ConversionError(f"{self.name} API error: {exc}") from exc
        return strip_code_fences(_message_text(response))


class GeminiBackend(LLMBackend):
    @property
    def name(self) -> str:
        return "gemini"

    def _build_llm(self) -> Any:
        if not self.api_key:
            raise ConversionError("GEMINI_API_KEY is not defined")
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            model=self.model,
            google_api_key=self.api_key,
            temperature=_AI_TEMPERATURE,
            timeout=self.timeout,
        )


class DeepSeekBackend(LLMBackend):
    """DeepSeek through its OpenAI-compatible API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.deepseek.com",
        timeout: float = 120.0,
    ) -> None:
        super().__init__(api_key, model, timeout)
        self.base_url = base_url

    @property
    def name(self) -> str:
        return "deepseek"

    def _build_llm(self) -> Any:
        if not self.api_key:
            raise ConversionError("DEEPSEEK_API_KEY is not defined")
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=self.model,
            api_key=self.api_key,
            base_url=self.base_url,
            temperature=_AI_TEMPERATURE,
            timeout=self.timeout,
        )


# ---------------------------------------------------------------------------
# Non-AI backends
# ---------------------------------------------------------------------------

class BrowserRenderingMarkdownBackend(MarkdownBackend):
    def __init__(self, client: BrowserRenderingClient) -> None:
        self.client = client

    @property
    def name(self) -> str:
        return "cloudflare-markdown"

    async def convert(self, html: str, options: ScrapeOptions) -> str:
        return await self.client.markdown(html, ConversionError)


class LocalMarkdownBackend(MarkdownBackend):
    @property
    def name(self) -> str:
        return "turndown"

    async def convert(self, html: str, options: ScrapeOptions) -> str:
        return fallback_convert(html, options)
