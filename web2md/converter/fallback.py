"""Local, deterministic HTML → Markdown conversion.

This is the last stage of the converter chain and must always produce
something: if markdownify itself fails, the tag-stripped text is returned.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from bs4 import BeautifulSoup, Comment, Doctype
from markdownify import ATX, MarkdownConverter

from web2md.models import ScrapeOptions

logger = logging.getLogger(__name__)

_NON_CONTENT_BLOCK_RE = re.compile(
    r"<(head|script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
_TAG_RE = re.compile(r"<[^>]*>?")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def strip_tags(html: str) -> str:
    """Degenerate conversion: the text of *html* with every tag removed."""
    text = _NON_CONTENT_BLOCK_RE.sub("", html or "")
    text = _TAG_RE.sub("", text)
    return _BLANK_LINES_RE.sub("\n\n", text).strip()


class PageMarkdownConverter(MarkdownConverter):
    """markdownify converter with Turndown-like defaults.

    ATX headings, fenced code blocks, ``-`` bullets; tables are rendered as
    GFM pipe tables by markdownify itself.
    """

    def __init__(self, **options: Any) -> None:
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        options.setdefault("code_language", "")
        options.setdefault("wrap", False)
        super().__init__(**options)


def _prepare(html: str, options: ScrapeOptions) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")

    for node in soup.find_all(string=lambda text: isinstance(text, (Comment, Doctype))):
        node.extract()

    for tag in soup.find_all(["head", "title", "script", "style"]):
        if not tag.decomposed:
            tag.decompose()

    if not options.include_images:
        for img in soup.find_all("img"):
            img.decompose()

    for anchor in soup.find_all("a"):
        if anchor.decomposed:
            continue
        if not anchor.get_text().strip() and anchor.find("img") is None:
            anchor.decompose()
        elif not anchor.get("href") or not options.include_links:
            anchor.unwrap()

    return soup


def _tidy(markdown: str) -> str:
    lines = [line.rstrip() for line in markdown.replace("\r\n", "\n").split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def fallback_convert(html: str, options: ScrapeOptions) -> str:
    """Convert *html* to Markdown without any network call.

    Honors ``include_images`` (images dropped) and ``include_links`` (anchors
    unwrapped to their text).  Anchors without an ``href`` are unwrapped and
    anchors with neither text nor an image are dropped either way.

    This is looser than Turndown's empty-link removal, which also deletes
    ``href``-less anchors and text-less anchors around an image: here the
    anchor text and a linked image survive.
    """
    try:
        soup = _prepare(html, options)
        markdown = PageMarkdownConverter().convert_soup(soup)
        return _tidy(markdown)
    except Exception as exc:  # noqa: BLE001
        logger.error("Deterministic markdown conversion failed: %r", exc)
        return strip_tags(html)
