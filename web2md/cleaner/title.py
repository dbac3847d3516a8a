"""Page-title extraction with a fallback chain for noisy ``<title>`` tags."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

UNTITLED = "Untitled Page"

_MAX_TITLE_CHARS = 150
_GARBAGE_MARKERS = ("Navigation", "Dropdown", "Search")
_MIN_H1_CHARS = 5

# "|" splits anywhere; dashes only when spaced, so "Self-Driving Cars" stays
# whole while "Article - Site" and "Article — Site" split.
_SEPARATOR_RE = re.compile(r"\s*\|\s*|\s+[-–—]\s+")


def _text(tag) -> str:
    if tag is None:
        return ""
    return " ".join(tag.get_text().split())


def _is_garbage(title: str) -> bool:
    if not title or len(title) > _MAX_TITLE_CHARS:
        return True
    return any(marker in title for marker in _GARBAGE_MARKERS)


def _first_segment(title: str) -> str:
    for segment in _SEPARATOR_RE.split(title):
        segment = segment.strip()
        if segment:
            return segment
    return ""


def extract_title(soup: BeautifulSoup) -> str:
    """Return a human-readable title for *soup*.

    ``<title>`` text is used unless it looks like scraped UI chrome (too long,
    or mentions navigation/dropdown/search widgets), in which case a
    meaningful first ``<h1>`` wins.  Either way the text is cut at the first
    site-name separator; an empty result becomes ``"Untitled Page"``.
    """
    title = _text(soup.find("title"))

    if _is_garbage(title):
        h1 = _text(soup.find("h1"))
        if len(h1) > _MIN_H1_CHARS:
            heading = _first_segment(h1)
            if heading:
                return heading

    return _first_segment(title) or UNTITLED
