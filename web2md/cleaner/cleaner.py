"""HTML cleaning: turns raw page HTML into a :class:`CleanedDocument`.

The heavy lifting happens in :mod:`web2md.cleaner.passes`; this module
parses the input, runs the passes in order, applies the final text polish and
wraps the result in a minimal, pretty-printed document shell.
"""

from __future__ import annotations

import logging
import re
from html import escape

from bs4 import BeautifulSoup

from web2md.cleaner.formatting import prettify_html
from web2md.cleaner.passes import CleanContext, run_passes
from web2md.cleaner.title import UNTITLED, extract_title
from web2md.models import CleanedDocument, ScrapeOptions

logger = logging.getLogger(__name__)

_HEADING_SPACE_RE = re.compile(r"<(h[1-6])(\s[^>]*)?>\s*(.*?)\s*</\1>", re.IGNORECASE | re.DOTALL)
_BLANK_RUN_RE = re.compile(r"\n\s*\n\s*\n")
_WHITESPACE_LINE_RE = re.compile(r"^[ \t\r\f\v]+$", re.MULTILINE)
_EMPTY_P_RE = re.compile(r"<p>\s*</p>", re.IGNORECASE)

_SHELL = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
{body}
</body>
</html>"""


def polish(body_html: str) -> str:
    """Final regex clean-up of the serialised body."""
    body_html = _HEADING_SPACE_RE.sub(
        lambda m: f"<{m.group(1)}{m.group(2) or ''}>{m.group(3)}</{m.group(1)}>",
        body_html,
    )
    body_html = _BLANK_RUN_RE.sub("\n\n", body_html)
    body_html = _WHITESPACE_LINE_RE.sub("", body_html)
    body_html = _EMPTY_P_RE.sub("", body_html)
    return body_html.strip()


def render_document(title: str, body_html: str) -> str:
    """Wrap *body_html* in the document shell and pretty-print it.

    Formatting is best effort: if the pretty-printer fails, the unformatted
    shell is returned.
    """
    raw_output = _SHELL.format(title=escape(title, quote=False), body=body_html)
    try:
        return prettify_html(raw_output)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Pretty-printing failed, returning raw document: %r", exc)
        return raw_output


def _content_root(soup: BeautifulSoup):
    return soup.body or soup.html or soup


def clean_html(
    raw_html: str,
    base_url: str | None = None,
    options: ScrapeOptions | None = None,
) -> CleanedDocument:
    """Clean *raw_html* and return its title and cleaned HTML.

    Never raises for malformed input: if parsing or a pass blows up, the
    result is a near-empty document rather than an exception.

    Args:
        raw_html: The page HTML as fetched.
        base_url: Used to absolutise ``href``/``src`` values; relative URLs
            are left alone when omitted.
        options: Image/link handling; defaults to keeping both.
    """
    ctx = CleanContext(base_url=base_url or None, options=options or ScrapeOptions())

    try:
        soup = BeautifulSoup(raw_html or "", "html.parser")
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to parse HTML: %r", exc)
        return CleanedDocument(title=UNTITLED, html=render_document(UNTITLED, ""))

    title = extract_title(soup)

    try:
        soup = run_passes(soup, ctx)
        body_html = _content_root(soup).decode_contents()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Cleaning failed for base_url=%s: %r", base_url, exc)
        body_html = ""

    document = render_document(title, polish(body_html))
    logger.info("Cleaned HTML title=%r chars=%d", title, len(document))
    return CleanedDocument(title=title, html=document)
