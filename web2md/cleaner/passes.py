"""The individual DOM passes of the HTML cleaner.

Every pass has the signature ``pass_(soup, ctx) -> soup`` and only touches
the tree it is given, so each one can be exercised on its own in tests.
``CLEANING_PASSES`` fixes their order: deletion runs before the density and
noise filters, those run before unwrapping, and attribute stripping comes
last (link density, for instance, needs the anchors that the final pass may
flatten).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urljoin

from bs4 import (
    BeautifulSoup,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)

from web2md.models import ScrapeOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanContext:
    """Inputs shared by all passes of one cleaning run."""

    base_url: str | None = None
    options: ScrapeOptions = field(default_factory=ScrapeOptions)


Pass = Callable[[BeautifulSoup, CleanContext], BeautifulSoup]


# ---------------------------------------------------------------------------
# Selector tables
# ---------------------------------------------------------------------------

DELETE_SELECTORS = ", ".join(
    [
        # non-content markup
        "script", "style", "link", "meta", "noscript", "template", "head", "title",
        # form controls
        "button", "input", "select", "textarea", "option", "optgroup",
        # media and embeds
        "svg", "canvas", "map", "iframe", "embed", "object", "video", "audio",
        "frame", "frameset", "dialog", "[role='img']:not(img)",
        # page chrome
        "nav", "footer", "aside", ".nav", ".navbar", ".footer",
        # ads, widgets, overlays
        "[class*='ad-']", "[class*='ads-']", "[id*='ad-']",
        "[class*='share']", "[class*='social']", "[class*='subscribe']",
        "[class*='cookie']", "[class*='popup']", "[class*='modal']",
        "[class*='comment']", "[class*='sidebar']",
        # Notion exports
        ".notion-collection-header", ".notion-property-list",
        ".notion-topbar", ".notion-sidebar-container",
        # article metadata blocks
        ".meta", ".metadata", ".post-meta", ".entry-meta", ".properties-table",
    ]
)

LINE_NUMBER_SELECTORS = (
    "[class*='line-numbers'], [class*='lineno'], [class*='gutter'], .ln"
)

BLOCK_UNWRAP_TAGS = (
    "div", "section", "article", "main", "header",
    "fieldset", "form", "hgroup", "figure", "figcaption",
)
INLINE_UNWRAP_TAGS = (
    "span", "font", "center", "big", "small", "u", "ins",
    "slot", "label", "legend", "picture",
)
# Parents in which an unwrapped block must not break the line.
INLINE_CONTEXT_TAGS = frozenset(
    ["h1", "h2", "h3", "h4", "h5", "h6", "a", "li", "button"]
)
HEADING_TAGS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6"])

_LINK_DENSITY_MAX = 0.6
_LINK_DENSITY_MIN_CHARS = 5
_LINK_DENSITY_MAX_CHARS = 500
_NOISE_MAX_CHARS = 20

_NUMERIC_RE = re.compile(r"[0-9\s]+")
_DIGITS_RE = re.compile(r"[0-9]+")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _alive(tag: Tag) -> bool:
    """``False`` once *tag* (or an ancestor) has been decomposed."""
    return not tag.decomposed


def _resolve(url: str, base_url: str | None) -> str:
    if not base_url:
        return url
    try:
        return urljoin(base_url, url)
    except ValueError:
        return url


def _image_source(img: Tag) -> str:
    """Best source for *img*: ``data-src``, then ``src``, then ``srcset``."""
    for attr in ("data-src", "src"):
        value = img.get(attr)
        if isinstance(value, str) and value.strip():
            return value.strip().split()[0]
    srcset = img.get("srcset")
    if isinstance(srcset, str) and srcset.strip():
        first_candidate = srcset.strip().split(",")[0].strip()
        if first_candidate:
            return first_candidate.split()[0]
    return ""


def _keeps_attribute(tag_name: str, attr: str) -> bool:
    if attr in ("colspan", "rowspan"):
        return True
    if tag_name == "a":
        return attr in ("href", "title")
    if tag_name == "img":
        return attr in ("src", "alt", "title")
    if tag_name in HEADING_TAGS:
        return attr == "id"
    return False


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------

def remove_markup_noise(soup: BeautifulSoup, ctx: CleanContext) -> BeautifulSoup:
    """Drop comments, doctypes and processing instructions."""
    markup_types = (Comment, Doctype, Declaration, ProcessingInstruction)
    for node in soup.find_all(string=lambda text: isinstance(text, markup_types)):
        node.extract()
    return soup


def delete_noise_elements(soup: BeautifulSoup, ctx: CleanContext) -> BeautifulSoup:
    """Remove every element matched by the static denylist."""
    for tag in soup.select(DELETE_SELECTORS):
        if _alive(tag):
            tag.decompose()
    return soup


def _strip_leading_text_gutter(block: Tag) -> None:
    """Drop a bare ``1\\n2\\n3\\n`` gutter that prefixes a block's first text."""
    if not block.contents or not isinstance(block.contents[0], NavigableString):
        return
    first = block.contents[0]
    lines = str(first).split("\n")

    numbered = 0
    index = 0
    for index, line in enumerate(lines):
        stripped = line.strip()
        if _DIGITS_RE.fullmatch(stripped):
            numbered += 1
        elif stripped:
            break
    else:
        # Nothing but numbers: that's content, not a gutter.
        return

    if numbered >= 2:
        first.replace_with(NavigableString("\n".join(lines[index:])))


def strip_code_line_numbers(soup: BeautifulSoup, ctx: CleanContext) -> BeautifulSoup:
    """Remove line-number gutters from ``<pre>`` and ``<code>`` blocks.

    Numeric-only children go only when they are clearly a column (several
    lines) or a short index sitting first in the block, so numbers that are
    part of the code survive.
    """
    for block in soup.find_all(["pre", "code"]):
        if not _alive(block):
            continue

        for gutter in block.select(LINE_NUMBER_SELECTORS):
            if _alive(gutter):
                gutter.decompose()

        first_child = block.contents[0] if block.contents else None
        for child in block.find_all(["code", "span", "div", "td"]):
            if not _alive(child):
                continue
            text = child.get_text()
            if not _NUMERIC_RE.fullmatch(text):
                continue
            line_count = len([line for line in text.split("\n") if line.strip()])
            if line_count > 1:
                child.decompose()
            elif child is first_child and len(text.strip()) < 4:
                child.decompose()

        _strip_leading_text_gutter(block)
    return soup


def _visible_length(text: str) -> int:
    return len("".join(text.split()))


def filter_link_dense_blocks(soup: BeautifulSoup, ctx: CleanContext) -> BeautifulSoup:
    """Remove short blocks that are mostly link text (menus, link lists).

    Lengths count non-whitespace characters only, so re-indentation and the
    spacing left by unwrapping cannot change the verdict on a later run.
    """
    for tag in soup.find_all(["p", "div", "li", "ul", "ol"]):
        if not _alive(tag):
            continue
        text_length = _visible_length(tag.get_text())
        if text_length <= _LINK_DENSITY_MIN_CHARS or text_length > _LINK_DENSITY_MAX_CHARS:
            continue
        link_length = sum(_visible_length(a.get_text()) for a in tag.find_all("a"))
        if link_length / text_length > _LINK_DENSITY_MAX:
            tag.decompose()
    return soup


def filter_symbol_noise(soup: BeautifulSoup, ctx: CleanContext) -> BeautifulSoup:
    """Remove empty or purely decorative ``p``/``div``/``span`` elements."""
    for tag in soup.find_all(["p", "div", "span"]):
        if not _alive(tag):
            continue
        # Whitespace spans inside highlighted code are significant.
        if tag.find_parent("pre") is not None:
            continue
        if tag.find("img") is not None:
            continue
        text = tag.get_text().strip()
        if not text:
            tag.decompose()
        elif len(text) < _NOISE_MAX_CHARS and not any(ch.isalnum() for ch in text):
            tag.decompose()
    return soup


def unwrap_wrappers(soup: BeautifulSoup, ctx: CleanContext) -> BeautifulSoup:
    """Replace structural wrappers with their children.

    Block wrappers leave a newline on each side so adjacent text does not run
    together; inside headings, links, list items and buttons a single space
    is used instead.  Inline decoration is unwrapped without any padding.
    """
    for tag in soup.find_all(BLOCK_UNWRAP_TAGS):
        if not _alive(tag) or tag.parent is None:
            continue
        if tag.parent.name in INLINE_CONTEXT_TAGS:
            tag.insert_after(" ")
        else:
            tag.insert_before("\n")
            tag.insert_after("\n")
        tag.unwrap()

    for tag in soup.find_all(INLINE_UNWRAP_TAGS):
        if _alive(tag) and tag.parent is not None:
            tag.unwrap()
    return soup


def _process_anchor(tag: Tag, ctx: CleanContext) -> bool:
    """Normalise one ``<a>``; return ``False`` if it left the tree."""
    if not ctx.options.include_links:
        tag.unwrap()
        return False

    text = tag.get_text().strip()
    images = tag.find_all("img")
    if not text and not images:
        tag.decompose()
        return False

    href = tag.get("href")
    if not isinstance(href, str) or not href.strip():
        tag.unwrap()
        return False
    href = href.strip()

    if len(images) == 1 and not text:
        image_url = _image_source(images[0])
        if image_url and (href == image_url or image_url in href or href in image_url):
            tag.unwrap()
            return False

    tag["href"] = _resolve(href, ctx.base_url)
    return True


def _process_image(tag: Tag, ctx: CleanContext) -> bool:
    """Normalise one ``<img>``; return ``False`` if it left the tree."""
    if not ctx.options.include_images:
        tag.decompose()
        return False

    source = _image_source(tag)
    if not source:
        tag.decompose()
        return False

    tag["src"] = _resolve(source, ctx.base_url)
    return True


def normalize_attributes(soup: BeautifulSoup, ctx: CleanContext) -> BeautifulSoup:
    """Flatten or resolve links and images, then apply the attribute allowlist."""
    for tag in soup.find_all(True):
        if not _alive(tag) or tag.parent is None:
            continue

        name = tag.name.lower()
        if name == "a" and not _process_anchor(tag, ctx):
            continue
        if name == "img" and not _process_image(tag, ctx):
            continue

        tag.attrs = {
            attr: value
            for attr, value in tag.attrs.items()
            if _keeps_attribute(name, attr)
        }
    return soup


CLEANING_PASSES: tuple[Pass, ...] = (
    remove_markup_noise,
    delete_noise_elements,
    strip_code_line_numbers,
    filter_link_dense_blocks,
    filter_symbol_noise,
    unwrap_wrappers,
    normalize_attributes,
)


def run_passes(
    soup: BeautifulSoup,
    ctx: CleanContext,
    passes: tuple[Pass, ...] = CLEANING_PASSES,
) -> BeautifulSoup:
    for pass_ in passes:
        soup = pass_(soup, ctx)
        logger.debug("Cleaning pass %s done", pass_.__name__)
    return soup
