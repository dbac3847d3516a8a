"""Block-aware HTML pretty-printer for cleaned documents.

Block elements that contain other blocks are opened on their own line and
their children indented; blocks holding only inline content (a paragraph, a
heading, a list item) are printed on a single line so their text flow is
left alone.  ``<pre>`` is emitted verbatim.
"""

from __future__ import annotations

import re
from html import escape

from bs4 import BeautifulSoup, Doctype, NavigableString, Tag

INDENT = "  "

BLOCK_TAGS = frozenset(
    [
        "html", "head", "body", "title", "meta",
        "p", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "pre", "blockquote",
        "ul", "ol", "li", "dl", "dt", "dd",
        "table", "caption", "colgroup", "col", "thead", "tbody", "tfoot",
        "tr", "th", "td",
        "div", "section", "article", "main", "header", "figure", "figcaption",
        "details", "summary", "address",
    ]
)
_VERBATIM_TAGS = frozenset(["pre"])
_NEWLINE_RUN_RE = re.compile(r"\s*\n\s*")


def _attr_value(value) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def _open_tag(tag: Tag) -> str:
    attrs = "".join(
        f' {name}="{escape(_attr_value(value), quote=True)}"'
        for name, value in tag.attrs.items()
    )
    return f"<{tag.name}{attrs}>"


def _has_block_child(tag: Tag) -> bool:
    return any(isinstance(child, Tag) and child.name in BLOCK_TAGS for child in tag.children)


def _format_children(parent: Tag, depth: int, lines: list[str]) -> None:
    indent = INDENT * depth
    run: list[str] = []

    def flush() -> None:
        text = "".join(run)
        run.clear()
        for line in text.split("\n"):
            line = line.strip()
            if line:
                lines.append(indent + line)

    for child in parent.children:
        if isinstance(child, Doctype):
            flush()
            lines.append(indent + child.output_ready().strip())
        elif isinstance(child, Tag) and child.name in BLOCK_TAGS:
            flush()
            if child.name in _VERBATIM_TAGS:
                lines.append(indent + str(child))
            elif _has_block_child(child):
                lines.append(indent + _open_tag(child))
                _format_children(child, depth + 1, lines)
                lines.append(f"{indent}</{child.name}>")
            else:
                lines.append(indent + _NEWLINE_RUN_RE.sub(" ", str(child)).strip())
        elif isinstance(child, NavigableString):
            run.append(child.output_ready())
        else:
            run.append(str(child))
    flush()


def prettify_html(document: str) -> str:
    """Return *document* re-indented by block structure."""
    soup = BeautifulSoup(document, "html.parser")
    lines: list[str] = []
    _format_children(soup, 0, lines)
    return "\n".join(lines) + "\n"
