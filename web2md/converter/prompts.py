"""Prompt contract shared by every AI converter."""

from __future__ import annotations

import re

from web2md.models import ScrapeOptions

MAX_PROMPT_HTML_CHARS = 150_000
TRUNCATION_MARKER = "...[content truncated]"

SYSTEM_INSTRUCTION = (
    "You are an expert HTML-to-Markdown converter specialized in content "
    "extraction. Your sole purpose is to identify the main article content "
    "within HTML and convert it to clean, professional Markdown. You excel at "
    "distinguishing between actual content and web UI noise (navigation, ads, "
    "social widgets). You never add explanations or wrap output in code "
    "blocks - you return pure Markdown only."
)

_IMAGE_RULES = {
    True: (
        "Include images using ![alt text](url) syntax. Use the alt text from "
        "the HTML; inside <figure>, use the <figcaption> as alt text or caption."
    ),
    False: "Remove all images and image references completely.",
}

_LINK_RULES = {
    True: "Preserve hyperlinks using [text](url) syntax.",
    False: "Remove all hyperlinks but preserve the link text inline.",
}

_PROMPT_TEMPLATE = """You are receiving PRE-CLEANED HTML content. Your job is not to summarize, rephrase or extract, but to faithfully transpile the existing structure into valid Markdown.

== TRANSFORMATION RULES ==
1. Headings: map <h1>-<h6> to # through ######.
2. Text: preserve bold and italic using Markdown syntax (**bold**, *italic*).
3. Lists: strictly preserve nesting. Use "-" for unordered and "1." for ordered lists. Indent sub-lists with 4 spaces.
4. Code: convert <pre><code> blocks to fenced ```language blocks. Detect the language if possible.
5. Blockquotes: use > for <blockquote>.
6. Tables: convert HTML tables to Markdown tables. If a table is too complex (nested), preserve its content as a list.
7. Escaping: escape Markdown characters (*, _, [, ]) that are part of the literal text.

== DYNAMIC RULES ==
- {image_rule}
- {link_rule}

== STRICT CONSTRAINTS ==
- DO NOT add a preamble (e.g. "Here is the markdown").
- DO NOT wrap the output in a code block (```).
- DO NOT output the title twice if it is already the first line of the body.
- Return ONLY the raw Markdown string.

== INPUT HTML ==
{html}"""

_FENCE_OPEN_RE = re.compile(r"^```(?:markdown|md)?[ \t]*\n", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```$")


def truncate_html(html: str, limit: int = MAX_PROMPT_HTML_CHARS) -> str:
    if len(html) <= limit:
        return html
    return html[:limit] + TRUNCATION_MARKER


def build_prompt(html: str, options: ScrapeOptions) -> str:
    """Return the user prompt for converting *html* under *options*."""
    return _PROMPT_TEMPLATE.format(
        image_rule=_IMAGE_RULES[options.include_images],
        link_rule=_LINK_RULES[options.include_links],
        html=truncate_html(html),
    )


def strip_code_fences(markdown: str) -> str:
    """Remove a code fence the model wrapped around its whole answer."""
    text = markdown.strip()
    unfenced, opened = _FENCE_OPEN_RE.subn("", text, count=1)
    if not opened:
        return text
    return _FENCE_CLOSE_RE.sub("", unfenced, count=1).strip()
