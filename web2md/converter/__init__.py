"""Converter package — HTML → Markdown via a fallback chain of backends."""

from web2md.converter.chain import ChainResult, ConverterChain, build_default_chain
from web2md.converter.fallback import fallback_convert
from web2md.converter.providers import MarkdownBackend

__all__ = [
    "ChainResult",
    "ConverterChain",
    "MarkdownBackend",
    "build_default_chain",
    "fallback_convert",
]
