"""web2md — turn a web page or raw HTML into clean Markdown."""

__version__ = "0.1.0"
