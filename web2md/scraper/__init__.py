"""Scraper package — raw HTML retrieval."""

from web2md.scraper.fetcher import fetch_html, fetch_rendered_html, fetch_via_proxy

__all__ = ["fetch_html", "fetch_rendered_html", "fetch_via_proxy"]
