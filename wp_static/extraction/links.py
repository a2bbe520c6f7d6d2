"""
Master link-extraction dispatcher.

Delegates to the appropriate sub-extractor based on Content-Type and
file extension.
"""

import urllib.parse

from wp_static.config import CSS_TYPES, HTML_TYPES
from wp_static.extraction.css import extract_css_urls
from wp_static.extraction.html_parser import extract_html_attrs

HTML = "html"
CSS = "css"

_HTML_EXTS = (".html", ".htm", ".php", ".xhtml")


def content_kind(content_type: str, url: str = "") -> str | None:
    """Return ``"html"``, ``"css"`` or ``None`` (not parsed for links)."""
    ct = content_type.split(";")[0].strip().lower()
    if ct in HTML_TYPES:
        return HTML
    if ct in CSS_TYPES:
        return CSS
    path = urllib.parse.urlsplit(url).path.lower()
    if not ct or ct in ("text/plain", "application/octet-stream"):
        if path.endswith(_HTML_EXTS):
            return HTML
        if path.endswith(".css"):
            return CSS
    return None


def extract_links(content: bytes | str, kind: str | None, images: bool = True) -> list[str]:
    """
    Return the raw (possibly relative) URLs referenced by *content*.

    Duplicates are kept; deduplication happens when links are claimed.
    """
    if kind == HTML:
        return extract_html_attrs(content, images=images)
    if kind == CSS:
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        return extract_css_urls(content)
    return []
