"""Utility helpers for URL resolution and logging."""

from wp_static.utils.url import resolve_url, parse_origin, url_host, is_same_host
from wp_static.utils.log import setup_logging, log

__all__ = [
    "resolve_url",
    "parse_origin",
    "url_host",
    "is_same_host",
    "setup_logging",
    "log",
]
