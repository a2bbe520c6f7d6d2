"""
URL resolution helpers.
"""

import urllib.parse

from wp_static.errors import UrlParseError


def resolve_url(origin: str, candidate: str) -> str:
    """
    Convert *candidate* (as found in markup) to an absolute URL.

    Absolute candidates are returned as-is; relative ones (path-relative,
    root-relative, scheme-relative, query-only) are resolved against
    *origin*.  The fragment is always dropped since it never names a
    distinct resource.

    Raises ``UrlParseError`` when the candidate cannot be parsed or the
    result lacks a scheme or host (``mailto:``, ``data:``, ...).
    """
    raw = candidate.strip()
    if not raw:
        raise UrlParseError(candidate, "empty URL")

    try:
        parsed = urllib.parse.urlsplit(raw)
        if not (parsed.scheme and parsed.netloc):
            raw = urllib.parse.urljoin(origin, raw)
            parsed = urllib.parse.urlsplit(raw)
        # Accessing .port validates the netloc (raises on "host:abc").
        parsed.port
    except ValueError as exc:
        raise UrlParseError(candidate, f"error parsing URL ({exc})") from exc

    if not parsed.scheme or not parsed.hostname:
        raise UrlParseError(candidate, "invalid URL")

    # "https://example.com" and "https://example.com/" are the same page
    if not parsed.path:
        parsed = parsed._replace(path="/")
        raw = urllib.parse.urlunsplit(parsed)
    if parsed.fragment or raw.endswith("#"):
        raw = urllib.parse.urlunsplit(parsed._replace(fragment=""))
    return raw


def parse_origin(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*."""
    parsed = urllib.parse.urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        raise UrlParseError(url, "URL must include scheme and host")
    return f"{parsed.scheme}://{parsed.netloc}"


def url_host(url: str) -> str:
    """Lower-cased hostname of *url* (no port), ``""`` when absent."""
    return (urllib.parse.urlsplit(url).hostname or "").lower()


def is_same_host(url: str, host: str) -> bool:
    """True when *url* lives on *host* (case-insensitive, port ignored)."""
    return url_host(url) == host.lower()
