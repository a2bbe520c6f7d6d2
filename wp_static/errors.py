"""
Exception hierarchy for the mirror.

Only a bad seed URL (or bad configuration) is fatal; every other error is
raised for a single resource and handled by the crawl driver.
"""


class MirrorError(Exception):
    """Base class for all wp_static errors."""


class ConfigError(MirrorError):
    """Invalid configuration file or option value."""


class UrlParseError(MirrorError, ValueError):
    """A candidate URL could not be parsed or resolved to scheme + host."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason}: {url!r}")
        self.url = url
        self.reason = reason


class ForeignDomainError(MirrorError):
    """A resolved URL points outside the mirrored origin."""

    def __init__(self, url: str, host: str) -> None:
        super().__init__(f"{url} is outside {host}")
        self.url = url
        self.host = host


class DirectoryCreateError(MirrorError, OSError):
    """The output directory for a resource could not be created."""

    def __init__(self, directory, cause: OSError) -> None:
        super().__init__(f"error creating directory {directory}: {cause}")
        self.directory = directory
        self.cause = cause


class TransportError(MirrorError):
    """A fetch failed (network error, HTTP error status, HEAD check)."""

    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        super().__init__(f"{reason} for {url}")
        self.url = url
        self.reason = reason
        self.status = status


class SitemapError(MirrorError):
    """A sitemap could not be retrieved or parsed."""
