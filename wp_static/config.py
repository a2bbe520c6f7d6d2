"""
Configuration constants and run configuration for the mirror.
"""

import os
import urllib.parse
from dataclasses import dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from wp_static.errors import ConfigError, UrlParseError
from wp_static.utils.url import parse_origin

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_OUTPUT = "dump"
DEFAULT_DELAY = 0.0            # seconds between requests
DEFAULT_SITEMAP_FILE = "sitemap.xml"
DEFAULT_ROBOTS_FILE = "robots.txt"
DEFAULT_SITEMAP_INTERVAL = 1.0  # seconds between child sitemap fetches
ENV_PREFIX = "WGS_"

# Limits for auto-concurrency calculation
_MIN_WORKERS = 2
_MAX_WORKERS = 32
_RAM_PER_WORKER_MB = 64        # estimated RSS per worker thread


def auto_concurrency() -> int:
    """Calculate the number of parallel fetch workers from available CPU
    cores and system RAM.

    Heuristic:
      * Start with ``cpu_count * 2`` (I/O-bound workload).
      * Cap by available RAM (``free_mb / _RAM_PER_WORKER_MB``).
      * Clamp between ``_MIN_WORKERS`` and ``_MAX_WORKERS``.
    """
    cpus = os.cpu_count() or 2
    workers = cpus * 2

    try:
        with open("/proc/meminfo") as f:
            for line in f:
                if line.startswith("MemAvailable:"):
                    mem_mb = int(line.split()[1]) // 1024
                    workers = min(workers, max(1, mem_mb // _RAM_PER_WORKER_MB))
                    break
    except (OSError, ValueError):
        pass

    return max(_MIN_WORKERS, min(workers, _MAX_WORKERS))


# ---------------------------------------------------------------------------
# Transport tuning
# ---------------------------------------------------------------------------
REQUEST_TIMEOUT = 30
MAX_RETRIES = 3
RETRY_STATUS_FORCELIST = (500, 502, 503, 504)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 "
    "Firefox/125.0",
]

# Well-known paths fetched once per crawl, regardless of discovery.
BOOTSTRAP_PATHS = ("robots.txt", "favicon.ico")

# ---------------------------------------------------------------------------
# Content types
# ---------------------------------------------------------------------------
HTML_TYPES = frozenset({"text/html", "application/xhtml+xml"})
CSS_TYPES = frozenset({"text/css"})

# Bodies of these types go through the origin rewrite; everything else
# (images, fonts, archives) is saved byte-for-byte.
TEXT_TYPES = frozenset({
    "text/html",
    "application/xhtml+xml",
    "text/css",
    "text/javascript",
    "application/javascript",
    "application/x-javascript",
    "application/json",
    "application/ld+json",
    "text/xml",
    "application/xml",
    "application/rss+xml",
    "application/atom+xml",
    "application/rdf+xml",
    "application/xslt+xml",
    "image/svg+xml",
    "text/plain",
    "application/manifest+json",
})

# MIME type -> file extension, consulted before ``mimetypes``.
EXTENSION_MAP = {
    "text/html":             ".html",
    "application/xhtml+xml": ".html",
    "text/css":              ".css",
    "application/javascript": ".js",
    "text/javascript":       ".js",
    "application/json":      ".json",
    "application/ld+json":   ".json",
    "text/xml":              ".xml",
    "application/xml":       ".xml",
    "application/rss+xml":   ".xml",
    "application/atom+xml":  ".xml",
    "application/rdf+xml":   ".xml",
    "text/plain":            ".txt",
    "image/png":             ".png",
    "image/jpeg":            ".jpg",
    "image/gif":             ".gif",
    "image/svg+xml":         ".svg",
    "image/x-icon":          ".ico",
    "image/vnd.microsoft.icon": ".ico",
    "image/webp":            ".webp",
    "image/avif":            ".avif",
    "font/woff":             ".woff",
    "font/woff2":            ".woff2",
    "font/ttf":              ".ttf",
    "font/otf":              ".otf",
    "application/pdf":       ".pdf",
}


# ---------------------------------------------------------------------------
# Run configuration
# ---------------------------------------------------------------------------

def _frozen_headers(headers: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(headers or {}))


@dataclass(frozen=True)
class MirrorConfig:
    """Immutable configuration for one crawl run."""

    url: str
    output_dir: Path = Path(DEFAULT_OUTPUT)
    replace_url: str = ""
    replace: bool = True
    parallel: bool = False
    workers: int = 0               # 0 = auto_concurrency()
    check_head: bool = True
    images: bool = True
    extra_pages: tuple[str, ...] = ()
    headers: Mapping[str, str] = field(default_factory=dict)
    cache_dir: Path | None = None
    delay: float = DEFAULT_DELAY
    verify_ssl: bool = True
    progress: bool = True

    # Keys as spelled in config files and WGS_* variables.
    _ALIASES = {
        "dir": "output_dir",
        "replace-url": "replace_url",
        "check-head": "check_head",
        "extra-pages": "extra_pages",
        "cache": "cache_dir",
        "verify-ssl": "verify_ssl",
    }

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("a URL to scrape is required")
        parsed = urllib.parse.urlsplit(self.url)
        if not parsed.scheme or not parsed.hostname:
            raise UrlParseError(self.url, "seed URL must include scheme and host")
        object.__setattr__(self, "output_dir", Path(self.output_dir))
        if self.cache_dir is not None:
            object.__setattr__(self, "cache_dir", Path(self.cache_dir))
        object.__setattr__(self, "extra_pages", tuple(self.extra_pages))
        object.__setattr__(self, "headers", _frozen_headers(self.headers))
        if self.workers < 0:
            raise ConfigError(f"workers must be >= 0, got {self.workers}")
        if self.delay < 0:
            raise ConfigError(f"delay must be >= 0, got {self.delay}")

    @property
    def origin(self) -> str:
        """``scheme://host[:port]`` of the mirrored site."""
        return parse_origin(self.url)

    @property
    def host(self) -> str:
        """Host (with port, if any) used to build the rewrite rules."""
        return urllib.parse.urlsplit(self.url).netloc

    @property
    def hostname(self) -> str:
        """Lower-cased host name without port; the allowed domain."""
        return (urllib.parse.urlsplit(self.url).hostname or "").lower()

    @property
    def worker_count(self) -> int:
        return self.workers or auto_concurrency()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MirrorConfig":
        """Build a config from a file section / merged option mapping."""
        return cls(**normalise_keys(cls, data))


@dataclass(frozen=True)
class SitemapConfig:
    url: str
    output_dir: Path = Path(DEFAULT_OUTPUT)
    replace_url: str = ""
    file: str = DEFAULT_SITEMAP_FILE
    force: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)

    _ALIASES = {"dir": "output_dir", "replace-url": "replace_url",
                "sitemap-url": "url", "sitemap-file": "file"}

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("a sitemap URL is required")
        object.__setattr__(self, "output_dir", Path(self.output_dir))
        object.__setattr__(self, "headers", _frozen_headers(self.headers))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SitemapConfig":
        return cls(**normalise_keys(cls, data))


@dataclass(frozen=True)
class RobotsConfig:
    url: str
    output_dir: Path = Path(DEFAULT_OUTPUT)
    replace_url: str = ""
    file: str = DEFAULT_ROBOTS_FILE
    headers: Mapping[str, str] = field(default_factory=dict)

    _ALIASES = {"dir": "output_dir", "replace-url": "replace_url",
                "robots-url": "url", "robots-file": "file"}

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("a robots.txt URL is required")
        object.__setattr__(self, "output_dir", Path(self.output_dir))
        object.__setattr__(self, "headers", _frozen_headers(self.headers))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RobotsConfig":
        return cls(**normalise_keys(cls, data))


def normalise_keys(cls, data: Mapping[str, Any]) -> dict[str, Any]:
    """Map file/env spellings (``replace-url``) onto dataclass fields."""
    names = {f.name for f in fields(cls)}
    out: dict[str, Any] = {}
    for key, value in data.items():
        name = cls._ALIASES.get(key, key.replace("-", "_"))
        if name not in names:
            raise ConfigError(f"unknown option '{key}'")
        out[name] = value
    return out


# ---------------------------------------------------------------------------
# Config file / environment
# ---------------------------------------------------------------------------

def load_config_file(path: str | Path) -> dict[str, dict[str, Any]]:
    """Read a YAML config file with optional ``scrape``, ``sitemap`` and
    ``robots`` sections."""
    path = Path(path).expanduser()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(
            f"top level of {path} must be a mapping, got {type(data).__name__}"
        )
    for section, value in data.items():
        if section not in ("scrape", "sitemap", "robots"):
            raise ConfigError(f"unknown section '{section}' in {path}")
        if not isinstance(value, dict):
            raise ConfigError(f"section '{section}' in {path} must be a mapping")
    return data


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def env_value(name: str, kind: type = str, environ: Mapping[str, str] | None = None):
    """Read ``WGS_<NAME>`` (dashes become underscores), converted to *kind*.

    Returns ``None`` when the variable is unset.
    """
    environ = os.environ if environ is None else environ
    raw = environ.get(ENV_PREFIX + name.upper().replace("-", "_"))
    if raw is None:
        return None
    if kind is bool:
        low = raw.strip().lower()
        if low in _TRUE:
            return True
        if low in _FALSE:
            return False
        raise ConfigError(f"{ENV_PREFIX}{name.upper()}: expected a boolean, got {raw!r}")
    if kind is list:
        return [item.strip() for item in raw.split(",") if item.strip()]
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name.upper()}: {exc}") from exc
