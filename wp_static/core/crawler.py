"""
Site-mirroring crawl driver.

Starting from a seed URL, the crawler fetches every reachable resource on
the origin host and writes it to a static file tree:

* links are found in HTML attributes, ``srcset`` lists and CSS ``url()``
* each distinct URL is claimed once in a shared visited cache before it is
  scheduled, so parallel workers never fetch the same URL twice
* absolute references to the origin are rewritten (made root-relative, or
  pointed at a replacement origin)
* every response is saved under a path derived from its URL and
  Content-Type

A failure on one resource (bad link, fetch error, unwritable directory) is
logged and the crawl carries on.
"""

import threading
import time
import urllib.parse
from collections import Counter

import requests
from tqdm import tqdm

from wp_static.config import BOOTSTRAP_PATHS, MirrorConfig
from wp_static.core.cache import VisitedCache
from wp_static.core.rewrite import build_rewrite_rules, rewrite_body, should_rewrite
from wp_static.core.storage import ensure_directory, map_path, save_file
from wp_static.core.transport import FetchedResource, Transport
from wp_static.errors import ForeignDomainError, TransportError, UrlParseError
from wp_static.extraction import content_kind, extract_links
from wp_static.session import build_session
from wp_static.utils.log import log
from wp_static.utils.url import resolve_url

_FETCHABLE_SCHEMES = ("http", "https")


class Crawler:
    """
    Mirrors ``config.url`` into ``config.output_dir``.

    *session* replaces the default ``requests`` session; *transport*
    replaces the whole fetch layer (it must offer ``visit``, ``wait`` and
    ``close``).
    """

    def __init__(
        self,
        config: MirrorConfig,
        session: requests.Session | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.config = config
        self.origin = config.origin
        self.rules = (
            build_rewrite_rules(config.host, config.replace_url)
            if config.replace else ()
        )
        self._visited = VisitedCache()
        self._stats: Counter[str] = Counter()
        self._lock = threading.Lock()
        self._bar: tqdm | None = None

        if transport is None:
            if session is None:
                session = build_session(
                    verify_ssl=config.verify_ssl,
                    headers=config.headers,
                    pool_size=max(10, config.worker_count) if config.parallel else 10,
                )
            transport = Transport(
                session,
                allowed_host=config.hostname,
                on_response=self.handle_response,
                on_error=self.handle_error,
                parallel=config.parallel,
                workers=config.worker_count if config.parallel else 1,
                check_head=config.check_head,
                delay=config.delay,
                cache_dir=config.cache_dir,
            )
        self.transport = transport

    @property
    def visited(self) -> VisitedCache:
        return self._visited

    @property
    def stats(self) -> dict[str, int]:
        with self._lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> dict[str, int]:
        """Crawl to completion and return the outcome counters."""
        seed = resolve_url(self.origin, self.config.url)
        ensure_directory(self.config.output_dir)

        log.info("Output directory : %s", self.config.output_dir.resolve())
        log.info("Target URL       : %s", seed)
        log.info("Allowed host     : %s", self.config.hostname)
        if self.rules:
            log.info("Rewrite          : %s → %r", self.config.host,
                     self.config.replace_url or "(relative)")
        if self.config.parallel:
            log.info("Fetching         : parallel (%d workers)", self.config.worker_count)
        else:
            log.info("Fetching         : sequential")

        t0 = time.monotonic()
        self._bar = tqdm(
            desc="Mirroring",
            unit="URL",
            total=0,
            dynamic_ncols=True,
            bar_format="{l_bar}{bar}| {n}/{total} [{elapsed}<{remaining}] {postfix}",
            disable=not self.config.progress,
        )
        try:
            for path in BOOTSTRAP_PATHS:
                self._visit_bootstrap(urllib.parse.urljoin(self.origin + "/", path))
            self._visited.try_claim(seed)
            self._schedule(seed)
            for page in self.config.extra_pages:
                self.visit_url(page, self.origin, force=True)
            self.transport.wait()
        finally:
            self._bar.close()
            self.transport.close()

        stats = self.stats
        log.info(
            "Mirror complete in %.1f s. visited=%d  saved=%d  errors=%d  "
            "save_errors=%d  skipped=%d",
            time.monotonic() - t0,
            len(self._visited),
            stats.get("saved", 0),
            stats.get("fetch_error", 0),
            stats.get("save_error", 0),
            stats.get("invalid", 0) + stats.get("foreign", 0),
        )
        log.info("Files saved in: %s", self.config.output_dir.resolve())
        return stats

    def visit_url(self, candidate: str, base: str | None = None, force: bool = False) -> bool:
        """
        Resolve *candidate* against *base* (default: the origin), claim it
        and schedule it.  Returns True when a fetch was scheduled.

        With *force* the URL is scheduled even if it was already claimed.
        """
        try:
            url = resolve_url(base or self.origin, candidate)
        except UrlParseError as exc:
            log.debug("[SKIP] %s", exc)
            self._count("invalid")
            return False

        if urllib.parse.urlsplit(url).scheme.lower() not in _FETCHABLE_SCHEMES:
            log.debug("[SKIP] Unsupported scheme: %s", url)
            self._count("invalid")
            return False

        claimed = self._visited.try_claim(url)
        if not claimed and not force:
            return False
        return self._schedule(url)

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def handle_response(self, resource: FetchedResource) -> None:
        """Discover links in *resource*, rewrite it and save it."""
        if resource.method != "GET":
            log.debug("[SKIP] %s response for %s is not saved",
                      resource.method, resource.url)
            self._advance()
            return

        # A redirect target counts as visited too.
        self._visited.try_claim(resource.url)

        kind = content_kind(resource.content_type, resource.url)
        if kind is not None:
            for link in extract_links(resource.body, kind, images=self.config.images):
                self.visit_url(link, resource.url)

        body = resource.body
        if self.rules and should_rewrite(resource.content_type):
            body = rewrite_body(body, self.rules)
            if body != resource.body:
                log.debug("[REWRITE] %s (%d → %d bytes)",
                          resource.url, len(resource.body), len(body))

        try:
            location = map_path(resource.url, resource.content_type, self.config.output_dir)
            path = save_file(location, body)
        except OSError as exc:
            log.error("[ERR] Could not save %s: %s", resource.url, exc)
            self._count("save_error")
        else:
            log.info("[SAVE] %s → %s", resource.url, path)
            self._count("saved")
        self._advance()

    def handle_error(self, exc: TransportError) -> None:
        log.warning("[ERR] %s", exc)
        self._count("fetch_error")
        self._advance()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _visit_bootstrap(self, url: str) -> None:
        """Well-known path: scheduled unconditionally, then marked visited so
        later discoveries of the same URL are dropped."""
        log.debug("[BOOTSTRAP] %s", url)
        self._visited.try_claim(url)
        self._schedule(url)

    def _schedule(self, url: str) -> bool:
        try:
            self.transport.visit(url)
        except ForeignDomainError as exc:
            log.debug("[SKIP] %s", exc)
            self._count("foreign")
            return False
        with self._lock:
            self._stats["scheduled"] += 1
            if self._bar is not None:
                self._bar.total += 1
                self._bar.refresh()
        return True

    def _count(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

    def _advance(self) -> None:
        with self._lock:
            if self._bar is not None:
                self._bar.update(1)
                self._bar.set_postfix(
                    saved=self._stats["saved"],
                    err=self._stats["fetch_error"] + self._stats["save_error"],
                )
