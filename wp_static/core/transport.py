"""
Fetch scheduling on top of a ``requests.Session``.

The transport owns request execution: it queues URLs handed to
:meth:`Transport.visit`, fetches them (sequentially, or on a thread pool
when parallel fetching is enabled) and reports every outcome through the
``on_response`` / ``on_error`` callbacks.  Callbacks may schedule more work;
:meth:`Transport.wait` returns once nothing is queued or in flight.
"""

import hashlib
import json
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import requests

from wp_static.config import REQUEST_TIMEOUT
from wp_static.errors import ForeignDomainError, TransportError
from wp_static.utils.log import log
from wp_static.utils.url import is_same_host

# HEAD statuses that say nothing about the GET (method simply unsupported).
_HEAD_INCONCLUSIVE = frozenset({405, 501})


@dataclass(frozen=True)
class FetchedResource:
    """One completed fetch, handed to the ``on_response`` callback."""

    url: str
    method: str
    body: bytes
    content_type: str
    status: int = 200
    from_cache: bool = False


class ResponseCache:
    """On-disk cache of successful GET responses, keyed by URL."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _paths(self, url: str) -> tuple[Path, Path]:
        key = hashlib.sha256(url.encode("utf-8")).hexdigest()
        sub = self.directory / key[:2]
        return sub / f"{key}.body", sub / f"{key}.json"

    def get(self, url: str) -> FetchedResource | None:
        body_path, meta_path = self._paths(url)
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            body = body_path.read_bytes()
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            log.debug("[CACHE] Ignoring unreadable entry for %s: %s", url, exc)
            return None
        return FetchedResource(
            url=meta.get("url", url),
            method="GET",
            body=body,
            content_type=meta.get("content_type", ""),
            status=meta.get("status", 200),
            from_cache=True,
        )

    def put(self, requested_url: str, resource: FetchedResource) -> None:
        body_path, meta_path = self._paths(requested_url)
        body_path.parent.mkdir(parents=True, exist_ok=True)
        body_path.write_bytes(resource.body)
        meta_path.write_text(
            json.dumps({
                "url": resource.url,
                "content_type": resource.content_type,
                "status": resource.status,
            }),
            encoding="utf-8",
        )


class Transport:
    """Schedules and executes fetches for one crawl."""

    def __init__(
        self,
        session: requests.Session,
        allowed_host: str,
        on_response: Callable[[FetchedResource], None],
        on_error: Callable[[TransportError], None] | None = None,
        *,
        parallel: bool = False,
        workers: int = 4,
        check_head: bool = False,
        delay: float = 0.0,
        cache_dir: Path | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.session = session
        self.allowed_host = allowed_host
        self.on_response = on_response
        self.on_error = on_error
        self.check_head = check_head
        self.delay = delay
        self.timeout = timeout
        self.cache = ResponseCache(cache_dir) if cache_dir else None

        self._queue: deque[str] = deque()
        self._executor: ThreadPoolExecutor | None = None
        if parallel:
            self._executor = ThreadPoolExecutor(
                max_workers=max(1, workers), thread_name_prefix="fetch",
            )
        self._cond = threading.Condition()
        self._pending = 0

    @property
    def parallel(self) -> bool:
        return self._executor is not None

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def visit(self, url: str) -> None:
        """Schedule a GET of *url*; raises ``ForeignDomainError`` for URLs
        outside the allowed host."""
        if not is_same_host(url, self.allowed_host):
            raise ForeignDomainError(url, self.allowed_host)
        if self._executor is None:
            self._queue.append(url)
            return
        with self._cond:
            self._pending += 1
        try:
            self._executor.submit(self._run, url)
        except RuntimeError:
            # executor already shut down
            self._done()
            raise

    def wait(self) -> None:
        """Block until every scheduled fetch (including ones scheduled by
        callbacks meanwhile) has completed."""
        if self._executor is None:
            while self._queue:
                self._run(self._queue.popleft())
            return
        with self._cond:
            while self._pending:
                self._cond.wait()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self.session.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _done(self) -> None:
        with self._cond:
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()

    def _run(self, url: str) -> None:
        try:
            try:
                resource = self.fetch(url)
            except TransportError as exc:
                if self.on_error is not None:
                    self.on_error(exc)
                else:
                    log.warning("[ERR] %s", exc)
            else:
                self.on_response(resource)
        except Exception:
            log.exception("[ERR] Unhandled error while processing %s", url)
        finally:
            if self.delay:
                time.sleep(self.delay)
            if self._executor is not None:
                self._done()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch(self, url: str) -> FetchedResource:
        """Fetch *url* (HEAD check first when enabled)."""
        if self.cache is not None:
            cached = self.cache.get(url)
            if cached is not None:
                log.debug("[CACHE] %s", url)
                return cached

        if self.check_head:
            self._check_head(url)

        log.info("[GET] %s", url)
        try:
            resp = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            raise TransportError(url, f"request failed ({exc})") from exc

        final_url = resp.url or url
        if final_url != url and not is_same_host(final_url, self.allowed_host):
            raise TransportError(url, f"redirected off-site to {final_url}")
        if not resp.ok:
            raise TransportError(url, f"HTTP {resp.status_code}", resp.status_code)

        resource = FetchedResource(
            url=final_url,
            method="GET",
            body=resp.content,
            content_type=resp.headers.get("Content-Type", ""),
            status=resp.status_code,
        )
        log.debug(
            "  ← HTTP %s  CT: %s  %d bytes",
            resp.status_code, resource.content_type, len(resource.body),
        )
        if self.cache is not None:
            try:
                self.cache.put(url, resource)
            except OSError as exc:
                log.warning("[CACHE] Could not store %s: %s", url, exc)
        return resource

    def _check_head(self, url: str) -> None:
        log.debug("[HEAD] %s", url)
        try:
            head = self.session.head(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            raise TransportError(url, f"HEAD request failed ({exc})") from exc
        if head.status_code >= 400 and head.status_code not in _HEAD_INCONCLUSIVE:
            raise TransportError(
                url, f"HEAD check returned HTTP {head.status_code}", head.status_code,
            )
