"""
HTTP session creation for the mirror.

Provides sessions with:
* Automatic retry logic on 5xx errors
* Connection pooling sized for the parallel fetch workers
* A browser User-Agent and user-supplied extra headers
"""

import random
from typing import Mapping

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from wp_static.config import MAX_RETRIES, RETRY_STATUS_FORCELIST, USER_AGENTS


def build_session(
    verify_ssl: bool = True,
    headers: Mapping[str, str] | None = None,
    pool_size: int = 20,
) -> requests.Session:
    """Return a ``requests.Session`` with retry logic, keep-alive and
    browser-like headers.  *headers* are applied last and win."""
    session = requests.Session()
    retry = Retry(
        total=MAX_RETRIES,
        backoff_factor=0.5,
        status_forcelist=list(RETRY_STATUS_FORCELIST),
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(
        max_retries=retry,
        pool_connections=pool_size,
        pool_maxsize=pool_size,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = verify_ssl
    session.headers.update({
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    })
    if headers:
        session.headers.update(dict(headers))
    return session


def parse_header(raw: str) -> tuple[str, str]:
    """Split a ``Name: value`` command-line header."""
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"header must look like 'Name: value', got {raw!r}")
    return name.strip(), value.strip()
