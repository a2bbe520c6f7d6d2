"""
robots.txt mirroring: fetch, point at the replacement origin, save.

The file is copied, not interpreted; its directives are never applied to
the crawl.
"""

import urllib.parse
from pathlib import Path

import requests

from wp_static.config import REQUEST_TIMEOUT, RobotsConfig
from wp_static.core.rewrite import build_rewrite_rules, rewrite_text
from wp_static.core.storage import ensure_directory
from wp_static.errors import TransportError
from wp_static.session import build_session
from wp_static.utils.log import log


def rewrite_robots(text: str, source_url: str, replace_url: str) -> str:
    """Replace references to the site of *source_url* with *replace_url*.

    The exact configured URL is replaced first, then every form of the
    host.  Without a replacement URL the text is returned unchanged.
    """
    if not replace_url:
        return text
    text = text.replace(source_url, replace_url)
    host = urllib.parse.urlsplit(source_url).netloc
    return rewrite_text(text, build_rewrite_rules(host, replace_url))


def mirror_robots(session: requests.Session | None, config: RobotsConfig) -> str:
    """Fetch ``config.url``, rewrite it and save it under ``config.output_dir``.

    Returns the saved text.
    """
    session = session or build_session(headers=config.headers)
    try:
        resp = session.get(config.url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        raise TransportError(config.url, f"request failed ({exc})") from exc
    if not resp.ok:
        raise TransportError(config.url, f"HTTP {resp.status_code}", resp.status_code)

    text = rewrite_robots(resp.text, config.url, config.replace_url)

    ensure_directory(Path(config.output_dir))
    target = Path(config.output_dir) / config.file
    target.write_text(text, encoding="utf-8")
    log.info("[ROBOTS] Saved %s → %s", config.url, target)
    return text
