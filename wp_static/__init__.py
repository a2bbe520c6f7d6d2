"""
wp_static
=========
Mirror a dynamic (typically WordPress) website into a static file tree.

Package structure
-----------------
wp_static/
├── __init__.py       – package init and public API
├── __main__.py       – ``python -m wp_static``
├── cli.py            – argparse CLI (scrape / sitemap / robots)
├── config.py         – constants, MirrorConfig, config-file loading
├── errors.py         – exception hierarchy
├── session.py        – requests.Session factory
├── sitemap.py        – sitemap.xml fetch / rewrite / save
├── robots.py         – robots.txt fetch / rewrite / save
├── core/
│   ├── cache.py      – VisitedCache (atomic claim)
│   ├── crawler.py    – Crawler (crawl driver)
│   ├── rewrite.py    – RewriteRule, rewrite_body
│   ├── storage.py    – map_path, save_file
│   └── transport.py  – Transport (fetch scheduling)
├── extraction/       – link extraction from HTML / CSS
└── utils/            – URL resolution and logging

Quick start
-----------
    from pathlib import Path
    from wp_static import Crawler, MirrorConfig

    config = MirrorConfig(url="https://example.com", output_dir=Path("dump"))
    Crawler(config).run()
"""

from .config import MirrorConfig
from .core import Crawler, VisitedCache, map_path, rewrite_body, build_rewrite_rules
from .extraction import extract_links
from .utils import resolve_url

__version__ = "1.0.0"

__all__ = [
    "Crawler",
    "MirrorConfig",
    "VisitedCache",
    "build_rewrite_rules",
    "extract_links",
    "map_path",
    "resolve_url",
    "rewrite_body",
]
