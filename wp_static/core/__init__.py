"""Core mirror logic: crawl driver, visited cache, rewriting and storage."""

from wp_static.core.cache import VisitedCache
from wp_static.core.crawler import Crawler
from wp_static.core.rewrite import RewriteRule, build_rewrite_rules, rewrite_body
from wp_static.core.storage import OutputLocation, map_path, save_file
from wp_static.core.transport import FetchedResource, Transport

__all__ = [
    "Crawler",
    "FetchedResource",
    "OutputLocation",
    "RewriteRule",
    "Transport",
    "VisitedCache",
    "build_rewrite_rules",
    "map_path",
    "rewrite_body",
    "save_file",
]
