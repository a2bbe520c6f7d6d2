"""
Command-line interface: ``wp-static scrape|sitemap|robots``.

Every option can come from the command line, a ``WGS_<NAME>`` environment
variable or a section of the YAML ``--config`` file, in that order of
precedence.
"""

import argparse
import logging
import sys
from typing import Any, Mapping

import urllib3

from wp_static.config import (
    DEFAULT_OUTPUT, DEFAULT_DELAY, DEFAULT_ROBOTS_FILE, DEFAULT_SITEMAP_FILE,
    MirrorConfig, RobotsConfig, SitemapConfig,
    env_value, load_config_file, normalise_keys,
)
from wp_static.core.crawler import Crawler
from wp_static.errors import ConfigError, MirrorError
from wp_static.robots import mirror_robots
from wp_static.session import build_session, parse_header
from wp_static.sitemap import mirror_sitemap
from wp_static.utils.log import setup_logging, log

# (field, name in env/config file, type) per sub-command
_SCRAPE_OPTIONS = (
    ("url", "url", str),
    ("output_dir", "dir", str),
    ("replace_url", "replace-url", str),
    ("replace", "replace", bool),
    ("parallel", "parallel", bool),
    ("workers", "workers", int),
    ("check_head", "check-head", bool),
    ("images", "images", bool),
    ("extra_pages", "extra-pages", list),
    ("headers", "headers", list),
    ("cache_dir", "cache", str),
    ("delay", "delay", float),
    ("verify_ssl", "verify-ssl", bool),
    ("progress", "progress", bool),
)
_SITEMAP_OPTIONS = (
    ("url", "sitemap-url", str),
    ("output_dir", "dir", str),
    ("replace_url", "replace-url", str),
    ("file", "sitemap-file", str),
    ("force", "force", bool),
    ("headers", "headers", list),
)
_ROBOTS_OPTIONS = (
    ("url", "robots-url", str),
    ("output_dir", "dir", str),
    ("replace_url", "replace-url", str),
    ("file", "robots-file", str),
    ("headers", "headers", list),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wp-static",
        description="Mirror a WordPress (or any) site into static files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  wp-static scrape --url https://example.com\n"
            "  wp-static scrape --url https://example.com --parallel "
            "--replace-url https://static.example.org\n"
            "  wp-static sitemap --url https://example.com/sitemap_index.xml --force\n"
            "  wp-static robots --url https://example.com/robots.txt\n"
        ),
    )
    parser.add_argument(
        "--config", metavar="FILE",
        help="YAML file with 'scrape', 'sitemap' and 'robots' sections",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Write detailed logs to this file (always at DEBUG level)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # All option defaults are None so unset flags fall through to the
    # environment and the config file.
    scrape = sub.add_parser("scrape", help="Crawl a site and save it as static files")
    scrape.add_argument("--url", help="Site to mirror (e.g. https://example.com)")
    scrape.add_argument(
        "--dir", dest="output_dir",
        help=f"Output directory (default: {DEFAULT_OUTPUT})",
    )
    scrape.add_argument(
        "--replace-url", dest="replace_url",
        help="Origin to substitute for the site's own (default: make links relative)",
    )
    scrape.add_argument(
        "--no-replace", dest="replace", action="store_false", default=None,
        help="Save bodies without rewriting absolute links",
    )
    scrape.add_argument(
        "--parallel", action="store_true", default=None,
        help="Fetch with a pool of worker threads",
    )
    scrape.add_argument(
        "--workers", type=int, metavar="N",
        help="Worker threads for --parallel (default: auto from CPU/RAM)",
    )
    scrape.add_argument(
        "--no-check-head", dest="check_head", action="store_false", default=None,
        help="Skip the HEAD request that precedes every GET",
    )
    scrape.add_argument(
        "--no-images", dest="images", action="store_false", default=None,
        help="Do not follow <img> and image srcset references",
    )
    scrape.add_argument(
        "--extra-page", dest="extra_pages", action="append", metavar="URL",
        help="Additional page to fetch even if nothing links to it (repeatable)",
    )
    scrape.add_argument(
        "--header", dest="headers", action="append", metavar="NAME:VALUE",
        help="Extra request header (repeatable)",
    )
    scrape.add_argument(
        "--cache", dest="cache_dir", metavar="DIR",
        help="Keep fetched responses in DIR and reuse them on later runs",
    )
    scrape.add_argument(
        "--delay", type=float,
        help=f"Delay after each request in seconds (default: {DEFAULT_DELAY})",
    )
    scrape.add_argument(
        "--no-verify-ssl", dest="verify_ssl", action="store_false", default=None,
        help="Disable TLS certificate verification",
    )
    scrape.add_argument(
        "--no-progress", dest="progress", action="store_false", default=None,
        help="Hide the progress bar",
    )
    scrape.set_defaults(func=run_scrape, section="scrape")

    smap = sub.add_parser("sitemap", help="Mirror sitemap.xml (expanding sitemap indexes)")
    smap.add_argument("--url", help="Sitemap or sitemap index URL")
    smap.add_argument("--dir", dest="output_dir",
                      help=f"Output directory (default: {DEFAULT_OUTPUT})")
    smap.add_argument("--replace-url", dest="replace_url",
                      help="Origin to substitute in every <loc>")
    smap.add_argument("--file",
                      help=f"Output file name (default: {DEFAULT_SITEMAP_FILE})")
    smap.add_argument("--force", action="store_true", default=None,
                      help="Skip child sitemaps that fail to download or parse")
    smap.add_argument("--header", dest="headers", action="append", metavar="NAME:VALUE",
                      help="Extra request header (repeatable)")
    smap.set_defaults(func=run_sitemap, section="sitemap")

    robots = sub.add_parser("robots", help="Mirror robots.txt")
    robots.add_argument("--url", help="robots.txt URL")
    robots.add_argument("--dir", dest="output_dir",
                        help=f"Output directory (default: {DEFAULT_OUTPUT})")
    robots.add_argument("--replace-url", dest="replace_url",
                        help="Origin to substitute for the site's own")
    robots.add_argument("--file",
                        help=f"Output file name (default: {DEFAULT_ROBOTS_FILE})")
    robots.add_argument("--header", dest="headers", action="append", metavar="NAME:VALUE",
                        help="Extra request header (repeatable)")
    robots.set_defaults(func=run_robots, section="robots")
    return parser


# ---------------------------------------------------------------------------
# Option merging
# ---------------------------------------------------------------------------

def _parse_headers(value: Any) -> dict[str, str]:
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items()}
    headers: dict[str, str] = {}
    for raw in value:
        try:
            name, val = parse_header(raw)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        headers[name] = val
    return headers


def merge_options(
    cls,
    options,
    args: argparse.Namespace,
    section: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Combine flags, ``WGS_*`` variables and a config file section into
    keyword arguments for *cls* (flag > env > file)."""
    merged = normalise_keys(cls, section)
    for name, env_name, kind in options:
        value = env_value(env_name, kind, environ)
        if value is not None:
            merged[name] = value
        value = getattr(args, name, None)
        if value is not None:
            merged[name] = value
    if "headers" in merged:
        merged["headers"] = _parse_headers(merged["headers"])
    merged.setdefault("url", "")
    return merged


# ---------------------------------------------------------------------------
# Sub-commands
# ---------------------------------------------------------------------------

def run_scrape(args: argparse.Namespace, section: Mapping[str, Any]) -> int:
    options = merge_options(MirrorConfig, _SCRAPE_OPTIONS, args, section)
    options.setdefault("progress", sys.stderr.isatty())
    config = MirrorConfig(**options)
    if not config.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        log.warning("TLS certificate verification is DISABLED (--no-verify-ssl)")
    Crawler(config).run()
    return 0


def run_sitemap(args: argparse.Namespace, section: Mapping[str, Any]) -> int:
    config = SitemapConfig(**merge_options(SitemapConfig, _SITEMAP_OPTIONS, args, section))
    mirror_sitemap(build_session(headers=config.headers), config)
    return 0


def run_robots(args: argparse.Namespace, section: Mapping[str, Any]) -> int:
    config = RobotsConfig(**merge_options(RobotsConfig, _ROBOTS_OPTIONS, args, section))
    mirror_robots(build_session(headers=config.headers), config)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(debug=args.debug, log_file=args.log_file)
    if args.debug:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    try:
        config_path = args.config or env_value("config")
        sections = load_config_file(config_path) if config_path else {}
        return args.func(args, sections.get(args.section) or {})
    except KeyboardInterrupt:
        log.warning("Interrupted by user")
        return 130
    except MirrorError as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
