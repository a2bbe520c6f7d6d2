"""
sitemap.xml mirroring.

Fetches a sitemap (or every child of a sitemap index), optionally points
its locations at the replacement origin, and writes a single merged
``<urlset>`` next to the static mirror.
"""

import time
import urllib.parse
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

import requests

from wp_static.config import DEFAULT_SITEMAP_INTERVAL, REQUEST_TIMEOUT, SitemapConfig
from wp_static.core.rewrite import RewriteRule, build_rewrite_rules, rewrite_text
from wp_static.core.storage import ensure_directory
from wp_static.errors import SitemapError
from wp_static.session import build_session
from wp_static.utils.log import log

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NS = "http://www.google.com/schemas/sitemap-image/1.1"

ET.register_namespace("", SITEMAP_NS)
ET.register_namespace("image", IMAGE_NS)


@dataclass
class SitemapImage:
    loc: str
    title: str = ""
    caption: str = ""
    geo_location: str = ""
    license: str = ""


@dataclass
class SitemapURL:
    loc: str
    lastmod: str = ""
    changefreq: str = ""
    priority: float | None = None
    images: list[SitemapImage] = field(default_factory=list)


@dataclass
class Sitemap:
    urls: list[SitemapURL] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.urls)

    def rewrite(self, rules: tuple[RewriteRule, ...]) -> "Sitemap":
        """Apply origin rewrite *rules* to every location, in place."""
        for entry in self.urls:
            entry.loc = rewrite_text(entry.loc, rules)
            for image in entry.images:
                image.loc = rewrite_text(image.loc, rules)
        return self

    def to_xml(self) -> bytes:
        root = ET.Element(f"{{{SITEMAP_NS}}}urlset")
        for entry in self.urls:
            url_el = ET.SubElement(root, f"{{{SITEMAP_NS}}}url")
            ET.SubElement(url_el, f"{{{SITEMAP_NS}}}loc").text = entry.loc
            if entry.lastmod:
                ET.SubElement(url_el, f"{{{SITEMAP_NS}}}lastmod").text = entry.lastmod
            if entry.changefreq:
                ET.SubElement(url_el, f"{{{SITEMAP_NS}}}changefreq").text = entry.changefreq
            if entry.priority is not None:
                ET.SubElement(url_el, f"{{{SITEMAP_NS}}}priority").text = f"{entry.priority:g}"
            for image in entry.images:
                img_el = ET.SubElement(url_el, f"{{{IMAGE_NS}}}image")
                for tag, value in (
                    ("loc", image.loc),
                    ("title", image.title),
                    ("caption", image.caption),
                    ("geo_location", image.geo_location),
                    ("license", image.license),
                ):
                    if value:
                        ET.SubElement(img_el, f"{{{IMAGE_NS}}}{tag}").text = value
        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def save(self, directory: Path, filename: str) -> Path:
        directory = Path(directory)
        ensure_directory(directory)
        target = directory / filename
        target.write_bytes(self.to_xml() + b"\n")
        return target


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(el: ET.Element, name: str) -> str:
    for child in el:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _parse_root(data: bytes, what: str) -> ET.Element:
    if not data.strip():
        raise SitemapError(f"{what} is empty")
    try:
        return ET.fromstring(data)
    except ET.ParseError as exc:
        raise SitemapError(f"{what} is not valid XML: {exc}") from exc


def parse_sitemap(data: bytes) -> Sitemap:
    """Parse a ``<urlset>`` document."""
    root = _parse_root(data, "sitemap.xml")
    if _local(root.tag) != "urlset":
        raise SitemapError(f"expected <urlset>, got <{_local(root.tag)}>")
    smap = Sitemap()
    for url_el in root:
        if _local(url_el.tag) != "url":
            continue
        priority = _child_text(url_el, "priority")
        try:
            prio = float(priority) if priority else None
        except ValueError:
            prio = None
        images = [
            SitemapImage(
                loc=_child_text(img, "loc"),
                title=_child_text(img, "title"),
                caption=_child_text(img, "caption"),
                geo_location=_child_text(img, "geo_location"),
                license=_child_text(img, "license"),
            )
            for img in url_el if _local(img.tag) == "image"
        ]
        smap.urls.append(SitemapURL(
            loc=_child_text(url_el, "loc"),
            lastmod=_child_text(url_el, "lastmod"),
            changefreq=_child_text(url_el, "changefreq"),
            priority=prio,
            images=images,
        ))
    return smap


def parse_index(data: bytes) -> list[str]:
    """Child sitemap locations of a ``<sitemapindex>`` document."""
    root = _parse_root(data, "sitemapindex.xml")
    if _local(root.tag) != "sitemapindex":
        raise SitemapError(f"expected <sitemapindex>, got <{_local(root.tag)}>")
    return [
        loc for loc in (_child_text(el, "loc") for el in root
                        if _local(el.tag) == "sitemap")
        if loc
    ]


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

def _fetch(session: requests.Session, url: str) -> bytes:
    try:
        resp = session.get(url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        raise SitemapError(f"failed to retrieve {url}: {exc}") from exc
    if not resp.ok:
        raise SitemapError(f"failed to retrieve {url}: HTTP {resp.status_code}")
    return resp.content


def fetch_sitemap(
    session: requests.Session,
    url: str,
    force: bool = False,
    interval: float = DEFAULT_SITEMAP_INTERVAL,
) -> Sitemap:
    """
    Fetch and parse *url*.  A sitemap index is expanded: every child
    sitemap is fetched (``interval`` seconds apart) and merged.

    With *force*, broken children are logged and skipped; the top-level
    document must always be valid.
    """
    data = _fetch(session, url)
    root = _parse_root(data, url)
    if _local(root.tag) == "urlset":
        return parse_sitemap(data)
    if _local(root.tag) != "sitemapindex":
        raise SitemapError(f"{url} is not a sitemap or sitemapindex")

    merged = Sitemap()
    for i, child in enumerate(parse_index(data)):
        if i and interval > 0:
            time.sleep(interval)
        log.info("[SITEMAP] %s", child)
        try:
            merged.urls.extend(parse_sitemap(_fetch(session, child)).urls)
        except SitemapError as exc:
            if not force:
                raise SitemapError(f"in sitemap index {url}: {exc}") from exc
            log.warning("[SITEMAP] Skipping %s: %s", child, exc)
    return merged


def mirror_sitemap(
    session: requests.Session | None,
    config: SitemapConfig,
    interval: float = DEFAULT_SITEMAP_INTERVAL,
) -> Path:
    """Fetch the sitemap of ``config.url``, rewrite it and save it."""
    session = session or build_session(headers=config.headers)
    smap = fetch_sitemap(session, config.url, force=config.force, interval=interval)
    if config.replace_url:
        host = urllib.parse.urlsplit(config.url).netloc
        smap.rewrite(build_rewrite_rules(host, config.replace_url))
    target = smap.save(config.output_dir, config.file)
    log.info("[SITEMAP] %d URL(s) written to %s", len(smap), target)
    return target
