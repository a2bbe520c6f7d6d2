"""
HTML attribute extraction via BeautifulSoup.
"""

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup
from bs4.element import Tag

from wp_static.extraction.css import extract_css_urls
from wp_static.utils.log import log

_BS4_PARSER = "lxml"

# (tag, attribute) pairs whose value is a single URL.
_URL_ATTRS = (
    ("a", "href"),
    ("link", "href"),
    ("script", "src"),
    ("img", "src"),
)


def parse_srcset(value: str) -> list[str]:
    """URLs of a ``srcset`` value (``"a.jpg 1x, /b.jpg 2x"``), descriptors
    dropped."""
    urls: list[str] = []
    for candidate in value.split(","):
        candidate = candidate.strip()
        if not candidate:
            continue
        url = candidate.split()[0]
        if url:
            urls.append(url)
    return urls


def _attr(el: Tag, name: str) -> str:
    val = el.get(name)
    if isinstance(val, list):
        val = " ".join(val)
    return val.strip() if isinstance(val, str) else ""


def extract_html_attrs(html: bytes | str, images: bool = True) -> list[str]:
    """
    Extract resource URLs from HTML: ``a``/``link`` hrefs, ``script``/``img``
    srcs, every ``srcset`` entry and ``url()`` references in inline
    ``<style>`` blocks.  With *images* off, ``img`` references are skipped.
    """
    found: list[str] = []

    try:
        soup = BeautifulSoup(html, _BS4_PARSER)
    except ParserRejectedMarkup as exc:
        log.debug("Unparseable HTML skipped: %s", exc)
        return found

    for tag, attr in _URL_ATTRS:
        if tag == "img" and not images:
            continue
        for el in soup.find_all(tag):
            val = _attr(el, attr)
            if val:
                found.append(val)

    for el in soup.find_all(srcset=True):
        if el.name in ("img", "source") and not images:
            continue
        found.extend(parse_srcset(_attr(el, "srcset")))

    for style_el in soup.find_all("style"):
        found.extend(extract_css_urls(style_el.get_text()))

    return found
