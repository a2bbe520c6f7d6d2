"""
Origin rewriting for fetched bodies.

Absolute references to the mirrored host are replaced textually, so links
such as ``https://example.com/about/`` become ``/about/`` (or point at a
configured replacement origin).  The JSON/JS-escaped forms
(``https:\\/\\/example.com``) that WordPress emits inside inline scripts are
covered too.  This is a plain substring replace: it will also hit the host
string inside unrelated text.
"""

from dataclasses import dataclass
from typing import Iterable

from wp_static.config import TEXT_TYPES


@dataclass(frozen=True)
class RewriteRule:
    pattern: bytes
    replacement: bytes

    def apply(self, body: bytes) -> bytes:
        return body.replace(self.pattern, self.replacement)


def build_rewrite_rules(host: str, replace_url: str = "") -> tuple[RewriteRule, ...]:
    """Return the four rules for *host*, in the order they are applied.

    With an empty *replace_url* every occurrence is deleted, leaving
    root-relative paths.
    """
    replacement = replace_url.encode("utf-8")
    host_b = host.encode("utf-8")
    patterns = (
        b"http://" + host_b,
        b"http:\\/\\/" + host_b,
        b"https://" + host_b,
        b"https:\\/\\/" + host_b,
    )
    return tuple(RewriteRule(p, replacement) for p in patterns)


def rewrite_body(body: bytes, rules: Iterable[RewriteRule]) -> bytes:
    """Apply *rules* in sequence; each rule sees the previous output."""
    for rule in rules:
        body = rule.apply(body)
    return body


def should_rewrite(content_type: str) -> bool:
    """Textual (or undeclared) bodies are rewritten; binaries are saved
    untouched."""
    ct = content_type.split(";")[0].strip().lower()
    return not ct or ct in TEXT_TYPES or ct.startswith("text/")


def rewrite_text(text: str, rules: Iterable[RewriteRule]) -> str:
    """``rewrite_body`` for already-decoded text (sitemaps, robots.txt)."""
    return rewrite_body(text.encode("utf-8"), rules).decode("utf-8")
