"""CSS URL extraction from url() and @import directives."""

import re

_CSS_URL_RE = re.compile(
    r"""url\(\s*(?:"([^"]*)"|'([^']*)'|([^)'"\s]*))\s*\)""",
    re.I,
)
_CSS_IMPORT_RE = re.compile(r"""@import\s+['"]([^'"]+)['"]""", re.I)


def extract_css_urls(css: str) -> list[str]:
    """Return every ``url(...)`` / ``@import`` reference in *css*, in
    document order, with surrounding quotes and whitespace removed."""
    found: list[str] = []
    for m in _CSS_URL_RE.finditer(css):
        raw = next((g for g in m.groups() if g is not None), "").strip()
        if raw:
            found.append(raw)
    for m in _CSS_IMPORT_RE.finditer(css):
        raw = m.group(1).strip()
        if raw:
            found.append(raw)
    return found
