"""Link extraction from fetched HTML and CSS."""

from wp_static.extraction.links import CSS, HTML, content_kind, extract_links

__all__ = ["CSS", "HTML", "content_kind", "extract_links"]
