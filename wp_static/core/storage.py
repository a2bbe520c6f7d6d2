"""
File storage helpers: mapping URLs to local paths and saving content.
"""

import mimetypes
import posixpath
import urllib.parse
from dataclasses import dataclass
from pathlib import Path

from wp_static.config import EXTENSION_MAP
from wp_static.errors import DirectoryCreateError
from wp_static.utils.log import log


@dataclass(frozen=True)
class OutputLocation:
    """Where a fetched resource lands on disk."""

    directory: Path
    filename: str

    @property
    def path(self) -> Path:
        return self.directory / self.filename


def extension_for(content_type: str) -> str:
    """File extension for *content_type*, ``.html`` when unknown."""
    ct = content_type.split(";")[0].strip().lower()
    ext = EXTENSION_MAP.get(ct) or (mimetypes.guess_extension(ct) if ct else None)
    if not ext:
        ext = ".html"
    if ext == ".htm":
        ext = ".html"
    return ext


def _safe_url_path(url: str) -> str:
    """Decoded URL path, normalised so it can never climb above ``/``."""
    path = urllib.parse.unquote(urllib.parse.urlsplit(url).path)
    path = path.replace("\\", "/").replace("\x00", "")
    trailing = path.endswith("/")
    path = posixpath.normpath("/" + path)
    # normpath keeps a leading "//"
    path = "/" + path.lstrip("/")
    if trailing and path != "/":
        path += "/"
    return path


def map_path(url: str, content_type: str, output_dir: Path) -> OutputLocation:
    """
    Derive the directory and file name for *url* under *output_dir*.

    ``/css/site.css`` keeps its name; ``/``, ``/blog/`` and extensionless
    paths such as ``/blog/post`` become ``index<ext>`` inside the matching
    directory, with the extension taken from *content_type*.

    Creates the directory (and parents) if needed; raises
    ``DirectoryCreateError`` when that fails.
    """
    path = _safe_url_path(url)
    if path.endswith("/"):
        dir_part, name = path, ""
    else:
        dir_part, name = posixpath.split(path)

    ext = posixpath.splitext(name)[1]
    if not name or not ext or ext == ".":
        # Extensionless names are served as directory indexes.
        if name:
            dir_part = posixpath.join(dir_part, name)
        name = "index" + extension_for(content_type)

    rel = dir_part.strip("/")
    directory = Path(output_dir) / rel if rel else Path(output_dir)
    ensure_directory(directory)
    return OutputLocation(directory, name)


def ensure_directory(directory: Path) -> None:
    """Create *directory* if absent; safe to race with other workers."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryCreateError(directory, exc) from exc


def save_file(location: OutputLocation, content: bytes) -> Path:
    """Write *content* to *location* (last write wins)."""
    target = location.path
    target.write_bytes(content)
    log.debug("Saved → %s (%d bytes)", target, len(content))
    return target
