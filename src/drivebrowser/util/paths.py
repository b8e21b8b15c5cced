"""Local filesystem helpers for downloads."""

from __future__ import annotations

import hashlib
import os
from typing import Collection, Iterable
from urllib.parse import parse_qs, urlparse

# Characters rejected by at least one of the supported filesystems.
_INVALID_FILENAME_CHARS: frozenset[str] = frozenset(
    '<>:"/\\|?*' + "".join(chr(i) for i in range(32))
)

PARTIAL_SUFFIX = ".part"


def sanitize_filename(name: str) -> str:
    """Strip characters that cannot appear in a local file name."""
    cleaned = "".join(ch for ch in name if ch not in _INVALID_FILENAME_CHARS)
    if cleaned in ("", ".", ".."):
        return "_"
    return cleaned


def path_exists(path: str, is_directory: bool) -> bool:
    return os.path.isdir(path) if is_directory else os.path.isfile(path)


def unique_path(path: str, is_directory: bool, taken: Collection[str] = ()) -> str:
    """
    Return the first free variant of `path` with a numeric suffix.

    Paths in `taken` count as occupied even if nothing is on disk yet.

    "report.pdf" -> "report 1.pdf", "report 2.pdf", ...
    Directories keep dots in their names, so no extension is split off.
    """
    extension = "" if is_directory else os.path.splitext(path)[1]
    stem = path[: len(path) - len(extension)] + " "

    suffix = 1
    while True:
        candidate = f"{stem}{suffix}{extension}"
        if candidate not in taken and not os.path.exists(candidate):
            return candidate
        suffix += 1


def export_extension(export_link: str) -> str:
    """Derive ".ext" from the exportFormat parameter of a Drive export link."""
    values = parse_qs(urlparse(export_link).query).get("exportFormat")
    if not values or not values[0]:
        return ""
    return "." + values[0]


def remove_partial_output(path: str, sidecar_suffixes: Iterable[str] = ()) -> None:
    """Delete an interrupted download and the marker files next to it."""
    for candidate in [path, *(path + suffix for suffix in sidecar_suffixes)]:
        try:
            os.remove(candidate)
        except FileNotFoundError:
            continue


def md5_of_file(path: str, *, chunk_size: int = 1024 * 1024) -> str:
    """Return the lowercase hex MD5 digest of a local file."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()
