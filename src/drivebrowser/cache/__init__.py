"""Metadata cache and relationship queries."""

from __future__ import annotations

from .file_cache import ROOT_FOLDER_ID, CacheState, FileCache
from .relations import is_ancestor_of, load_ancestry_path

__all__ = [
    "ROOT_FOLDER_ID",
    "CacheState",
    "FileCache",
    "is_ancestor_of",
    "load_ancestry_path",
]
