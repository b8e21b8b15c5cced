"""Activity and search feeds."""

from __future__ import annotations

from .activity import UNKNOWN_USER, fetch_activity, resolve_actor_name
from .search import search_files

__all__ = [
    "UNKNOWN_USER",
    "fetch_activity",
    "resolve_actor_name",
    "search_files",
]
