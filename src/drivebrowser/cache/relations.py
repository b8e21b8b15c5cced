"""Ancestor queries and breadcrumb reconstruction over the FileCache."""

from __future__ import annotations

import logging
from typing import Optional

from drivebrowser.models import FileNode

from .file_cache import ROOT_FOLDER_ID, FileCache

logger = logging.getLogger(__name__)


def is_ancestor_of(cache: FileCache, ancestor: FileNode, node: FileNode) -> bool:
    """
    Return True if `ancestor` appears on the parent chain of `node`.

    The walk follows cached `parent_id` links only. It stops (False) at a
    None parent, at a parent that is not cached, or when a cycle is found.
    The synthetic root is the ancestor of every other node.
    """
    if ancestor.id == ROOT_FOLDER_ID:
        return node.id != ROOT_FOLDER_ID

    visited: set[str] = {node.id}
    parent_id = node.parent_id

    while parent_id:
        if parent_id == ancestor.id:
            return True
        if parent_id in visited:
            logger.warning("Cycle in cached parent chain of %s at %s", node.id, parent_id)
            return False
        visited.add(parent_id)

        parent = cache.get_or_null(parent_id)
        if parent is None:
            return False
        parent_id = parent.parent_id

    return False


async def load_ancestry_path(
    cache: FileCache,
    node: FileNode,
    stop_at_id: Optional[str] = None,
) -> list[FileNode]:
    """
    Build the path from the outermost known ancestor down to `node`.

    Notes:
        - The folder `stop_at_id` itself is not included.
        - Missing ancestors are fetched on demand; a deleted ancestor
          truncates the path instead of failing.

    Returns:
        Oldest-first list ending with `node`.
    """
    path: list[FileNode] = [node]
    visited: set[str] = {node.id}
    current = node

    while current.parent_id and current.parent_id != stop_at_id:
        if current.parent_id in visited:
            logger.warning("Cycle in parent chain of %s at %s", node.id, current.parent_id)
            break
        parent = await cache.get_or_fetch(current.parent_id)
        if parent is None:
            break
        visited.add(parent.id)
        path.append(parent)
        current = parent

    path.reverse()
    return path
