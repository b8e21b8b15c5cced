"""Data model for cached Drive items."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from drivebrowser.util.mime import is_folder
from drivebrowser.util.time import parse_rfc3339_or_none, to_rfc3339

_UNSET: Any = object()


class ChildrenState(str, Enum):
    """Whether a folder's children were fetched from Drive yet."""

    UNKNOWN = "UNKNOWN"
    HAS_CHILDREN = "HAS_CHILDREN"
    NO_CHILDREN = "NO_CHILDREN"


@dataclass(slots=True)
class FileNode:
    """
    One remote file or folder as known to the cache.

    Notes:
        - `id` is the Drive file id and the cache key.
        - `parent_id` is None for top-level items (My Drive root, shared items)
          and for the synthetic root itself.
        - `children` is meaningful only when `children_state` is not UNKNOWN.
    """

    id: str
    name: str
    parent_id: Optional[str] = None
    size: int = 0
    modified_time: Optional[datetime] = None
    is_folder: bool = False
    children: list[str] = field(default_factory=list)
    children_state: ChildrenState = ChildrenState.NO_CHILDREN

    @classmethod
    def from_api(cls, data: dict[str, Any], *, parent_id: Any = _UNSET) -> FileNode:
        """
        Build a node from a Drive `files` resource.

        Args:
            data: Resource dict (id, name, mimeType, size, modifiedTime, parents).
            parent_id: Overrides the first entry of `parents` when given
                (None included).
        """
        file_id = data.get("id")
        name = data.get("name", "")
        mime_type = data.get("mimeType", "")
        folder = is_folder(mime_type) if isinstance(mime_type, str) else False

        if parent_id is _UNSET:
            parents = data.get("parents") or []
            parent_id = parents[0] if isinstance(parents, list) and parents else None

        size = 0
        raw_size = data.get("size")
        if isinstance(raw_size, str) and raw_size.isdigit():
            size = int(raw_size)
        elif isinstance(raw_size, int):
            size = raw_size

        return cls(
            id=file_id if isinstance(file_id, str) else "",
            name=name if isinstance(name, str) else "",
            parent_id=parent_id,
            size=size,
            modified_time=parse_rfc3339_or_none(data.get("modifiedTime")),
            is_folder=folder,
            children_state=ChildrenState.UNKNOWN if folder else ChildrenState.NO_CHILDREN,
        )

    def carry_over_children(self, previous: FileNode) -> None:
        """Keep an already explored subtree when this node replaces `previous`."""
        self.children = previous.children
        self.children_state = previous.children_state

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "size": self.size,
            "modified_time": (
                to_rfc3339(self.modified_time) if self.modified_time is not None else None
            ),
            "is_folder": self.is_folder,
            "children": list(self.children),
            "children_state": self.children_state.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileNode:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            parent_id=data.get("parent_id"),
            size=int(data.get("size") or 0),
            modified_time=parse_rfc3339_or_none(data.get("modified_time")),
            is_folder=bool(data.get("is_folder", False)),
            children=list(data.get("children") or []),
            children_state=ChildrenState(
                data.get("children_state", ChildrenState.UNKNOWN.value)
            ),
        )

    def __str__(self) -> str:
        return self.name
