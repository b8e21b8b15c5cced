"""Activity feed entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Optional


class ActivityType(IntEnum):
    """Kinds of Drive changes shown in the activity feed (ordered for sorting)."""

    CREATE = 0
    DELETE = 1
    EDIT = 2
    MOVE = 3
    RENAME = 4
    RESTORE = 5
    UNKNOWN = 6


@dataclass(slots=True)
class ActivityEntry:
    """
    One change event projected for display.

    `file_id` is None (and `size` unknown) when the item was deleted for good.
    """

    type: ActivityType
    relative_path: str
    username: str
    is_folder: bool = False
    file_id: Optional[str] = None
    size: Optional[int] = None
    timestamp: Optional[datetime] = None

    def __str__(self) -> str:
        return f"{self.type.name.capitalize()} {self.relative_path}"
