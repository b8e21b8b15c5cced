"""Result models for download invocations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional


UnitStatus = Literal["success", "skipped", "failed", "canceled"]
DownloadStatus = Literal["completed", "canceled", "aborted"]
UnitKind = Literal["file", "folder"]


@dataclass(slots=True)
class UnitResult:
    """Result for a single file transfer or folder exploration."""

    file_id: str
    name: str
    kind: UnitKind
    status: UnitStatus

    local_path: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(slots=True)
class DownloadReport:
    """Aggregate result of one download invocation."""

    status: DownloadStatus
    target_dir: Optional[str]
    results: list[UnitResult] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        summary: dict[str, int] = {"success": 0, "skipped": 0, "failed": 0, "canceled": 0}
        for r in self.results:
            summary[r.status] = summary.get(r.status, 0) + 1
        return summary

    def find(self, file_id: str) -> Optional[UnitResult]:
        for r in self.results:
            if r.file_id == file_id:
                return r
        return None
