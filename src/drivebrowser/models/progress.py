"""Download progress tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from .file_node import FileNode


class ProgressObserver(Protocol):
    """Receives progress notifications for one download invocation."""

    def on_unit_started(self, node: FileNode) -> None: ...

    def on_unit_progress(self, node: FileNode, downloaded_bytes: int) -> None: ...

    def on_unit_finished(self, node: FileNode, completed: bool) -> None: ...

    def on_total_count_changed(self, total_count: int) -> None: ...

    def on_completed(self, state: DownloadProgressState) -> None: ...


class NullProgressObserver:
    """Observer that ignores every notification."""

    def on_unit_started(self, node: FileNode) -> None:
        pass

    def on_unit_progress(self, node: FileNode, downloaded_bytes: int) -> None:
        pass

    def on_unit_finished(self, node: FileNode, completed: bool) -> None:
        pass

    def on_total_count_changed(self, total_count: int) -> None:
        pass

    def on_completed(self, state: DownloadProgressState) -> None:
        pass


@dataclass
class DownloadProgressState:
    """
    Progress of one download invocation.

    Notes:
        - `total_count` grows while folders are explored.
        - `in_flight` maps node id -> bytes downloaded so far.
        - Byte progress reaches the observer at most once per
          `report_interval` bytes (plus the final value of each unit).
    """

    total_count: int
    report_interval: int = 1_048_576
    observer: ProgressObserver = field(default_factory=NullProgressObserver)
    completed_count: int = 0
    in_flight: dict[str, int] = field(default_factory=dict)
    _reported: dict[str, int] = field(default_factory=dict, repr=False)

    def add_expected(self, count: int) -> None:
        if count <= 0:
            return
        self.total_count += count
        self.observer.on_total_count_changed(self.total_count)

    def unit_started(self, node: FileNode) -> None:
        self.in_flight[node.id] = 0
        self._reported[node.id] = 0
        self.observer.on_unit_started(node)

    def set_progress(self, node: FileNode, downloaded_bytes: int) -> None:
        current = self.in_flight.get(node.id)
        if current is None or downloaded_bytes < current:
            return
        self.in_flight[node.id] = downloaded_bytes

        last = self._reported.get(node.id, 0)
        finished = node.size > 0 and downloaded_bytes >= node.size
        if downloaded_bytes - last >= self.report_interval or (finished and downloaded_bytes > last):
            self._reported[node.id] = downloaded_bytes
            self.observer.on_unit_progress(node, downloaded_bytes)

    def unit_finished(self, node: FileNode, completed: bool) -> None:
        """Drop the unit from `in_flight`; count it only if it completed."""
        if node.id not in self.in_flight:
            return
        del self.in_flight[node.id]
        self._reported.pop(node.id, None)
        if completed:
            self.completed_count += 1
        self.observer.on_unit_finished(node, completed)
