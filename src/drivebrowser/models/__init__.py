"""Public model exports for drivebrowser."""

from __future__ import annotations

from .activity import ActivityEntry, ActivityType
from .download_request import (
    REQUEST_FILE_EXTENSION,
    DownloadRequest,
    import_request_file,
    write_request_file,
)
from .file_node import ChildrenState, FileNode
from .progress import DownloadProgressState, NullProgressObserver, ProgressObserver
from .results import DownloadReport, DownloadStatus, UnitResult, UnitStatus

__all__ = [
    "ActivityEntry",
    "ActivityType",
    "ChildrenState",
    "FileNode",
    "DownloadRequest",
    "REQUEST_FILE_EXTENSION",
    "import_request_file",
    "write_request_file",
    "DownloadProgressState",
    "NullProgressObserver",
    "ProgressObserver",
    "DownloadReport",
    "DownloadStatus",
    "UnitResult",
    "UnitStatus",
]
