"""Download request record and its on-disk handoff format."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Optional

REQUEST_FILE_EXTENSION = "drivedl"


@dataclass(slots=True)
class DownloadRequest:
    """
    A set of Drive ids and the local directory to download them into.

    `path` may be None/empty, in which case the directory is asked for
    interactively before the download starts.

    On-disk shape (stable): {"fileIds": ["..."], "path": "..."}
    """

    file_ids: list[str] = field(default_factory=list)
    path: Optional[str] = None

    def to_json(self) -> str:
        payload: dict[str, Any] = {"fileIds": list(self.file_ids), "path": self.path or ""}
        return json.dumps(payload)

    @classmethod
    def from_json(cls, text: str) -> DownloadRequest:
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("download request must be a JSON object")

        file_ids = payload.get("fileIds") or []
        if not isinstance(file_ids, list) or not all(isinstance(x, str) for x in file_ids):
            raise ValueError("fileIds must be a list of strings")

        path = payload.get("path")
        return cls(file_ids=list(file_ids), path=path if isinstance(path, str) and path else None)


def write_request_file(request: DownloadRequest, sentinel_path: str) -> None:
    """Write the request to a sentinel file for a later `import_request_file`."""
    directory = os.path.dirname(sentinel_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(sentinel_path, "w", encoding="utf-8") as f:
        f.write(request.to_json())


def import_request_file(sentinel_path: str) -> DownloadRequest:
    """
    Read and consume a sentinel file.

    The download target becomes the directory the sentinel was dropped into,
    and the sentinel is deleted.
    """
    with open(sentinel_path, "r", encoding="utf-8") as f:
        request = DownloadRequest.from_json(f.read())

    request.path = os.path.dirname(os.path.abspath(sentinel_path))
    os.remove(sentinel_path)
    return request
