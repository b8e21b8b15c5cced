"""Async transport contract used by the cache, the feeds and the downloader."""

from __future__ import annotations

import asyncio
from typing import IO, Any, Callable, Optional, Protocol

from drivebrowser.paging import Page
from drivebrowser.util.cancellation import CancellationToken

from .drive_controller import DriveController
from .fields import NODE_FIELDS

ProgressCallback = Callable[[int], None]


class DriveTransport(Protocol):
    """
    Remote operations the core depends on.

    Progress callbacks are always invoked on the event loop thread, in
    non-decreasing byte order.
    """

    async def list_files(
        self, query: str, *, page_token: Optional[str] = None, page_size: int = 50
    ) -> Page: ...

    async def search_files(
        self, term: str, *, page_token: Optional[str] = None, page_size: int = 50
    ) -> Page: ...

    async def get_metadata(self, file_id: str, fields: str = NODE_FIELDS) -> dict[str, Any]: ...

    async def download_content(
        self,
        file_id: str,
        fd: IO[bytes],
        *,
        on_progress: Optional[ProgressCallback] = None,
        acknowledge_abuse: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int: ...

    async def export_content(
        self,
        file_id: str,
        mime_type: str,
        fd: IO[bytes],
        *,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int: ...

    async def query_activity(
        self, request: dict[str, Any], *, page_token: Optional[str] = None
    ) -> Page: ...

    async def resolve_username(self, person_name: str) -> Optional[str]: ...

    async def fetch_url(self, url: str) -> bytes: ...


class ThreadedTransport:
    """
    DriveTransport backed by the blocking DriveController.

    Each call runs in the default executor via asyncio.to_thread; chunk
    progress is marshalled back onto the loop with call_soon_threadsafe.
    """

    def __init__(self, controller: DriveController) -> None:
        self._controller = controller

    @property
    def controller(self) -> DriveController:
        return self._controller

    async def list_files(
        self, query: str, *, page_token: Optional[str] = None, page_size: int = 50
    ) -> Page:
        return await asyncio.to_thread(
            self._controller.list_files, query, page_token=page_token, page_size=page_size
        )

    async def search_files(
        self, term: str, *, page_token: Optional[str] = None, page_size: int = 50
    ) -> Page:
        return await asyncio.to_thread(
            self._controller.search_files, term, page_token=page_token, page_size=page_size
        )

    async def get_metadata(self, file_id: str, fields: str = NODE_FIELDS) -> dict[str, Any]:
        return await asyncio.to_thread(self._controller.get_metadata, file_id, fields)

    async def download_content(
        self,
        file_id: str,
        fd: IO[bytes],
        *,
        on_progress: Optional[ProgressCallback] = None,
        acknowledge_abuse: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        return await asyncio.to_thread(
            self._controller.download_content,
            file_id,
            fd,
            on_progress=_on_loop(on_progress),
            acknowledge_abuse=acknowledge_abuse,
            cancel_token=cancel_token,
        )

    async def export_content(
        self,
        file_id: str,
        mime_type: str,
        fd: IO[bytes],
        *,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        return await asyncio.to_thread(
            self._controller.export_content,
            file_id,
            mime_type,
            fd,
            on_progress=_on_loop(on_progress),
            cancel_token=cancel_token,
        )

    async def query_activity(
        self, request: dict[str, Any], *, page_token: Optional[str] = None
    ) -> Page:
        return await asyncio.to_thread(
            self._controller.query_activity, request, page_token=page_token
        )

    async def resolve_username(self, person_name: str) -> Optional[str]:
        return await asyncio.to_thread(self._controller.get_person_name, person_name)

    async def fetch_url(self, url: str) -> bytes:
        return await asyncio.to_thread(self._controller.fetch_url, url)


def _on_loop(callback: Optional[ProgressCallback]) -> Optional[ProgressCallback]:
    if callback is None:
        return None
    loop = asyncio.get_running_loop()

    def _forward(received: int) -> None:
        loop.call_soon_threadsafe(callback, received)

    return _forward
