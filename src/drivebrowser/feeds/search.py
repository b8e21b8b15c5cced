"""Drive-wide name search."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from drivebrowser.cache import FileCache
from drivebrowser.controller.transport import DriveTransport
from drivebrowser.errors import DriveBrowserError
from drivebrowser.models import FileNode
from drivebrowser.paging import Page, paginate
from drivebrowser.util.cancellation import CancellationToken

logger = logging.getLogger(__name__)

OnResult = Callable[[FileNode], Union[None, Awaitable[None]]]


async def search_files(
    cache: FileCache,
    transport: DriveTransport,
    term: str,
    on_result: OnResult,
    *,
    minimum_count: int = 50,
    page_size: int = 50,
    page_token: Optional[str] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Optional[str]:
    """
    Stream items whose name contains `term`.

    Matches are put into the cache before being handed to `on_result`, so
    they can be downloaded right away.

    Returns:
        Token for "load more", or None when exhausted. Errors are logged and
        the token of the failed page is returned.
    """
    if not term:
        return None

    current: dict[str, Optional[str]] = {"token": page_token or None}

    async def fetch_page(token: Optional[str]) -> Page:
        current["token"] = token
        return await transport.search_files(term, page_token=token, page_size=page_size)

    async def deliver(items: list[dict[str, Any]]) -> int:
        for item in items:
            node = cache.put(FileNode.from_api(item))
            result = on_result(node)
            if inspect.isawaitable(result):
                await result
        return len(items)

    try:
        return await paginate(
            fetch_page,
            deliver,
            page_token=page_token,
            minimum_count=minimum_count,
            cancel_token=cancel_token,
        )
    except DriveBrowserError:
        logger.exception("Search for '%s' failed", term)
        return current["token"]
