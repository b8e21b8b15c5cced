"""Page-by-page fetching shared by folder listing, activity and search."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from drivebrowser.util.cancellation import CancellationToken, is_cancelled

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Page:
    """One page of a paginated Drive response."""

    items: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: Optional[str] = None


FetchPage = Callable[[Optional[str]], Awaitable[Page]]
OnItems = Callable[[list[dict[str, Any]]], Union[int, None, Awaitable[Optional[int]]]]


async def paginate(
    fetch_page: FetchPage,
    on_items: OnItems,
    *,
    page_token: Optional[str] = None,
    minimum_count: Optional[int] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Optional[str]:
    """
    Fetch pages until the listing is exhausted or enough results arrived.

    Args:
        fetch_page: Awaitable page fetcher, called with the current token.
        on_items: Handles each page as soon as it arrives. Returns how many
            results it accepted (None counts every item).
        page_token: Token to resume from ("load more").
        minimum_count: Stop once this many results were accepted.
        cancel_token: Checked between pages.

    Returns:
        The token of the next unfetched page, or None when exhausted.
    """
    token = page_token or None
    accepted = 0

    while True:
        if is_cancelled(cancel_token):
            logger.debug("Pagination canceled before fetching page %r", token)
            return token

        page = await fetch_page(token)

        result = on_items(page.items)
        if inspect.isawaitable(result):
            result = await result
        accepted += len(page.items) if result is None else int(result)

        token = page.next_page_token or None
        if token is None:
            return None
        if minimum_count is not None and accepted >= minimum_count:
            return token
