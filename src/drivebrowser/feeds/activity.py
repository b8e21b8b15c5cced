"""Drive Activity projection for a file or folder."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from drivebrowser.cache import FileCache, load_ancestry_path
from drivebrowser.controller.fields import ACTIVITY_FILTER
from drivebrowser.controller.transport import DriveTransport
from drivebrowser.errors import DriveBrowserError
from drivebrowser.models import ActivityEntry, ActivityType, FileNode
from drivebrowser.paging import Page, paginate
from drivebrowser.util.cancellation import CancellationToken
from drivebrowser.util.time import parse_rfc3339_or_none

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"

OnEntry = Callable[[ActivityEntry], Union[None, Awaitable[None]]]

# Checked in this order; the first key present in primaryActionDetail wins.
_ACTION_TYPES: tuple[tuple[str, ActivityType], ...] = (
    ("create", ActivityType.CREATE),
    ("edit", ActivityType.EDIT),
    ("rename", ActivityType.RENAME),
    ("move", ActivityType.MOVE),
    ("delete", ActivityType.DELETE),
    ("restore", ActivityType.RESTORE),
)


def build_activity_request(node: FileNode, page_size: int) -> dict[str, Any]:
    request: dict[str, Any] = {"pageSize": page_size, "filter": ACTIVITY_FILTER}
    if node.is_folder:
        request["ancestorName"] = f"items/{node.id}"
    else:
        request["itemName"] = f"items/{node.id}"
    return request


def action_type(activity: dict[str, Any]) -> Optional[ActivityType]:
    detail = activity.get("primaryActionDetail") or {}
    for key, kind in _ACTION_TYPES:
        if key in detail:
            return kind
    return None


async def fetch_activity(
    cache: FileCache,
    transport: DriveTransport,
    node: FileNode,
    on_entry: OnEntry,
    *,
    minimum_count: int = 20,
    page_token: Optional[str] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Optional[str]:
    """
    Stream the change history of `node` (recursively for folders).

    Pages are fetched until at least `minimum_count` entries were delivered
    or the history is exhausted.

    Returns:
        Token for "load more", or None when there is no more history. On a
        transport failure the error is logged and the token of the page that
        failed is returned so the caller can retry.
    """
    request = build_activity_request(node, minimum_count)
    current: dict[str, Optional[str]] = {"token": page_token or None}

    async def fetch_page(token: Optional[str]) -> Page:
        current["token"] = token
        return await transport.query_activity(request, page_token=token)

    async def project(activities: list[dict[str, Any]]) -> int:
        delivered = 0
        for activity in activities:
            for entry in await _project_activity(cache, transport, node, activity):
                result = on_entry(entry)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
        return delivered

    try:
        return await paginate(
            fetch_page,
            project,
            page_token=page_token,
            minimum_count=minimum_count,
            cancel_token=cancel_token,
        )
    except DriveBrowserError:
        logger.exception("Failed to fetch activity of '%s'", node.name)
        return current["token"]


async def _project_activity(
    cache: FileCache,
    transport: DriveTransport,
    node: FileNode,
    activity: dict[str, Any],
) -> list[ActivityEntry]:
    kind = action_type(activity)
    if kind is None:
        return []

    timestamp = parse_rfc3339_or_none(activity.get("timestamp"))
    if timestamp is None:
        timestamp = parse_rfc3339_or_none((activity.get("timeRange") or {}).get("endTime"))

    entries: list[ActivityEntry] = []
    for target in activity.get("targets") or []:
        item = target.get("driveItem")
        if not item:
            continue

        title = item.get("title") or ""
        username = await resolve_actor_name(cache, transport, activity.get("actors") or [])
        file_id = str(item.get("name") or "").replace("items/", "", 1)
        changed = await cache.get_or_fetch(file_id) if file_id else None

        if changed is None:
            entries.append(
                ActivityEntry(
                    type=kind,
                    relative_path=_moved_into(activity) + title,
                    username=username,
                    is_folder="driveFolder" in item or "folder" in item,
                    timestamp=timestamp,
                )
            )
            continue

        if changed.id == node.id:
            hierarchy = [changed]
        else:
            hierarchy = await load_ancestry_path(cache, changed, stop_at_id=node.id)
        prefix = "".join(f"{parent.name}/" for parent in hierarchy[:-1])
        entries.append(
            ActivityEntry(
                type=kind,
                relative_path=prefix + title,
                username=username,
                is_folder=changed.is_folder,
                file_id=changed.id,
                size=changed.size,
                timestamp=timestamp,
            )
        )
    return entries


def _moved_into(activity: dict[str, Any]) -> str:
    """Title of the first folder a deleted item was moved into, as "Title/"."""
    for action in activity.get("actions") or []:
        move = (action.get("detail") or {}).get("move") or {}
        added = move.get("addedParents") or []
        if added and added[0].get("driveItem"):
            return f"{added[0]['driveItem'].get('title') or ''}/"
    return ""


async def resolve_actor_name(
    cache: FileCache,
    transport: DriveTransport,
    actors: list[dict[str, Any]],
) -> str:
    """Display name of the first actor, looked up once per person and cached."""
    if not actors:
        return UNKNOWN_USER

    known = ((actors[0].get("user") or {}).get("knownUser") or {})
    person_name = known.get("personName")
    if not person_name:
        return UNKNOWN_USER

    cached = cache.get_username(person_name)
    if cached is not None:
        return cached

    try:
        username = await transport.resolve_username(person_name)
    except DriveBrowserError:
        logger.exception("Failed to look up user %s", person_name)
        return UNKNOWN_USER

    username = username or UNKNOWN_USER
    cache.set_username(person_name, username)
    return username
