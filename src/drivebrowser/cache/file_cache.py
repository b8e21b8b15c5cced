"""Process-wide registry of Drive metadata keyed by file id."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from drivebrowser.controller.fields import ROOT_LISTING_QUERY, children_query
from drivebrowser.controller.transport import DriveTransport
from drivebrowser.errors import DriveBrowserError, NotFoundError
from drivebrowser.models import ChildrenState, FileNode
from drivebrowser.paging import Page, paginate
from drivebrowser.util.cancellation import CancellationToken, is_cancelled

logger = logging.getLogger(__name__)

# Drive ids never contain spaces, so this can't collide with a real item.
ROOT_FOLDER_ID = "Hello world, my old friend"


@dataclass(slots=True)
class CacheState:
    """
    Flat, order-independent export of a FileCache.

    Notes:
        - usernames: [user_id_1, name_1, user_id_2, name_2, ...]
        - file_ids[i] is the key of files[i].
    """

    usernames: list[str] = field(default_factory=list)
    file_ids: list[str] = field(default_factory=list)
    files: list[dict[str, Any]] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(
            {"usernames": self.usernames, "file_ids": self.file_ids, "files": self.files}
        )

    @classmethod
    def from_json(cls, text: str) -> CacheState:
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("cache state must be a JSON object")
        return cls(
            usernames=list(payload.get("usernames") or []),
            file_ids=list(payload.get("file_ids") or []),
            files=list(payload.get("files") or []),
        )


class FileCache:
    """
    In-memory mirror of the remote tree, populated lazily.

    Notes:
        - Exactly one FileNode per id. Re-fetched nodes replace the old value
          but keep its `children`/`children_state` so explored subtrees survive.
        - Mutated only from the event loop thread (no locking).
    """

    def __init__(self, transport: Optional[DriveTransport] = None, *, page_size: int = 50) -> None:
        self._transport = transport
        self._page_size = page_size
        self._files: dict[str, FileNode] = {}
        self._usernames: dict[str, str] = {}

    @property
    def transport(self) -> DriveTransport:
        if self._transport is None:
            raise DriveBrowserError("FileCache has no transport attached")
        return self._transport

    def attach(self, transport: DriveTransport) -> None:
        self._transport = transport

    # ----------------------------
    # Read APIs
    # ----------------------------
    @property
    def root(self) -> FileNode:
        """The synthetic root folder (My Drive + Shared with me)."""
        node = self._files.get(ROOT_FOLDER_ID)
        if node is None:
            node = FileNode(
                id=ROOT_FOLDER_ID,
                name="",
                is_folder=True,
                children_state=ChildrenState.UNKNOWN,
            )
            self._files[ROOT_FOLDER_ID] = node
        return node

    def is_root(self, node: FileNode) -> bool:
        return node.id == ROOT_FOLDER_ID

    def get_or_null(self, file_id: str) -> Optional[FileNode]:
        if file_id == ROOT_FOLDER_ID:
            return self.root
        return self._files.get(file_id)

    def get(self, file_id: str) -> FileNode:
        node = self.get_or_null(file_id)
        if node is None:
            raise KeyError(file_id)
        return node

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[FileNode]:
        return iter(list(self._files.values()))

    def children_of(self, folder: FileNode) -> list[FileNode]:
        """Cached child nodes in listing order; uncached ids are skipped."""
        current = self.get_or_null(folder.id) or folder
        return [self._files[cid] for cid in current.children if cid in self._files]

    async def get_or_fetch(self, file_id: str) -> Optional[FileNode]:
        """
        Return the cached node, fetching its metadata on a miss.

        Returns:
            None if Drive reports the id as not found.

        Raises:
            DriveBrowserError: for any other transport failure.
        """
        node = self.get_or_null(file_id)
        if node is not None:
            return node

        try:
            data = await self.transport.get_metadata(file_id)
        except NotFoundError:
            logger.debug("File %s no longer exists", file_id)
            return None

        node = FileNode.from_api(data)
        if not node.id:
            node.id = file_id
        return self.put(node)

    # ----------------------------
    # Mutation APIs
    # ----------------------------
    def put(self, node: FileNode) -> FileNode:
        """Insert or replace a node, carrying over previously fetched children."""
        previous = self._files.get(node.id)
        if previous is not None and previous is not node:
            node.carry_over_children(previous)
        self._files[node.id] = node
        return node

    async def refresh_children(
        self,
        folder_id: str,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Re-list a folder and replace its children in the cache.

        The root lists My Drive top level plus items shared with the user
        (no trash, no shortcuts) and forces their parent to None.

        Returns:
            True on success. On failure or cancellation the folder keeps its
            previous children untouched and False is returned.
        """
        folder = self.get_or_null(folder_id)
        if folder is None:
            raise KeyError(folder_id)

        is_root = folder_id == ROOT_FOLDER_ID
        query = ROOT_LISTING_QUERY if is_root else children_query(folder_id)
        staged: list[FileNode] = []

        async def fetch_page(token: Optional[str]) -> Page:
            return await self.transport.list_files(
                query, page_token=token, page_size=self._page_size
            )

        def stage(items: list[dict[str, Any]]) -> int:
            for item in items:
                parent_id = None if is_root else folder_id
                staged.append(FileNode.from_api(item, parent_id=parent_id))
            return len(items)

        try:
            next_token = await paginate(fetch_page, stage, cancel_token=cancel_token)
        except DriveBrowserError:
            logger.exception("Failed to list contents of folder %s", folder_id)
            return False

        if next_token is not None or is_cancelled(cancel_token):
            logger.debug("Listing of folder %s was canceled", folder_id)
            return False

        for node in staged:
            self.put(node)

        # The folder entry may have been replaced while awaiting pages.
        folder = self.get_or_null(folder_id) or folder
        folder.children = [node.id for node in staged]
        folder.children_state = (
            ChildrenState.HAS_CHILDREN if staged else ChildrenState.NO_CHILDREN
        )
        return True

    def unlink(self, node: FileNode) -> None:
        """Remove a vanished item from its parent's children; it stays cached."""
        parent = self.root if not node.parent_id else self._files.get(node.parent_id)
        if parent is None or node.id not in parent.children:
            return
        parent.children = [cid for cid in parent.children if cid != node.id]
        if not parent.children:
            parent.children_state = ChildrenState.NO_CHILDREN

    # ----------------------------
    # Usernames
    # ----------------------------
    def get_username(self, user_id: str) -> Optional[str]:
        return self._usernames.get(user_id)

    def set_username(self, user_id: str, username: str) -> None:
        self._usernames[user_id] = username

    # ----------------------------
    # Persistence
    # ----------------------------
    def export_state(self) -> CacheState:
        state = CacheState()
        for user_id, username in self._usernames.items():
            state.usernames.extend((user_id, username))
        for file_id, node in self._files.items():
            state.file_ids.append(file_id)
            state.files.append(node.to_dict())
        return state

    def import_state(self, state: CacheState) -> None:
        """Merge an exported state; later duplicates overwrite earlier ones."""
        pairs = state.usernames
        for i in range(0, len(pairs) - 1, 2):
            self._usernames[pairs[i]] = pairs[i + 1]

        for file_id, data in zip(state.file_ids, state.files):
            node = FileNode.from_dict(data)
            node.id = file_id
            self._files[file_id] = node
