"""DriveBrowser: application root owning the cache, transport and download engine."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Iterable, Optional

from drivebrowser.auth import AuthInfo
from drivebrowser.cache import ROOT_FOLDER_ID, CacheState, FileCache, load_ancestry_path
from drivebrowser.config import BrowserConfig
from drivebrowser.controller import DriveController, DriveTransport, ThreadedTransport
from drivebrowser.controller.fields import MD5_FIELDS, THUMBNAIL_FIELDS, WEB_VIEW_FIELDS
from drivebrowser.download import ConflictResolver, ConsolePrompter, DownloadOrchestrator, Prompter
from drivebrowser.errors import DriveBrowserError, InvalidStateError, NotFoundError
from drivebrowser.feeds import fetch_activity, search_files
from drivebrowser.feeds.activity import OnEntry
from drivebrowser.feeds.search import OnResult
from drivebrowser.models import (
    ChildrenState,
    DownloadReport,
    DownloadRequest,
    FileNode,
    ProgressObserver,
    import_request_file,
)
from drivebrowser.util.busy import OperationLock
from drivebrowser.util.cancellation import CancellationToken, is_cancelled
from drivebrowser.util.paths import md5_of_file

logger = logging.getLogger(__name__)


class DriveBrowser:
    """
    High-level entry point: browse, inspect and download Drive content.

    One instance owns one FileCache, one ConflictResolver and one
    OperationLock; every operation below shares them.
    """

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        config: Optional[BrowserConfig] = None,
        prompter: Optional[Prompter] = None,
    ) -> None:
        config = config or BrowserConfig()
        controller = DriveController(
            auth_info,
            chunk_size=config.progress_report_interval,
            max_retries=config.max_retries,
            initial_retry_delay_sec=config.initial_retry_delay_sec,
        )
        self._init(ThreadedTransport(controller), config, prompter, controller)

    @classmethod
    def from_transport(
        cls,
        transport: DriveTransport,
        *,
        config: Optional[BrowserConfig] = None,
        prompter: Optional[Prompter] = None,
    ) -> "DriveBrowser":
        """Create a browser over an injected transport (useful for tests)."""
        obj = cls.__new__(cls)
        controller = transport.controller if isinstance(transport, ThreadedTransport) else None
        obj._init(transport, config or BrowserConfig(), prompter, controller)
        return obj

    def _init(
        self,
        transport: DriveTransport,
        config: BrowserConfig,
        prompter: Optional[Prompter],
        controller: Optional[DriveController],
    ) -> None:
        self._transport = transport
        self._controller = controller
        self._config = config
        self._prompter = prompter or ConsolePrompter()
        self._cache = FileCache(transport, page_size=config.list_page_size)
        self._lock = OperationLock()
        self._conflicts = ConflictResolver(self._prompter)
        self._downloader = DownloadOrchestrator(
            self._cache,
            transport,
            self._prompter,
            conflicts=self._conflicts,
            config=config,
            operation_lock=self._lock,
        )

    # ----------------------------
    # Accessors
    # ----------------------------
    @property
    def cache(self) -> FileCache:
        return self._cache

    @property
    def config(self) -> BrowserConfig:
        return self._config

    @property
    def transport(self) -> DriveTransport:
        return self._transport

    @property
    def root(self) -> FileNode:
        return self._cache.root

    @property
    def in_progress(self) -> bool:
        """True while a download, activity or search fetch is running."""
        return self._lock.in_progress

    # ----------------------------
    # Browsing
    # ----------------------------
    async def get_file(self, file_id: str) -> Optional[FileNode]:
        return await self._cache.get_or_fetch(file_id)

    async def list_folder(
        self,
        folder_id: str = ROOT_FOLDER_ID,
        *,
        refresh: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[FileNode]:
        """
        Return the children of a folder, listing it first when needed.

        Raises:
            NotFoundError: if the folder does not exist.
            InvalidStateError: if `folder_id` is not a folder.
        """
        folder = await self._cache.get_or_fetch(folder_id)
        if folder is None:
            raise NotFoundError("Folder not found", details={"file_id": folder_id})
        if not folder.is_folder:
            raise InvalidStateError(f"'{folder.name}' is not a folder")

        if refresh or folder.children_state is ChildrenState.UNKNOWN:
            await self._cache.refresh_children(folder_id, cancel_token=cancel_token)
        return self._cache.children_of(folder)

    async def get_path(self, node: FileNode) -> list[FileNode]:
        """Breadcrumb from the outermost known folder down to `node`."""
        return await load_ancestry_path(self._cache, node)

    # ----------------------------
    # Downloads
    # ----------------------------
    async def download(
        self,
        file_ids: Iterable[str],
        target_dir: Optional[str] = None,
        *,
        observer: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DownloadReport:
        return await self._downloader.download(
            file_ids, target_dir, observer=observer, cancel_token=cancel_token
        )

    async def download_request(
        self,
        request: DownloadRequest,
        *,
        observer: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DownloadReport:
        return await self.download(
            request.file_ids, request.path, observer=observer, cancel_token=cancel_token
        )

    async def import_request(
        self,
        sentinel_path: str,
        *,
        observer: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DownloadReport:
        """Consume a `.drivedl` file and download its ids next to it."""
        request = import_request_file(sentinel_path)
        logger.info("Importing %d file(s) into %s", len(request.file_ids), request.path)
        return await self.download_request(request, observer=observer, cancel_token=cancel_token)

    # ----------------------------
    # Feeds
    # ----------------------------
    async def activity(
        self,
        node: FileNode,
        on_entry: OnEntry,
        *,
        page_token: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        with self._lock:
            return await fetch_activity(
                self._cache,
                self._transport,
                node,
                on_entry,
                minimum_count=self._config.activity_minimum_entries,
                page_token=page_token,
                cancel_token=cancel_token,
            )

    async def search(
        self,
        term: str,
        on_result: OnResult,
        *,
        page_token: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        with self._lock:
            return await search_files(
                self._cache,
                self._transport,
                term,
                on_result,
                minimum_count=self._config.search_minimum_results,
                page_size=self._config.list_page_size,
                page_token=page_token,
                cancel_token=cancel_token,
            )

    # ----------------------------
    # File details
    # ----------------------------
    async def get_thumbnail(
        self,
        node: FileNode,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        """
        Return the local path of the node's thumbnail, or None if it has none.

        Thumbnails are cached under `config.thumbnails_dir/<id>`. An empty
        cached file records that the item has no thumbnail.
        """
        path = os.path.join(self._config.thumbnails_dir, node.id)
        if os.path.isfile(path):
            return path if os.path.getsize(path) > 0 else None

        try:
            os.makedirs(self._config.thumbnails_dir, exist_ok=True)
            meta = await self._transport.get_metadata(node.id, THUMBNAIL_FIELDS)
            link = meta.get("thumbnailLink")
            if not link:
                open(path, "wb").close()
                return None

            if is_cancelled(cancel_token):
                return None
            content = await self._transport.fetch_url(link)
            with open(path, "wb") as f:
                f.write(content)
            return path
        except NotFoundError:
            return None
        except (DriveBrowserError, OSError):
            logger.exception("Failed to fetch thumbnail of '%s'", node.name)
            return None

    def clear_thumbnail_cache(self) -> None:
        shutil.rmtree(self._config.thumbnails_dir, ignore_errors=True)

    async def get_md5_checksum(self, node: FileNode) -> Optional[str]:
        meta = await self._transport.get_metadata(node.id, MD5_FIELDS)
        return meta.get("md5Checksum") or None

    async def compare_md5(self, node: FileNode, local_path: str) -> bool:
        """True if the local file has the same content as the Drive file."""
        remote = await self.get_md5_checksum(node)
        if remote is None:
            return False
        return md5_of_file(local_path) == remote.lower()

    async def get_web_view_link(self, node: FileNode) -> Optional[str]:
        meta = await self._transport.get_metadata(node.id, WEB_VIEW_FIELDS)
        return meta.get("webViewLink") or None

    # ----------------------------
    # Session
    # ----------------------------
    def revoke_authentication(self) -> None:
        """Forget the stored OAuth token; the next session signs in again."""
        if self._controller is None:
            raise InvalidStateError("No authenticated controller is attached")
        self._controller.revoke()

    def save_state(self, path: str) -> None:
        """Persist the cache (nodes and usernames) as JSON."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self._cache.export_state().to_json())

    def load_state(self, path: str) -> bool:
        """Merge a state saved by `save_state`; False if there is none."""
        if not os.path.isfile(path):
            return False
        with open(path, "r", encoding="utf-8") as f:
            state = CacheState.from_json(f.read())
        self._cache.import_state(state)
        logger.debug("Loaded %d cached file(s) from %s", len(state.file_ids), path)
        return True
