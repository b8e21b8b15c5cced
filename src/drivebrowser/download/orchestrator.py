"""Bulk download engine: dedupe, recursive expansion, throttling, cancellation."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import IO, Callable, Iterable, Optional

from drivebrowser.cache import FileCache, is_ancestor_of
from drivebrowser.config import BrowserConfig
from drivebrowser.controller.fields import TRANSFER_FIELDS
from drivebrowser.controller.transport import DriveTransport
from drivebrowser.errors import (
    AbusiveFileError,
    DriveBrowserError,
    ExportSizeLimitError,
    NotFoundError,
    OperationCanceledError,
    PermissionError,
)
from drivebrowser.models import (
    ChildrenState,
    DownloadProgressState,
    DownloadReport,
    FileNode,
    NullProgressObserver,
    ProgressObserver,
    UnitResult,
)
from drivebrowser.util.busy import OperationLock
from drivebrowser.util.cancellation import CancellationToken
from drivebrowser.util.mime import choose_export_mime
from drivebrowser.util.paths import (
    PARTIAL_SUFFIX,
    export_extension,
    remove_partial_output,
    sanitize_filename,
)

from .conflicts import ConflictResolver
from .prompts import Prompter

logger = logging.getLogger(__name__)


def normalize_download_set(cache: FileCache, file_ids: Iterable[str]) -> list[FileNode]:
    """
    Resolve ids to cached nodes without duplicate downloads.

    Rules:
        - Blank and uncached ids are dropped.
        - Exact repeats are dropped.
        - If one selected item is an ancestor of another, only the ancestor
          is kept, whatever the input order.
    """
    selected: list[FileNode] = []
    for file_id in file_ids:
        if not file_id:
            continue

        node = cache.get_or_null(file_id)
        if node is None:
            logger.warning("Ignoring download of %s: not in cache", file_id)
            continue
        if any(other.id == node.id for other in selected):
            continue

        keep = True
        for i in range(len(selected) - 1, -1, -1):
            other = selected[i]
            if is_ancestor_of(cache, node, other):
                del selected[i]
            elif is_ancestor_of(cache, other, node):
                keep = False
                break

        if keep:
            selected.append(node)

    return selected


@dataclass
class _Invocation:
    state: DownloadProgressState
    throttle: asyncio.Semaphore
    cancel_token: CancellationToken
    results: list[UnitResult] = field(default_factory=list)


class DownloadOrchestrator:
    """
    Downloads cached Drive items to a local directory.

    Notes:
        - Only file transfers hold a throttle slot. A folder takes a slot
          while it is listed, gives it back, then fans out over its children.
        - Failures stay inside the unit that raised them; siblings continue.
        - The cancel token is checked after every slot acquisition, before
          every filesystem write and between transport chunks.
    """

    def __init__(
        self,
        cache: FileCache,
        transport: DriveTransport,
        prompter: Prompter,
        *,
        conflicts: Optional[ConflictResolver] = None,
        config: Optional[BrowserConfig] = None,
        operation_lock: Optional[OperationLock] = None,
        on_finished: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._cache = cache
        self._transport = transport
        self._prompter = prompter
        self._conflicts = conflicts or ConflictResolver(prompter)
        self._config = config or BrowserConfig()
        self._lock = operation_lock or OperationLock()
        self._on_finished = on_finished

    @property
    def conflicts(self) -> ConflictResolver:
        return self._conflicts

    async def download(
        self,
        file_ids: Iterable[str],
        target_dir: Optional[str] = None,
        *,
        observer: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DownloadReport:
        """
        Download files and folders (recursively) into `target_dir`.

        When `target_dir` is empty the prompter is asked for one; declining
        aborts the whole download.
        """
        nodes = normalize_download_set(self._cache, file_ids)
        if not nodes:
            logger.warning("No files to download...")
            return DownloadReport(status="aborted", target_dir=target_dir)

        if not target_dir:
            target_dir = await self._prompter.choose_directory()
            if not target_dir:
                return DownloadReport(status="aborted", target_dir=None)
        os.makedirs(target_dir, exist_ok=True)

        self._conflicts.reset(single_file=len(nodes) == 1 and not nodes[0].is_folder)

        token = cancel_token or CancellationToken()
        state = DownloadProgressState(
            total_count=len(nodes),
            report_interval=self._config.progress_report_interval,
            observer=observer or NullProgressObserver(),
        )
        invocation = _Invocation(
            state=state,
            throttle=asyncio.Semaphore(self._config.max_concurrent_downloads),
            cancel_token=token,
        )

        self._lock.acquire()
        try:
            await asyncio.gather(
                *(self._download_unit(node, target_dir, invocation) for node in nodes)
            )
            if token.cancelled:
                logger.info("Download canceled")
        finally:
            self._lock.release()
            state.observer.on_completed(state)
            if self._on_finished is not None:
                self._on_finished(target_dir)

        return DownloadReport(
            status="canceled" if token.cancelled else "completed",
            target_dir=target_dir,
            results=invocation.results,
        )

    # ----------------------------
    # Units
    # ----------------------------
    async def _download_unit(self, node: FileNode, directory: str, inv: _Invocation) -> None:
        result = UnitResult(
            file_id=node.id,
            name=node.name,
            kind="folder" if node.is_folder else "file",
            status="failed",
        )
        holding = False
        finished = False

        def finish() -> None:
            nonlocal finished
            if finished:
                return
            finished = True
            inv.results.append(result)
            inv.state.unit_finished(node, completed=result.status in ("success", "skipped"))

        try:
            await inv.throttle.acquire()
            holding = True
            if inv.cancel_token.cancelled:
                result.status = "canceled"
                return

            inv.state.unit_started(node)

            if not node.is_folder:
                await self._transfer_file(node, directory, inv, result)
                return

            if node.children_state is ChildrenState.UNKNOWN:
                await self._cache.refresh_children(node.id, cancel_token=inv.cancel_token)
            folder = self._cache.get_or_null(node.id) or node

            inv.throttle.release()
            holding = False

            inv.cancel_token.raise_if_cancelled()
            if folder.children_state is ChildrenState.UNKNOWN:
                # The cache has already logged why the listing failed.
                logger.warning("Could not list contents of folder '%s'", node.name)
                _record_failure(
                    result, DriveBrowserError("could not list folder contents")
                )
                return

            path = await self._conflicts.resolve(
                os.path.join(directory, sanitize_filename(folder.name)), True
            )
            if path is None:
                result.status = "skipped"
                return

            inv.cancel_token.raise_if_cancelled()
            os.makedirs(path, exist_ok=True)
            children = self._cache.children_of(folder)
            inv.state.add_expected(len(children))
            result.status = "success"
            result.local_path = path
            finish()

            await asyncio.gather(*(self._download_unit(child, path, inv) for child in children))
        except OperationCanceledError:
            result.status = "canceled"
        except NotFoundError:
            logger.warning(
                "Can't download '%s' because it seems like the file no longer exists", node.name
            )
            self._cache.unlink(node)
            result.status = "skipped"
            result.error_type = NotFoundError.__name__
        except PermissionError as exc:
            logger.warning("Can't download '%s': %s", node.name, exc)
            _record_failure(result, exc)
        except ExportSizeLimitError as exc:
            logger.warning(
                "Can't export '%s' because its file size exceeds the export limit", node.name
            )
            _record_failure(result, exc)
        except AbusiveFileError as exc:
            logger.warning("Failed to download '%s' even after acknowledging abuse", node.name)
            _record_failure(result, exc)
        except (DriveBrowserError, OSError) as exc:
            logger.exception("Failed to download '%s'", node.name)
            _record_failure(result, exc)
        finally:
            if holding:
                inv.throttle.release()
            finish()

    async def _transfer_file(
        self,
        node: FileNode,
        directory: str,
        inv: _Invocation,
        result: UnitResult,
    ) -> None:
        meta = await self._transport.get_metadata(node.id, TRANSFER_FIELDS)
        if meta.get("copyRequiresWriterPermission"):
            raise PermissionError(
                "the owner has restricted access to it", details={"file_id": node.id}
            )

        filename = sanitize_filename(node.name)
        export_links = meta.get("exportLinks") or {}
        export_mime: Optional[str] = None
        if export_links:
            export_mime, export_link = choose_export_mime(export_links)
            filename += export_extension(export_link)
            logger.info("Exporting '%s' document with mime: %s", node.name, export_mime)

        inv.cancel_token.raise_if_cancelled()
        path = await self._conflicts.resolve(os.path.join(directory, filename), False)
        if path is None:
            result.status = "skipped"
            return

        # Overwriting a sibling's target waits until that sibling has moved
        # its file into place.
        async with self._conflicts.write_lock(path):
            inv.cancel_token.raise_if_cancelled()
            partial = path + PARTIAL_SUFFIX
            moved = False
            try:
                with open(partial, "wb") as fd:
                    if export_mime is not None:
                        await self._transport.export_content(
                            node.id,
                            export_mime,
                            fd,
                            on_progress=lambda received: inv.state.set_progress(node, received),
                            cancel_token=inv.cancel_token,
                        )
                    else:
                        await self._fetch_content(node, fd, inv)

                inv.cancel_token.raise_if_cancelled()
                os.replace(partial, path)
                moved = True
            finally:
                if not moved:
                    remove_partial_output(partial, self._config.sidecar_suffixes)

        result.status = "success"
        result.local_path = path

    async def _fetch_content(self, node: FileNode, fd: IO[bytes], inv: _Invocation) -> None:
        def on_progress(received: int) -> None:
            inv.state.set_progress(node, received)

        try:
            await self._transport.download_content(
                node.id, fd, on_progress=on_progress, cancel_token=inv.cancel_token
            )
        except AbusiveFileError:
            logger.debug("Retrying '%s' with abuse acknowledgement", node.name)
            fd.seek(0)
            fd.truncate()
            await self._transport.download_content(
                node.id,
                fd,
                on_progress=on_progress,
                acknowledge_abuse=True,
                cancel_token=inv.cancel_token,
            )


def _record_failure(result: UnitResult, exc: BaseException) -> None:
    result.status = "failed"
    result.error_type = exc.__class__.__name__
    result.error_message = str(exc)
