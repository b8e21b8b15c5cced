"""drivebrowser public API."""

from __future__ import annotations

from drivebrowser.auth import AuthInfo, OAuthClient
from drivebrowser.browser import DriveBrowser
from drivebrowser.cache import ROOT_FOLDER_ID, CacheState, FileCache, is_ancestor_of, load_ancestry_path
from drivebrowser.config import BrowserConfig
from drivebrowser.controller import DriveTransport, ThreadedTransport
from drivebrowser.download import (
    ConflictChoice,
    ConflictPolicy,
    ConflictResolver,
    ConsolePrompter,
    DownloadOrchestrator,
    Prompter,
    normalize_download_set,
)
from drivebrowser.errors import (
    AbusiveFileError,
    ApiError,
    AuthError,
    AuthExpiredError,
    ConflictError,
    DriveBrowserError,
    ExportSizeLimitError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    OperationCanceledError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    map_http_error,
)
from drivebrowser.feeds import fetch_activity, search_files
from drivebrowser.models import (
    ActivityEntry,
    ActivityType,
    ChildrenState,
    DownloadProgressState,
    DownloadReport,
    DownloadRequest,
    FileNode,
    ProgressObserver,
    UnitResult,
)
from drivebrowser.paging import Page, paginate
from drivebrowser.util import CancellationToken, OperationLock

__all__ = [
    # High-level
    "DriveBrowser",
    "BrowserConfig",
    # Auth / transport
    "AuthInfo",
    "OAuthClient",
    "DriveTransport",
    "ThreadedTransport",
    # Cache
    "ROOT_FOLDER_ID",
    "CacheState",
    "FileCache",
    "is_ancestor_of",
    "load_ancestry_path",
    "Page",
    "paginate",
    # Downloads
    "ConflictChoice",
    "ConflictPolicy",
    "ConflictResolver",
    "ConsolePrompter",
    "DownloadOrchestrator",
    "Prompter",
    "normalize_download_set",
    "CancellationToken",
    "OperationLock",
    # Feeds
    "fetch_activity",
    "search_files",
    # Models
    "ActivityEntry",
    "ActivityType",
    "ChildrenState",
    "DownloadProgressState",
    "DownloadReport",
    "DownloadRequest",
    "FileNode",
    "ProgressObserver",
    "UnitResult",
    # Errors
    "DriveBrowserError",
    "InvalidStateError",
    "AuthError",
    "AuthExpiredError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "QuotaExceededError",
    "NetworkError",
    "ApiError",
    "AbusiveFileError",
    "ExportSizeLimitError",
    "OperationCanceledError",
    "HttpErrorInfo",
    "map_http_error",
]
