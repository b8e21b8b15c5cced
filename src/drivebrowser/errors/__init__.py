"""Public error exports for drivebrowser."""

from __future__ import annotations

from .exceptions import (
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

__all__ = [
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
