"""Exception hierarchy and HTTP error mapping for drivebrowser."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class DriveBrowserError(Exception):
    """
    Base exception for drivebrowser.

    Attributes:
        details: Optional structured information (e.g., HTTP status, reason).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidStateError(DriveBrowserError):
    """Raised when the library is used in an invalid state (e.g., busy)."""


class AuthError(DriveBrowserError):
    """Raised when OAuth authentication/refresh fails."""


class AuthExpiredError(AuthError):
    """Raised when stored tokens were revoked or expired beyond refresh."""


class PermissionError(DriveBrowserError):
    """Raised when access is denied (HTTP 403 non-quota, copy-protected files)."""


class InvalidArgumentError(DriveBrowserError):
    """Raised when request arguments are invalid (HTTP 400, etc.)."""


class NotFoundError(DriveBrowserError):
    """Raised when a Drive resource is not found (HTTP 404)."""


class ConflictError(DriveBrowserError):
    """Raised when a conflict occurs (HTTP 409/412)."""


class RateLimitError(DriveBrowserError):
    """Raised when rate-limited (HTTP 429)."""


class QuotaExceededError(DriveBrowserError):
    """Raised when quota is exceeded (HTTP 403 with quota-related reason)."""


class NetworkError(DriveBrowserError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(DriveBrowserError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


class AbusiveFileError(DriveBrowserError):
    """Raised when Drive blocks a download as potentially abusive (needs acknowledgement)."""


class ExportSizeLimitError(DriveBrowserError):
    """Raised when a native document is too large to be exported."""


class OperationCanceledError(DriveBrowserError):
    """Raised when a cooperative cancellation was observed."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to drivebrowser exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


ABUSIVE_FILE_REASON = "cannotDownloadAbusiveFile"
EXPORT_SIZE_LIMIT_REASON = "exportSizeLimitExceeded"
NOT_FOUND_REASON = "notFound"

_QUOTA_REASON_KEYWORDS: tuple[str, ...] = (
    "quota",
    "rateLimitExceeded",
    "userRateLimitExceeded",
    "dailyLimitExceeded",
    "usageLimits",
    "storageQuotaExceeded",
)


def _is_quota_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key.lower() in reason.lower() for key in _QUOTA_REASON_KEYWORDS)


def _reason_is(reason: str | None, expected: str) -> bool:
    return bool(reason) and reason.lower() == expected.lower()  # type: ignore[union-attr]


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> DriveBrowserError:
    """
    Map an HTTP error to a drivebrowser exception.

    Policy:
        - reason cannotDownloadAbusiveFile -> AbusiveFileError
        - reason exportSizeLimitExceeded -> ExportSizeLimitError
        - reason notFound -> NotFoundError (whatever the status)
        - 401 -> AuthError
        - 403 -> PermissionError (default), but QuotaExceededError if quota-related
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - 400 -> InvalidArgumentError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if _reason_is(info.reason, ABUSIVE_FILE_REASON):
        return AbusiveFileError(message, details=details, cause=cause)
    if _reason_is(info.reason, EXPORT_SIZE_LIMIT_REASON):
        return ExportSizeLimitError(message, details=details, cause=cause)
    if _reason_is(info.reason, NOT_FOUND_REASON):
        return NotFoundError(message, details=details, cause=cause)

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        if _is_quota_reason(info.reason):
            return QuotaExceededError(message, details=details, cause=cause)
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)
