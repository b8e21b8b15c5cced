"""Google API controller (blocking calls, internal use only)."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import IO, Any, Callable, Optional, TypeVar

from drivebrowser.auth import AuthInfo, DriveServices, OAuthClient
from drivebrowser.errors import (
    ApiError,
    AuthError,
    DriveBrowserError,
    HttpErrorInfo,
    NetworkError,
    RateLimitError,
    map_http_error,
)
from drivebrowser.paging import Page
from drivebrowser.util.cancellation import CancellationToken

from .fields import LIST_FIELDS, NODE_FIELDS, PERSON_FIELDS, name_search_query

T = TypeVar("T")

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class _RetryPolicy:
    max_retries: int = 3
    initial_delay_sec: float = 1.0


class DriveController:
    """
    Blocking wrapper around the Drive, Drive Activity and People APIs.

    Notes:
        - Service objects are NOT exposed.
        - Errors are mapped to drivebrowser exceptions; rate limits, network
          faults and 5xx responses are retried with exponential backoff.
        - Content streams are read in `chunk_size` pieces; progress is
          reported once per chunk.
    """

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        chunk_size: int = 1_048_576,
        supports_all_drives: bool = True,
        max_retries: int = 3,
        initial_retry_delay_sec: float = 1.0,
    ) -> None:
        self._oauth = OAuthClient(auth_info)
        services = self._oauth.build_services()
        self._init(
            services,
            chunk_size=chunk_size,
            supports_all_drives=supports_all_drives,
            retry_policy=_RetryPolicy(max_retries, initial_retry_delay_sec),
        )

    @classmethod
    def from_services(
        cls,
        services: DriveServices,
        *,
        chunk_size: int = 1_048_576,
        supports_all_drives: bool = True,
    ) -> "DriveController":
        """Create controller from pre-built services (useful for tests)."""
        obj = cls.__new__(cls)
        obj._oauth = None
        obj._init(
            services,
            chunk_size=chunk_size,
            supports_all_drives=supports_all_drives,
            retry_policy=_RetryPolicy(),
        )
        return obj

    def _init(
        self,
        services: DriveServices,
        *,
        chunk_size: int,
        supports_all_drives: bool,
        retry_policy: _RetryPolicy,
    ) -> None:
        self._services = services
        self._chunk_size = chunk_size
        self._supports_all_drives = supports_all_drives
        self._retry_policy = retry_policy

    # ----------------------------
    # Drive files
    # ----------------------------
    def list_files(
        self,
        query: str,
        *,
        page_token: Optional[str] = None,
        page_size: int = 50,
    ) -> Page:
        req = self._services.drive.files().list(
            q=query,
            fields=LIST_FIELDS,
            pageSize=page_size,
            pageToken=page_token,
            **self._common_list_kwargs(),
        )
        data = self._execute(req.execute)
        return Page(items=list(data.get("files") or []), next_page_token=data.get("nextPageToken"))

    def search_files(
        self,
        term: str,
        *,
        page_token: Optional[str] = None,
        page_size: int = 50,
    ) -> Page:
        return self.list_files(name_search_query(term), page_token=page_token, page_size=page_size)

    def get_metadata(self, file_id: str, fields: str = NODE_FIELDS) -> dict[str, Any]:
        req = self._services.drive.files().get(
            fileId=file_id,
            fields=fields,
            **self._common_get_kwargs(),
        )
        return self._execute(req.execute)

    def download_content(
        self,
        file_id: str,
        fd: IO[bytes],
        *,
        on_progress: Optional[ProgressCallback] = None,
        acknowledge_abuse: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        kwargs = self._common_get_kwargs()
        if acknowledge_abuse:
            kwargs["acknowledgeAbuse"] = True
        req = self._services.drive.files().get_media(fileId=file_id, **kwargs)
        return self._stream(req, fd, on_progress, cancel_token)

    def export_content(
        self,
        file_id: str,
        mime_type: str,
        fd: IO[bytes],
        *,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        req = self._services.drive.files().export_media(fileId=file_id, mimeType=mime_type)
        return self._stream(req, fd, on_progress, cancel_token)

    def fetch_url(self, url: str) -> bytes:
        """GET an arbitrary Google URL (e.g. a thumbnail link) with the user's credentials."""
        try:
            from google.auth.transport.requests import AuthorizedSession
        except Exception as exc:  # pragma: no cover
            raise AuthError("google-auth is not available", cause=exc) from exc

        session = AuthorizedSession(self._services.credentials)

        def _get() -> bytes:
            response = session.get(url, timeout=60)
            if response.status_code >= 400:
                raise map_http_error(
                    HttpErrorInfo(status_code=response.status_code, reason=response.reason)
                )
            return response.content

        return self._execute(_get)

    # ----------------------------
    # Drive Activity / People
    # ----------------------------
    def query_activity(
        self,
        request: dict[str, Any],
        *,
        page_token: Optional[str] = None,
    ) -> Page:
        body = dict(request)
        if page_token:
            body["pageToken"] = page_token
        req = self._services.activity.activity().query(body=body)
        data = self._execute(req.execute)
        return Page(
            items=list(data.get("activities") or []),
            next_page_token=data.get("nextPageToken"),
        )

    def get_person_name(self, resource_name: str) -> Optional[str]:
        req = self._services.people.people().get(
            resourceName=resource_name,
            personFields=PERSON_FIELDS,
        )
        data = self._execute(req.execute)
        names = data.get("names") or []
        if names and isinstance(names[0], dict):
            display_name = names[0].get("displayName")
            if isinstance(display_name, str) and display_name:
                return display_name
        return None

    def revoke(self) -> None:
        if self._oauth is not None:
            self._oauth.revoke()

    # ----------------------------
    # Internals
    # ----------------------------
    def _common_get_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True}

    def _common_list_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True, "includeItemsFromAllDrives": True}

    def _stream(
        self,
        request: Any,
        fd: IO[bytes],
        on_progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
    ) -> int:
        try:
            from googleapiclient.http import MediaIoBaseDownload
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "google-api-python-client is not available",
                cause=exc,
            ) from exc

        downloader = MediaIoBaseDownload(fd, request, chunksize=self._chunk_size)
        received = 0
        done = False
        while not done:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            status, done = self._execute(downloader.next_chunk)
            if status is not None:
                received = int(status.resumable_progress)
                if on_progress is not None:
                    on_progress(received)
        return received

    def _execute(self, func: Callable[[], T]) -> T:
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return func()
            except Exception as exc:
                mapped = self._map_exception(exc)
                if self._should_retry(mapped) and attempt < self._retry_policy.max_retries:
                    logger.debug("Retrying after %s (attempt %d)", mapped.__class__.__name__, attempt + 1)
                    time.sleep(delay)
                    delay *= 2
                    continue
                if mapped is exc:
                    raise
                raise mapped from exc

        raise ApiError("Unexpected retry loop termination")

    def _should_retry(self, exc: Exception) -> bool:
        if isinstance(exc, RateLimitError):
            return True
        if isinstance(exc, NetworkError):
            return True
        if isinstance(exc, ApiError):
            status_code = getattr(exc, "details", {}).get("status_code")
            return isinstance(status_code, int) and 500 <= status_code <= 599
        return False

    def _map_exception(self, exc: Exception) -> Exception:
        if isinstance(exc, DriveBrowserError):
            return exc

        try:
            from googleapiclient.errors import HttpError
        except Exception:  # pragma: no cover
            HttpError = None  # type: ignore[assignment]

        if HttpError is not None and isinstance(exc, HttpError):
            info = _http_error_to_info(exc)
            return map_http_error(info, cause=exc)

        try:
            from google.auth.exceptions import RefreshError
        except Exception:  # pragma: no cover
            RefreshError = None  # type: ignore[assignment]

        if RefreshError is not None and isinstance(exc, RefreshError):
            return AuthError("OAuth token refresh failed", cause=exc)

        if isinstance(exc, (OSError, TimeoutError)):
            return NetworkError("Network error", cause=exc)

        return ApiError("Google API error", cause=exc)


def _http_error_to_info(exc: Any) -> HttpErrorInfo:
    status_code = getattr(getattr(exc, "resp", None), "status", None)
    reason = getattr(getattr(exc, "resp", None), "reason", None)

    message = None
    details: dict[str, Any] = {}

    content = getattr(exc, "content", None)
    if isinstance(content, (bytes, bytearray)):
        try:
            payload = json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            payload = None
        err = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(err, dict):
            message = err.get("message") or None
            errors = err.get("errors") or []
            if errors and isinstance(errors, list) and isinstance(errors[0], dict):
                details["domain"] = errors[0].get("domain")
                details["reason_detail"] = errors[0].get("reason")
                if isinstance(errors[0].get("reason"), str):
                    reason = errors[0]["reason"]

    if not isinstance(status_code, int):
        status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )
