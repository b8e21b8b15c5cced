"""OAuth client utilities for drivebrowser."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from drivebrowser.errors import AuthError, AuthExpiredError

from .auth_info import AuthInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriveServices:
    """Discovery resources for every API the browser talks to."""

    drive: Any
    activity: Any
    people: Any
    credentials: Any


class OAuthClient:
    """Create and manage OAuth credentials and Google API service objects."""

    def __init__(self, auth_info: AuthInfo) -> None:
        self._auth_info = auth_info

    def get_credentials(self, ensure_valid: bool = True):
        """
        Return OAuth credentials for the configured scopes.

        Args:
            ensure_valid: If True, refresh credentials when possible and run
                the browser flow when no usable token exists.

        Returns:
            google.oauth2.credentials.Credentials

        Raises:
            AuthExpiredError: if the stored token can no longer be refreshed.
            AuthError: on load/flow failures.
        """
        try:
            from google.auth.exceptions import RefreshError
            from google.auth.transport.requests import Request
            from google.oauth2.credentials import Credentials
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "Google auth libraries are not available",
                details={"hint": "Install google-auth and google-auth-oauthlib"},
                cause=exc,
            ) from exc

        token_file = self._auth_info.token_file
        scopes = list(self._auth_info.scopes)

        if os.path.exists(token_file):
            try:
                creds = Credentials.from_authorized_user_file(token_file, scopes=scopes)
            except Exception as exc:
                raise AuthError(
                    "Failed to load token_file",
                    details={"token_file": token_file},
                    cause=exc,
                ) from exc

            if not ensure_valid:
                return creds

            if not creds.valid and creds.refresh_token:
                try:
                    creds.refresh(Request())
                except RefreshError as exc:
                    raise AuthExpiredError(
                        "Stored OAuth token was invalidated",
                        details={"token_file": token_file},
                        cause=exc,
                    ) from exc
                self._save_credentials(creds)

            if creds.valid:
                return creds

        return self._run_flow()

    def build_services(self) -> DriveServices:
        """
        Build Drive, Drive Activity and People resources.

        An `about.get` call validates cached tokens. When the token was
        revoked server-side, the token file is deleted and authorization runs
        once more.
        """
        try:
            return self._build_and_verify()
        except AuthExpiredError as exc:
            logger.warning("Drive access tokens were invalidated, reauthenticating: %s", exc.cause)
            self.revoke()
            return self._build_and_verify()

    def revoke(self) -> None:
        """Forget the stored token; the next session re-runs authorization."""
        token_file = self._auth_info.token_file
        if os.path.exists(token_file):
            os.remove(token_file)

    # ----------------------------
    # Internals
    # ----------------------------
    def _build_and_verify(self) -> DriveServices:
        try:
            from google.auth.exceptions import RefreshError
            from googleapiclient.discovery import build
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "google-api-python-client is not available",
                details={"hint": "Install google-api-python-client"},
                cause=exc,
            ) from exc

        creds = self.get_credentials(ensure_valid=True)
        try:
            services = DriveServices(
                drive=build("drive", "v3", credentials=creds, cache_discovery=False),
                activity=build("driveactivity", "v2", credentials=creds, cache_discovery=False),
                people=build("people", "v1", credentials=creds, cache_discovery=False),
                credentials=creds,
            )
        except Exception as exc:
            raise AuthError("Failed to build Google API services", cause=exc) from exc

        try:
            services.drive.about().get(fields="kind").execute()
        except RefreshError as exc:
            raise AuthExpiredError("OAuth token refresh failed", cause=exc) from exc

        return services

    def _run_flow(self):
        try:
            from google_auth_oauthlib.flow import InstalledAppFlow
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "google-auth-oauthlib is not available",
                details={"hint": "Install google-auth-oauthlib"},
                cause=exc,
            ) from exc

        client_secrets = self._auth_info.client_secrets_file
        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                client_secrets,
                scopes=list(self._auth_info.scopes),
            )
            creds = flow.run_local_server(port=0)
        except Exception as exc:
            raise AuthError(
                "OAuth authorization flow failed",
                details={
                    "client_secrets_file": client_secrets,
                    "token_file": self._auth_info.token_file,
                },
                cause=exc,
            ) from exc

        self._save_credentials(creds)
        return creds

    def _save_credentials(self, creds) -> None:
        token_file = self._auth_info.token_file
        token_dir = os.path.dirname(token_file)
        if token_dir:
            os.makedirs(token_dir, exist_ok=True)

        try:
            with open(token_file, "w", encoding="utf-8") as f:
                f.write(creds.to_json())
        except Exception as exc:
            raise AuthError(
                "Failed to save OAuth token file",
                details={"token_file": token_file},
                cause=exc,
            ) from exc
