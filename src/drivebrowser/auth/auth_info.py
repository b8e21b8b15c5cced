"""Authentication information for drivebrowser (installed-app OAuth)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/drive.activity.readonly",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/contacts.readonly",
)


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Where OAuth client secrets and the cached user token live.

    The token file is created on the first successful authorization and
    deleted by `OAuthClient.revoke()`.
    """

    client_secrets_file: str
    token_file: str
    scopes: tuple[str, ...] = DEFAULT_SCOPES

    def __post_init__(self) -> None:
        for key in ("client_secrets_file", "token_file"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"AuthInfo.{key} must be a non-empty string")

        if not self.scopes or not all(isinstance(s, str) and s.strip() for s in self.scopes):
            raise ValueError("AuthInfo.scopes must be a non-empty sequence of strings")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> AuthInfo:
        """
        Read DRIVEBROWSER_CLIENT_SECRETS and DRIVEBROWSER_TOKEN_FILE.

        DRIVEBROWSER_SCOPES (comma-separated) optionally replaces the default scopes.
        """
        env = os.environ if environ is None else environ
        scopes_raw = env.get("DRIVEBROWSER_SCOPES", "").strip()
        scopes = (
            tuple(s.strip() for s in scopes_raw.split(",") if s.strip())
            if scopes_raw
            else DEFAULT_SCOPES
        )
        return cls(
            client_secrets_file=env.get("DRIVEBROWSER_CLIENT_SECRETS", "").strip(),
            token_file=env.get("DRIVEBROWSER_TOKEN_FILE", "").strip(),
            scopes=scopes,
        )
