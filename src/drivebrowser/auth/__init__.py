"""Public auth exports for drivebrowser."""

from __future__ import annotations

from .auth_info import DEFAULT_SCOPES, AuthInfo
from .oauth_client import DriveServices, OAuthClient

__all__ = ["AuthInfo", "DEFAULT_SCOPES", "DriveServices", "OAuthClient"]
