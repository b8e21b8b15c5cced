"""Internal controller exports for drivebrowser."""

from __future__ import annotations

from .drive_controller import DriveController
from .transport import DriveTransport, ThreadedTransport

__all__ = ["DriveController", "DriveTransport", "ThreadedTransport"]
