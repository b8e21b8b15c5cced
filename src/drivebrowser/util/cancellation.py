"""Cooperative cancellation shared by every unit of an operation."""

from __future__ import annotations

import threading

from drivebrowser.errors import OperationCanceledError


class CancellationToken:
    """
    Advisory cancellation signal.

    Backed by a threading.Event because transport chunk loops run in worker
    threads and poll it between chunks.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCanceledError("Operation canceled")


def is_cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.cancelled
