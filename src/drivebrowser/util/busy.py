"""Process-level "operation in progress" marker."""

from __future__ import annotations


class OperationLock:
    """
    Counts long-running remote operations (downloads, activity, search).

    Hosts query `in_progress` to hold back reloads while work is running.
    Nested holders are allowed; the lock is free when every holder released.
    """

    def __init__(self) -> None:
        self._holders = 0

    @property
    def in_progress(self) -> bool:
        return self._holders > 0

    def acquire(self) -> None:
        self._holders += 1

    def release(self) -> None:
        if self._holders > 0:
            self._holders -= 1

    def __enter__(self) -> "OperationLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
