from __future__ import annotations

import threading
import time
from typing import Optional

from ..core.exceptions import Cancelled


class CancellationToken:
    """Caller-owned cancel flag with an optional deadline.

    Passed down through services and stores; long operations call
    ``raise_if_cancelled`` between steps so they stop with ``Cancelled``
    instead of returning a truncated result.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        return cls(timeout=seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("operation cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise Cancelled("operation timed out")


def check(cancel: Optional[CancellationToken]) -> None:
    if cancel is not None:
        cancel.raise_if_cancelled()
