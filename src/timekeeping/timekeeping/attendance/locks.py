from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Optional

from ..common.cancellation import CancellationToken
from ..core.exceptions import Cancelled
from .model import EmployeeId


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class EmployeeLocks:
    """One mutex per employee id, created on demand and dropped when idle.

    Different employees never share a lock, so they never block each other.
    """

    def __init__(self, *, timeout: float):
        self._timeout = float(timeout)
        self._guard = threading.Lock()
        self._entries: Dict[EmployeeId, _Entry] = {}

    @contextmanager
    def hold(self, employee_id: EmployeeId, *, cancel: Optional[CancellationToken] = None):
        timeout = self._timeout
        if cancel is not None:
            cancel.raise_if_cancelled()
            remaining = cancel.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)

        with self._guard:
            entry = self._entries.get(employee_id)
            if entry is None:
                entry = self._entries[employee_id] = _Entry()
            entry.users += 1

        acquired = entry.lock.acquire(timeout=timeout)
        try:
            if not acquired:
                raise Cancelled("timed out waiting for employee lock", employee_id=employee_id)
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    self._entries.pop(employee_id, None)

    def active_count(self) -> int:
        with self._guard:
            return len(self._entries)
