from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime
from typing import Collection, Dict, Optional, Sequence

from ..common.cancellation import CancellationToken, check
from ..common.datetime_utils import ensure_utc
from ..core.exceptions import AlreadyClockedIn
from .model import AttendanceRecord, EmployeeId
from .repository import AttendanceRepository


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local record store.

    Used by the ``memory`` store backend and by tests. All writes happen under
    one lock, so the open-record check and the insert are a single step.
    """

    def __init__(self, records: Sequence[AttendanceRecord] = ()):
        self._lock = threading.RLock()
        self._records: Dict[int, AttendanceRecord] = {}
        self._open_by_employee: Dict[EmployeeId, int] = {}
        start = max((r.record_id for r in records), default=0) + 1
        self._ids = itertools.count(start)
        for r in records:
            self._records[r.record_id] = r
            if r.is_open:
                if r.employee_id in self._open_by_employee:
                    raise AlreadyClockedIn("seed data has two open records", employee_id=r.employee_id)
                self._open_by_employee[r.employee_id] = r.record_id

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._records.get(int(record_id))

    def get_open_for_employee(
        self, employee_id: EmployeeId, *, cancel: Optional[CancellationToken] = None
    ) -> Optional[AttendanceRecord]:
        check(cancel)
        with self._lock:
            record_id = self._open_by_employee.get(employee_id)
            return self._records.get(record_id) if record_id is not None else None

    def create_open(
        self,
        *,
        employee_id: EmployeeId,
        clock_in: datetime,
        location: str = "",
        notes: str = "",
    ) -> AttendanceRecord:
        with self._lock:
            if employee_id in self._open_by_employee:
                raise AlreadyClockedIn("employee already has an open record", employee_id=employee_id)
            rec = AttendanceRecord(
                record_id=next(self._ids),
                employee_id=employee_id,
                clock_in=ensure_utc(clock_in),
                clock_out=None,
                location=location,
                notes=notes,
            )
            self._records[rec.record_id] = rec
            self._open_by_employee[employee_id] = rec.record_id
            return rec

    def close_open(
        self,
        *,
        record_id: int,
        clock_out: datetime,
        location_out: str = "",
        notes_out: str = "",
    ) -> bool:
        with self._lock:
            rec = self._records.get(int(record_id))
            if rec is None or not rec.is_open:
                return False
            self._records[rec.record_id] = replace(
                rec,
                clock_out=ensure_utc(clock_out),
                location_out=location_out,
                notes_out=notes_out,
            )
            self._open_by_employee.pop(rec.employee_id, None)
            return True

    def _filtered(self, employee_id, clock_in_from, clock_in_to):
        items = [r for r in self._records.values() if r.employee_id == employee_id]
        if clock_in_from is not None:
            items = [r for r in items if r.clock_in >= ensure_utc(clock_in_from)]
        if clock_in_to is not None:
            items = [r for r in items if r.clock_in < ensure_utc(clock_in_to)]
        return items

    def list_for_employee(
        self,
        employee_id: EmployeeId,
        *,
        clock_in_from: Optional[datetime] = None,
        clock_in_to: Optional[datetime] = None,
        limit: int = 30,
        offset: int = 0,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        check(cancel)
        with self._lock:
            items = self._filtered(employee_id, clock_in_from, clock_in_to)
        items.sort(key=lambda r: (r.clock_in, r.record_id), reverse=True)
        return items[offset : offset + limit]

    def count_for_employee(
        self,
        employee_id: EmployeeId,
        *,
        clock_in_from: Optional[datetime] = None,
        clock_in_to: Optional[datetime] = None,
    ) -> int:
        with self._lock:
            return len(self._filtered(employee_id, clock_in_from, clock_in_to))

    def list_in_range(
        self,
        *,
        clock_in_from: datetime,
        clock_in_to: datetime,
        employee_ids: Optional[Collection[EmployeeId]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        check(cancel)
        lo, hi = ensure_utc(clock_in_from), ensure_utc(clock_in_to)
        wanted = set(employee_ids) if employee_ids is not None else None
        with self._lock:
            items = [
                r
                for r in self._records.values()
                if lo <= r.clock_in < hi and (wanted is None or r.employee_id in wanted)
            ]
        items.sort(key=lambda r: (r.clock_in, r.record_id))
        return items

    def list_open(
        self,
        *,
        clock_in_before: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        check(cancel)
        with self._lock:
            items = [self._records[rid] for rid in self._open_by_employee.values()]
        if clock_in_before is not None:
            items = [r for r in items if r.clock_in < ensure_utc(clock_in_before)]
        items.sort(key=lambda r: (r.clock_in, r.record_id))
        return items
