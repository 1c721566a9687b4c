from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Protocol, Sequence

from ..common.cancellation import CancellationToken
from .model import AttendanceRecord, EmployeeId


class AttendanceRepository(Protocol):
    """Record store contract.

    Instant filters are half-open: ``clock_in_from <= clock_in < clock_in_to``.
    Implementations raise ``StoreUnavailable`` for infrastructure failures.
    """

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_open_for_employee(
        self, employee_id: EmployeeId, *, cancel: Optional[CancellationToken] = None
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_open(
        self,
        *,
        employee_id: EmployeeId,
        clock_in: datetime,
        location: str = "",
        notes: str = "",
    ) -> AttendanceRecord:
        """Insert an OPEN record.

        Must be atomic with respect to the single-open-record rule: raises
        ``AlreadyClockedIn`` if the employee already has an OPEN record.
        """

        raise NotImplementedError

    def close_open(
        self,
        *,
        record_id: int,
        clock_out: datetime,
        location_out: str = "",
        notes_out: str = "",
    ) -> bool:
        """Set clock-out only if the record is still OPEN. Returns False otherwise."""

        raise NotImplementedError

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
        """Newest first."""

        raise NotImplementedError

    def count_for_employee(
        self,
        employee_id: EmployeeId,
        *,
        clock_in_from: Optional[datetime] = None,
        clock_in_to: Optional[datetime] = None,
    ) -> int:
        raise NotImplementedError

    def list_in_range(
        self,
        *,
        clock_in_from: datetime,
        clock_in_to: datetime,
        employee_ids: Optional[Collection[EmployeeId]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        """Oldest first; all employees unless ``employee_ids`` is given."""

        raise NotImplementedError

    def list_open(
        self,
        *,
        clock_in_before: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        """OPEN records of every employee, oldest first."""

        raise NotImplementedError
