from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar, Union

from ..common.cancellation import CancellationToken, check
from ..common.datetime_utils import ensure_utc, get_timezone, local_day_start, now_utc
from ..common.retry import call_with_retry
from ..common.validators import clean_text, require_employee_id, require_optional_range, require_paging
from ..core.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_MAX_DAILY_HOURS,
    DEFAULT_STORE_RETRY_ATTEMPTS,
    DEFAULT_STORE_RETRY_BACKOFF_SECONDS,
    DEFAULT_TIMEZONE,
)
from ..core.enums import PresenceState, WorkStatus
from ..core.exceptions import (
    AlreadyClockedIn,
    DomainError,
    InvalidInput,
    NotClockedIn,
    RecordNotFound,
)
from ..employees.directory import ensure_known
from ..employees.repository import EmployeeDirectory
from .calculator.base import HoursCalculator
from .calculator.standard_calculator import StandardHoursCalculator
from .locks import EmployeeLocks
from .model import AttendanceRecord, EmployeeId
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (employee id as given or normalized, outcome) in input order; ids may repeat.
BulkResult = List[Tuple[Any, Union[AttendanceRecord, DomainError]]]


class AttendanceService:
    """Clock-in/clock-out state machine.

    Per employee: ABSENT -> clock_in -> PRESENT -> clock_out -> ABSENT.
    Writes for one employee are serialized by ``EmployeeLocks``; the store
    additionally enforces the single open record rule on its own.
    """

    def __init__(
        self,
        records: AttendanceRepository,
        calculator: Optional[HoursCalculator] = None,
        *,
        directory: Optional[EmployeeDirectory] = None,
        cache=None,
        locks: Optional[EmployeeLocks] = None,
        validate_employees: bool = False,
        retry_attempts: int = DEFAULT_STORE_RETRY_ATTEMPTS,
        retry_backoff_seconds: float = DEFAULT_STORE_RETRY_BACKOFF_SECONDS,
        timezone: str = DEFAULT_TIMEZONE,
        max_daily_hours: float = DEFAULT_MAX_DAILY_HOURS,
    ):
        self._records = records
        self._calculator = calculator or StandardHoursCalculator()
        self._directory = directory
        self._cache = cache
        self._locks = locks or EmployeeLocks(timeout=DEFAULT_LOCK_TIMEOUT_SECONDS)
        self._validate_employees = bool(validate_employees)
        self._retry_attempts = int(retry_attempts)
        self._retry_backoff = float(retry_backoff_seconds)
        self._tz = get_timezone(timezone)
        self._max_daily_hours = float(max_daily_hours)

    @property
    def calculator(self) -> HoursCalculator:
        return self._calculator

    def _call(self, fn: Callable[[], T], cancel: Optional[CancellationToken]) -> T:
        return call_with_retry(
            fn,
            attempts=self._retry_attempts,
            backoff_seconds=self._retry_backoff,
            cancel=cancel,
        )

    def _ensure_employee(self, employee_id: EmployeeId, *, active_only: bool = False) -> None:
        if self._validate_employees:
            ensure_known(self._directory, employee_id, active_only=active_only)

    def _invalidate(self, employee_id: EmployeeId) -> None:
        if self._cache is not None:
            self._cache.invalidate(employee_id)

    # ---- writes ---------------------------------------------------------------

    def clock_in(
        self,
        employee_id,
        location: Optional[str] = "",
        notes: Optional[str] = "",
        *,
        now: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> AttendanceRecord:
        employee_id = require_employee_id(employee_id)
        location = clean_text(location, "location")
        notes = clean_text(notes, "notes", max_len=1000)
        now = ensure_utc(now or now_utc())
        self._ensure_employee(employee_id, active_only=True)

        with self._locks.hold(employee_id, cancel=cancel):
            existing = self._call(lambda: self._records.get_open_for_employee(employee_id, cancel=cancel), cancel)
            if existing is not None:
                raise AlreadyClockedIn(
                    f"employee {employee_id} is already clocked in",
                    employee_id=employee_id,
                    record_id=existing.record_id,
                )
            check(cancel)
            record = self._call(
                lambda: self._records.create_open(
                    employee_id=employee_id,
                    clock_in=now,
                    location=location,
                    notes=notes,
                ),
                cancel,
            )

        self._invalidate(employee_id)
        logger.info("Clock-in employee=%s record=%s at %s", employee_id, record.record_id, now.isoformat())
        return record

    def clock_out(
        self,
        employee_id,
        location: Optional[str] = "",
        notes: Optional[str] = "",
        *,
        now: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> AttendanceRecord:
        employee_id = require_employee_id(employee_id)
        location = clean_text(location, "location")
        notes = clean_text(notes, "notes", max_len=1000)
        now = ensure_utc(now or now_utc())
        self._ensure_employee(employee_id)

        with self._locks.hold(employee_id, cancel=cancel):
            open_record = self._call(lambda: self._records.get_open_for_employee(employee_id, cancel=cancel), cancel)
            if open_record is None:
                raise NotClockedIn(f"employee {employee_id} is not clocked in", employee_id=employee_id)

            hours = self._calculator.compute_hours(open_record.clock_in, now)
            if hours > self._max_daily_hours:
                logger.warning(
                    "Suspicious shift for employee=%s record=%s: %.2f hours (max %.2f)",
                    employee_id,
                    open_record.record_id,
                    hours,
                    self._max_daily_hours,
                )

            check(cancel)
            closed = self._call(
                lambda: self._records.close_open(
                    record_id=open_record.record_id,
                    clock_out=now,
                    location_out=location,
                    notes_out=notes,
                ),
                cancel,
            )
            if not closed:
                # Closed concurrently by another writer.
                raise NotClockedIn(f"employee {employee_id} is not clocked in", employee_id=employee_id)

        self._invalidate(employee_id)
        logger.info(
            "Clock-out employee=%s record=%s hours=%.2f",
            employee_id,
            open_record.record_id,
            hours,
        )
        return dataclasses.replace(open_record, clock_out=now, location_out=location, notes_out=notes)

    def bulk_clock_in(
        self,
        employee_ids: Iterable,
        location: Optional[str] = "",
        notes: Optional[str] = "",
        *,
        now: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> BulkResult:
        """Clock in several employees; one failure never aborts the rest."""
        return self._bulk(self.clock_in, employee_ids, location, notes, now=now, cancel=cancel)

    def bulk_clock_out(
        self,
        employee_ids: Iterable,
        location: Optional[str] = "",
        notes: Optional[str] = "",
        *,
        now: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> BulkResult:
        return self._bulk(self.clock_out, employee_ids, location, notes, now=now, cancel=cancel)

    def _bulk(self, op, employee_ids, location, notes, *, now, cancel) -> BulkResult:
        results: BulkResult = []
        for raw_id in employee_ids:
            check(cancel)
            try:
                employee_id = require_employee_id(raw_id)
            except InvalidInput as e:
                results.append((raw_id, e))
                continue
            try:
                results.append((employee_id, op(employee_id, location, notes, now=now, cancel=cancel)))
            except DomainError as e:
                logger.info("Bulk %s failed for employee=%s: %s", op.__name__, employee_id, e.code)
                results.append((employee_id, e))
        return results

    # ---- reads ----------------------------------------------------------------

    def current_status(
        self, employee_id, *, cancel: Optional[CancellationToken] = None
    ) -> Optional[AttendanceRecord]:
        employee_id = require_employee_id(employee_id)
        self._ensure_employee(employee_id)
        return self._call(lambda: self._records.get_open_for_employee(employee_id, cancel=cancel), cancel)

    def presence(self, employee_id, *, cancel: Optional[CancellationToken] = None) -> PresenceState:
        if self.current_status(employee_id, cancel=cancel) is None:
            return PresenceState.ABSENT
        return PresenceState.PRESENT

    def current_duration_hours(self, record: AttendanceRecord, *, now: Optional[datetime] = None) -> float:
        """Elapsed hours of a shift; final hours for a closed record."""
        if record.clock_out is not None:
            return record.hours_worked or 0.0
        now = ensure_utc(now or now_utc())
        seconds = (now - ensure_utc(record.clock_in)).total_seconds()
        return max(seconds, 0.0) / 3600.0

    def status_of(self, record: AttendanceRecord) -> WorkStatus:
        return self._calculator.status_of(record)

    def _instant_bounds(self, start_date: Optional[date], end_date: Optional[date]):
        require_optional_range(start_date, end_date)
        lo = local_day_start(start_date, self._tz) if start_date is not None else None
        hi = None
        if end_date is not None:
            hi = local_day_start(date.fromordinal(end_date.toordinal() + 1), self._tz)
        return lo, hi

    def get_records(
        self,
        employee_id,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> list[AttendanceRecord]:
        """Records of one employee, newest clock-in first.

        Dates are local calendar days in the configured timezone, inclusive.
        """
        employee_id = require_employee_id(employee_id)
        limit, offset = require_paging(limit, offset)
        self._ensure_employee(employee_id)
        lo, hi = self._instant_bounds(start_date, end_date)
        rows = self._call(
            lambda: self._records.list_for_employee(
                employee_id,
                clock_in_from=lo,
                clock_in_to=hi,
                limit=limit,
                offset=offset,
                cancel=cancel,
            ),
            cancel,
        )
        return list(rows)

    def count_records(
        self,
        employee_id,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> int:
        employee_id = require_employee_id(employee_id)
        self._ensure_employee(employee_id)
        lo, hi = self._instant_bounds(start_date, end_date)
        return self._call(
            lambda: self._records.count_for_employee(employee_id, clock_in_from=lo, clock_in_to=hi),
            cancel,
        )

    def get_record(self, record_id, *, cancel: Optional[CancellationToken] = None) -> AttendanceRecord:
        if isinstance(record_id, str) and record_id.strip().isdigit():
            record_id = int(record_id.strip())
        if isinstance(record_id, bool) or not isinstance(record_id, int) or record_id <= 0:
            raise InvalidInput("record_id must be a positive integer", field="record_id")
        record = self._call(lambda: self._records.get_by_id(record_id), cancel)
        if record is None:
            raise RecordNotFound(f"attendance record {record_id} not found", record_id=record_id)
        return record
