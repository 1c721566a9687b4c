from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Collection, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from ..attendance.calculator.base import HoursCalculator
from ..attendance.calculator.standard_calculator import StandardHoursCalculator
from ..attendance.model import AttendanceRecord, EmployeeId
from ..attendance.repository import AttendanceRepository
from ..common.cancellation import CancellationToken, check
from ..common.datetime_utils import day_range_to_instants, ensure_utc, get_timezone, local_date, now_utc
from ..common.retry import call_with_retry
from ..common.validators import require_date_range, require_employee_id
from ..core.constants import DEFAULT_STORE_RETRY_ATTEMPTS, DEFAULT_STORE_RETRY_BACKOFF_SECONDS, DEFAULT_TIMEZONE
from ..core.enums import Granularity
from ..core.exceptions import InvalidInput
from ..employees.directory import ensure_known
from ..employees.repository import EmployeeDirectory
from .buckets import MONDAY, bucket_start, iter_buckets
from .cache import SummaryCache
from .model import Bucket, PeriodTotals, SummaryStats

logger = logging.getLogger(__name__)

T = TypeVar("T")


def summarize_records(
    records: Iterable[AttendanceRecord],
    *,
    employee_id: Optional[EmployeeId],
    start_date: date,
    end_date: date,
    tz,
    calculator: HoursCalculator,
) -> SummaryStats:
    """Fold records into ``SummaryStats``.

    1. Each record belongs to the local date of its clock-in; records dated
       outside ``start_date..end_date`` are ignored.
    2. A day counts as worked when it has at least one CLOSED record, and as
       incomplete when all of its records are OPEN.
    3. Hours are summed over CLOSED records only, at full precision.

    Days are keyed by (employee, date), so several employees working the same
    date count separately.
    """
    days: Dict[Tuple[EmployeeId, date], bool] = {}
    dates: set[date] = set()
    total = 0.0
    overtime = 0.0
    count = 0

    for r in records:
        d = local_date(r.clock_in, tz)
        if d < start_date or d > end_date:
            continue
        count += 1
        dates.add(d)
        key = (r.employee_id, d)
        closed = r.clock_out is not None
        days[key] = days.get(key, False) or closed
        if closed:
            hours = r.hours_worked or 0.0
            total += hours
            overtime += calculator.overtime_hours(hours)

    days_worked = sum(1 for closed in days.values() if closed)
    return SummaryStats(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        days_worked=days_worked,
        total_hours=total,
        average_hours_per_day=total / days_worked if days_worked else 0.0,
        incomplete_days=len(days) - days_worked,
        first_work_day=min(dates) if dates else None,
        last_work_day=max(dates) if dates else None,
        record_count=count,
        overtime_hours=overtime,
    )


def bucket_records(
    records: Sequence[AttendanceRecord],
    *,
    employee_id: Optional[EmployeeId],
    start_date: date,
    end_date: date,
    granularity,
    tz,
    calculator: HoursCalculator,
    week_start: int = MONDAY,
    cancel: Optional[CancellationToken] = None,
) -> List[Bucket]:
    """One bucket per calendar period touching the range, zero rows included."""
    try:
        g = Granularity(granularity)
    except ValueError as e:
        raise InvalidInput(f"unsupported granularity: {granularity!r}", field="granularity") from e

    by_start: Dict[date, List[AttendanceRecord]] = {}
    for r in records:
        key = bucket_start(local_date(r.clock_in, tz), g, week_start=week_start)
        by_start.setdefault(key, []).append(r)

    out: List[Bucket] = []
    for label, first, last in iter_buckets(start_date, end_date, g, week_start=week_start):
        check(cancel)
        chunk = by_start.get(bucket_start(first, g, week_start=week_start), [])
        stats = summarize_records(
            chunk,
            employee_id=employee_id,
            start_date=first,
            end_date=last,
            tz=tz,
            calculator=calculator,
        )
        out.append(Bucket(granularity=g, label=label, start_date=first, end_date=last, stats=stats))
    return out


class AggregationService:
    """Read side: summaries, trend buckets and period totals."""

    def __init__(
        self,
        records: AttendanceRepository,
        calculator: Optional[HoursCalculator] = None,
        *,
        cache: Optional[SummaryCache] = None,
        directory: Optional[EmployeeDirectory] = None,
        validate_employees: bool = False,
        timezone: str = DEFAULT_TIMEZONE,
        week_start: int = MONDAY,
        retry_attempts: int = DEFAULT_STORE_RETRY_ATTEMPTS,
        retry_backoff_seconds: float = DEFAULT_STORE_RETRY_BACKOFF_SECONDS,
    ):
        self._records = records
        self._calculator = calculator or StandardHoursCalculator()
        self._cache = cache
        self._directory = directory
        self._validate_employees = bool(validate_employees)
        self._tz = get_timezone(timezone)
        self._week_start = int(week_start)
        self._retry_attempts = int(retry_attempts)
        self._retry_backoff = float(retry_backoff_seconds)

    @property
    def tz(self):
        return self._tz

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

    def _ensure_employee(self, employee_id: EmployeeId) -> None:
        if self._validate_employees:
            ensure_known(self._directory, employee_id)

    def records_in_range(
        self,
        start_date: date,
        end_date: date,
        *,
        employee_ids: Optional[Collection[EmployeeId]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[AttendanceRecord]:
        """Records whose local clock-in date falls in the range, oldest first."""
        start_date, end_date = require_date_range(start_date, end_date)
        lo, hi = day_range_to_instants(start_date, end_date, self._tz)
        rows = self._call(
            lambda: self._records.list_in_range(
                clock_in_from=lo,
                clock_in_to=hi,
                employee_ids=employee_ids,
                cancel=cancel,
            ),
            cancel,
        )
        check(cancel)
        return list(rows)

    def open_records(
        self,
        *,
        clock_in_before: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[AttendanceRecord]:
        rows = self._call(
            lambda: self._records.list_open(clock_in_before=clock_in_before, cancel=cancel),
            cancel,
        )
        return list(rows)

    def summarize_records(
        self,
        records: Iterable[AttendanceRecord],
        *,
        employee_id: Optional[EmployeeId],
        start_date: date,
        end_date: date,
    ) -> SummaryStats:
        return summarize_records(
            records,
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            tz=self._tz,
            calculator=self._calculator,
        )

    def bucket_records(
        self,
        records: Sequence[AttendanceRecord],
        *,
        employee_id: Optional[EmployeeId],
        start_date: date,
        end_date: date,
        granularity,
        cancel: Optional[CancellationToken] = None,
    ) -> List[Bucket]:
        return bucket_records(
            records,
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            granularity=granularity,
            tz=self._tz,
            calculator=self._calculator,
            week_start=self._week_start,
            cancel=cancel,
        )

    def summarize(
        self,
        employee_id,
        start_date: date,
        end_date: date,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> SummaryStats:
        employee_id = require_employee_id(employee_id)
        start_date, end_date = require_date_range(start_date, end_date)
        self._ensure_employee(employee_id)

        generation = 0
        if self._cache is not None:
            cached = self._cache.get(employee_id, start_date, end_date)
            if cached is not None:
                return cached
            generation = self._cache.generation(employee_id)

        records = self.records_in_range(start_date, end_date, employee_ids=[employee_id], cancel=cancel)
        stats = self.summarize_records(records, employee_id=employee_id, start_date=start_date, end_date=end_date)
        logger.debug(
            "Summary employee=%s %s..%s records=%d days=%d",
            employee_id,
            start_date,
            end_date,
            stats.record_count,
            stats.days_worked,
        )

        if self._cache is not None:
            self._cache.put(stats, generation=generation)
        return stats

    def bucketed(
        self,
        employee_id,
        start_date: date,
        end_date: date,
        granularity,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> List[Bucket]:
        """Per-period summaries; the store is queried once for the whole range."""
        employee_id = require_employee_id(employee_id)
        self._ensure_employee(employee_id)
        records = self.records_in_range(start_date, end_date, employee_ids=[employee_id], cancel=cancel)
        return self.bucket_records(
            records,
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            granularity=granularity,
            cancel=cancel,
        )

    def period_totals(
        self,
        employee_id,
        *,
        as_of: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> PeriodTotals:
        employee_id = require_employee_id(employee_id)
        self._ensure_employee(employee_id)
        today = local_date(ensure_utc(as_of or now_utc()), self._tz)
        week_first = bucket_start(today, Granularity.WEEK, week_start=self._week_start)
        month_first = today.replace(day=1)
        first = min(week_first, month_first)

        records = self.records_in_range(first, today, employee_ids=[employee_id], cancel=cancel)

        def hours(since: date) -> SummaryStats:
            return self.summarize_records(records, employee_id=employee_id, start_date=since, end_date=today)

        month = hours(month_first)
        return PeriodTotals(
            employee_id=employee_id,
            as_of=today,
            today_hours=hours(today).total_hours,
            week_hours=hours(week_first).total_hours,
            month_hours=month.total_hours,
            month_overtime_hours=month.overtime_hours,
        )

