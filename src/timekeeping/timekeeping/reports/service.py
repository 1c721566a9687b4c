from __future__ import annotations

import calendar
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..aggregation.service import AggregationService
from ..attendance.model import AttendanceRecord, EmployeeId
from ..common.cancellation import CancellationToken, check
from ..common.datetime_utils import ensure_utc, local_date, local_day_start, now_utc
from ..common.validators import clean_text, require_date_range, require_employee_id, require_paging
from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_MAX_DAILY_HOURS
from ..core.enums import AlertKind, Granularity, ReportType
from ..core.exceptions import InvalidInput
from ..employees.directory import ensure_known
from ..employees.model import Employee
from ..employees.repository import EmployeeDirectory
from .model import (
    Alert,
    DailyOverview,
    DayPattern,
    DetailedRow,
    RecordPage,
    Report,
    ReportRequest,
    Statistics,
    SummaryRow,
)

Matched = List[Tuple[EmployeeId, Optional[Employee]]]

logger = logging.getLogger(__name__)


def _report_type(value) -> ReportType:
    try:
        return ReportType(value)
    except ValueError as e:
        raise InvalidInput(f"unsupported report type: {value!r}", field="report_type") from e


class ReportService:
    """Builds summary, detailed and statistics reports over a date range.

    Employees are matched from the directory (active, optionally by
    department). Without a directory the matched set is every employee with
    records in the range.
    """

    def __init__(
        self,
        aggregation: AggregationService,
        directory: Optional[EmployeeDirectory] = None,
        *,
        validate_employees: bool = False,
        max_daily_hours: float = DEFAULT_MAX_DAILY_HOURS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._aggregation = aggregation
        self._directory = directory
        self._validate_employees = bool(validate_employees)
        self._max_daily_hours = float(max_daily_hours)
        self._clock = clock

    def build_report(self, request: ReportRequest, *, cancel: Optional[CancellationToken] = None) -> Report:
        start, end = require_date_range(request.start_date, request.end_date)
        report_type = _report_type(request.report_type)
        employee_filter = (
            require_employee_id(request.employee_filter) if request.employee_filter is not None else None
        )
        department = clean_text(request.department_filter, "department") or None
        working_days = request.working_days_in_range
        if working_days is not None and (
            isinstance(working_days, bool) or not isinstance(working_days, int) or working_days < 0
        ):
            raise InvalidInput("working_days_in_range must be a non-negative integer", field="working_days_in_range")

        self._ensure_employee(employee_filter)

        check(cancel)
        employees, records = self._matched_records(employee_filter, department, start, end, cancel)
        ids = [e for e, _ in employees]

        report = Report(
            report_type=report_type,
            start_date=start,
            end_date=end,
            generated_at=ensure_utc(self._clock()),
            employee_filter=employee_filter,
            department_filter=department,
        )

        if report_type is ReportType.SUMMARY:
            rows = [
                SummaryRow(
                    employee_id=eid,
                    full_name=emp.full_name if emp else None,
                    department=emp.department if emp else None,
                    stats=self._aggregation.summarize(eid, start, end, cancel=cancel),
                )
                for eid, emp in employees
            ]
            report = replace(report, summary_rows=rows)
        elif report_type is ReportType.DETAILED:
            report = replace(report, detailed_rows=self._detailed_rows(records, dict(employees), cancel))
        else:
            report = replace(
                report,
                statistics=self._statistics(
                    records,
                    employee_filter=employee_filter,
                    employee_count=len(ids),
                    start=start,
                    end=end,
                    working_days=working_days,
                    cancel=cancel,
                ),
            )

        logger.info(
            "Built %s report %s..%s employees=%d records=%d",
            report_type.value,
            start,
            end,
            len(ids),
            len(records),
        )
        return report

    def list_records(
        self,
        start_date,
        end_date,
        *,
        employee_id=None,
        department: Optional[str] = None,
        incomplete_only: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
        cancel: Optional[CancellationToken] = None,
    ) -> RecordPage:
        """Records of all matched employees, newest clock-in first, one page at a time."""
        start, end = require_date_range(start_date, end_date)
        limit, offset = require_paging(limit, offset)
        employee_filter = require_employee_id(employee_id) if employee_id is not None else None
        department = clean_text(department, "department") or None
        self._ensure_employee(employee_filter)

        employees, records = self._matched_records(employee_filter, department, start, end, cancel)
        if incomplete_only:
            records = [r for r in records if r.is_open]
        rows = self._detailed_rows(records, dict(employees), cancel)
        return RecordPage(rows=rows[offset : offset + limit], total=len(rows), limit=limit, offset=offset)

    def daily_overview(
        self,
        *,
        as_of: Optional[datetime] = None,
        department: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> DailyOverview:
        agg = self._aggregation
        day = local_date(ensure_utc(as_of or self._clock()), agg.tz)
        department = clean_text(department, "department") or None

        employees, records = self._matched_records(None, department, day, day, cancel)
        present = {r.employee_id for r in records}
        still_in = {r.employee_id for r in records if r.is_open}
        total = len(employees)
        return DailyOverview(
            day=day,
            total_employees=total,
            checked_in=len(still_in),
            completed=len(present - still_in),
            absent=max(0, total - len(present)),
            attendance_rate=len(present) / total * 100.0 if total else None,
        )

    def alerts(
        self,
        *,
        as_of: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[Alert]:
        """Shifts left open since an earlier day, then today's shifts over the daily maximum."""
        agg = self._aggregation
        now = ensure_utc(as_of or self._clock())
        day = local_date(now, agg.tz)
        out: List[Alert] = []

        for r in agg.open_records(clock_in_before=local_day_start(day, agg.tz), cancel=cancel):
            hours = max((now - ensure_utc(r.clock_in)).total_seconds(), 0.0) / 3600.0
            out.append(
                Alert(
                    kind=AlertKind.OPEN_FROM_PREVIOUS_DAY,
                    record=r,
                    full_name=self._name_of(r.employee_id),
                    hours=hours,
                    message=f"clocked in since {ensure_utc(r.clock_in).isoformat()} without clocking out",
                )
            )

        for r in agg.records_in_range(day, day, cancel=cancel):
            hours = r.hours_worked
            if hours is None or hours <= self._max_daily_hours:
                continue
            out.append(
                Alert(
                    kind=AlertKind.LONG_SHIFT,
                    record=r,
                    full_name=self._name_of(r.employee_id),
                    hours=hours,
                    message=f"worked {hours:.2f} hours (limit {self._max_daily_hours:.2f})",
                )
            )
        return out

    # ---- helpers --------------------------------------------------------------

    def _ensure_employee(self, employee_id: Optional[EmployeeId]) -> None:
        if employee_id is not None and self._validate_employees:
            ensure_known(self._directory, employee_id)

    def _name_of(self, employee_id: EmployeeId) -> Optional[str]:
        emp = self._lookup(employee_id)
        return emp.full_name if emp else None

    def _matched_records(
        self,
        employee_filter: Optional[EmployeeId],
        department: Optional[str],
        start,
        end,
        cancel: Optional[CancellationToken],
    ) -> Tuple[Matched, List[AttendanceRecord]]:
        employees = self._match_employees(employee_filter, department)
        ids = [e for e, _ in employees] if employees is not None else None
        records = self._aggregation.records_in_range(start, end, employee_ids=ids, cancel=cancel)
        if employees is None:
            employees = self._employees_from_records(records, department)
            wanted = {e for e, _ in employees}
            records = [r for r in records if r.employee_id in wanted]
        return employees, records

    def _lookup(self, employee_id: EmployeeId) -> Optional[Employee]:
        if self._directory is None:
            return None
        return self._directory.get_by_id(employee_id)

    def _match_employees(
        self, employee_filter: Optional[EmployeeId], department: Optional[str]
    ) -> Optional[Matched]:
        """None means "derive from the records"."""
        if employee_filter is not None:
            emp = self._lookup(employee_filter)
            if department is not None and (emp is None or emp.department != department):
                return []
            return [(employee_filter, emp)]
        if self._directory is None:
            return None
        return [(e.employee_id, e) for e in self._directory.list_active(department=department)]

    def _employees_from_records(
        self, records: Sequence[AttendanceRecord], department: Optional[str]
    ) -> Matched:
        # No directory: records carry no department, so a department filter matches nobody.
        if department is not None:
            return []
        seen = sorted({r.employee_id for r in records}, key=lambda e: (isinstance(e, str), str(e).zfill(20)))
        return [(eid, None) for eid in seen]

    def _detailed_rows(
        self,
        records: Sequence[AttendanceRecord],
        employees: Dict[EmployeeId, Optional[Employee]],
        cancel: Optional[CancellationToken],
    ) -> List[DetailedRow]:
        calculator = self._aggregation.calculator
        out: List[DetailedRow] = []
        for r in sorted(records, key=lambda r: (r.clock_in, r.record_id), reverse=True):
            check(cancel)
            if r.employee_id not in employees:
                continue
            emp = employees[r.employee_id]
            out.append(
                DetailedRow(
                    record=r,
                    full_name=emp.full_name if emp else None,
                    department=emp.department if emp else None,
                    status=calculator.status_of(r),
                )
            )
        return out

    def _statistics(
        self,
        records: Sequence[AttendanceRecord],
        *,
        employee_filter: Optional[EmployeeId],
        employee_count: int,
        start,
        end,
        working_days: Optional[int],
        cancel: Optional[CancellationToken],
    ) -> Statistics:
        agg = self._aggregation
        overall = agg.summarize_records(records, employee_id=employee_filter, start_date=start, end_date=end)

        buckets = {}
        for g in (Granularity.DAY, Granularity.WEEK, Granularity.MONTH):
            buckets[g] = agg.bucket_records(
                records,
                employee_id=employee_filter,
                start_date=start,
                end_date=end,
                granularity=g,
                cancel=cancel,
            )

        rate = None
        if working_days and employee_count:
            rate = overall.days_worked / (working_days * employee_count) * 100.0

        patterns: Dict[int, List[float]] = {i: [0, 0.0] for i in range(7)}
        hours_hist: Dict[int, int] = {}
        for r in records:
            local_in = ensure_utc(r.clock_in).astimezone(agg.tz)
            hours_hist[local_in.hour] = hours_hist.get(local_in.hour, 0) + 1
            if r.clock_out is not None:
                p = patterns[local_in.weekday()]
                p[0] += 1
                p[1] += r.hours_worked or 0.0

        check(cancel)
        return Statistics(
            overall=overall,
            employee_count=employee_count,
            attendance_rate=rate,
            daily=buckets[Granularity.DAY],
            weekly=buckets[Granularity.WEEK],
            monthly=buckets[Granularity.MONTH],
            day_patterns=[
                DayPattern(weekday=calendar.day_name[i], record_count=int(n), total_hours=float(h))
                for i, (n, h) in sorted(patterns.items())
            ],
            clock_in_hours=hours_hist,
        )

