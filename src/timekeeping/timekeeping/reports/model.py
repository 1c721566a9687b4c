from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from ..aggregation.model import Bucket, SummaryStats
from ..attendance.model import AttendanceRecord, EmployeeId
from ..common.datetime_utils import to_iso
from ..core.constants import HOURS_DISPLAY_PRECISION
from ..core.enums import AlertKind, ReportType, WorkStatus


@dataclass(frozen=True)
class ReportRequest:
    """Read-only query descriptor for ``ReportService.build_report``."""

    start_date: date
    end_date: date
    report_type: ReportType = ReportType.SUMMARY
    employee_filter: Optional[EmployeeId] = None
    department_filter: Optional[str] = None
    working_days_in_range: Optional[int] = None


@dataclass(frozen=True)
class SummaryRow:
    employee_id: EmployeeId
    full_name: Optional[str]
    department: Optional[str]
    stats: SummaryStats

    def to_dict(self) -> dict:
        data = self.stats.to_dict()
        data.update({"full_name": self.full_name, "department": self.department})
        return data


@dataclass(frozen=True)
class DetailedRow:
    record: AttendanceRecord
    full_name: Optional[str]
    department: Optional[str]
    status: WorkStatus

    def to_dict(self) -> dict:
        data = self.record.to_dict(status=self.status)
        data.update({"full_name": self.full_name, "department": self.department})
        return data


@dataclass(frozen=True)
class DayPattern:
    weekday: str
    record_count: int
    total_hours: float

    @property
    def average_hours(self) -> float:
        return self.total_hours / self.record_count if self.record_count else 0.0

    def to_dict(self) -> dict:
        return {
            "weekday": self.weekday,
            "record_count": self.record_count,
            "total_hours": round(self.total_hours, HOURS_DISPLAY_PRECISION),
            "average_hours": round(self.average_hours, HOURS_DISPLAY_PRECISION),
        }


@dataclass(frozen=True)
class Statistics:
    overall: SummaryStats
    employee_count: int
    attendance_rate: Optional[float]
    daily: List[Bucket]
    weekly: List[Bucket]
    monthly: List[Bucket]
    day_patterns: List[DayPattern]
    clock_in_hours: Dict[int, int]

    def to_dict(self) -> dict:
        return {
            "overall": self.overall.to_dict(),
            "employee_count": self.employee_count,
            "attendance_rate": (
                round(self.attendance_rate, HOURS_DISPLAY_PRECISION) if self.attendance_rate is not None else None
            ),
            "daily": [b.to_dict() for b in self.daily],
            "weekly": [b.to_dict() for b in self.weekly],
            "monthly": [b.to_dict() for b in self.monthly],
            "day_patterns": [p.to_dict() for p in self.day_patterns],
            "clock_in_hours": {str(h): n for h, n in sorted(self.clock_in_hours.items())},
        }


@dataclass(frozen=True)
class Report:
    report_type: ReportType
    start_date: date
    end_date: date
    generated_at: datetime
    employee_filter: Optional[EmployeeId] = None
    department_filter: Optional[str] = None
    summary_rows: List[SummaryRow] = field(default_factory=list)
    detailed_rows: List[DetailedRow] = field(default_factory=list)
    statistics: Optional[Statistics] = None

    def to_dict(self) -> dict:
        data = {
            "report_type": self.report_type.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "employee_filter": self.employee_filter,
            "department_filter": self.department_filter,
            "generated_at": to_iso(self.generated_at),
        }
        if self.report_type is ReportType.SUMMARY:
            data["rows"] = [r.to_dict() for r in self.summary_rows]
        elif self.report_type is ReportType.DETAILED:
            data["rows"] = [r.to_dict() for r in self.detailed_rows]
        else:
            data["statistics"] = self.statistics.to_dict() if self.statistics else None
        return data


@dataclass(frozen=True)
class DailyOverview:
    """Who is in, who has finished and who has not shown up on one local day.

    Counts are distinct employees. ``attendance_rate`` is None when there is
    nobody to count against.
    """

    day: date
    total_employees: int
    checked_in: int
    completed: int
    absent: int
    attendance_rate: Optional[float]

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "total_employees": self.total_employees,
            "checked_in": self.checked_in,
            "completed": self.completed,
            "absent": self.absent,
            "attendance_rate": (
                round(self.attendance_rate, HOURS_DISPLAY_PRECISION) if self.attendance_rate is not None else None
            ),
        }


@dataclass(frozen=True)
class Alert:
    kind: AlertKind
    record: AttendanceRecord
    full_name: Optional[str]
    hours: float
    message: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "employee_id": self.record.employee_id,
            "record_id": self.record.record_id,
            "full_name": self.full_name,
            "clock_in": to_iso(self.record.clock_in),
            "hours": round(self.hours, HOURS_DISPLAY_PRECISION),
            "message": self.message,
        }


@dataclass(frozen=True)
class RecordPage:
    rows: List[DetailedRow]
    total: int
    limit: int
    offset: int

    def to_dict(self) -> dict:
        return {
            "records": [r.to_dict() for r in self.rows],
            "pagination": {
                "total": self.total,
                "limit": self.limit,
                "offset": self.offset,
                "has_next": self.offset + self.limit < self.total,
                "has_prev": self.offset > 0,
            },
        }
