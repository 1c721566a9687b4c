from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..attendance.model import EmployeeId
from ..core.constants import HOURS_DISPLAY_PRECISION
from ..core.enums import Granularity


def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None


def _display(hours: float) -> float:
    return round(hours, HOURS_DISPLAY_PRECISION)


@dataclass(frozen=True)
class SummaryStats:
    """Derived totals for an employee (or a group) over a date range.

    ``employee_id`` is None for multi-employee aggregates; there a "day" is a
    distinct (employee, date) pair. Hour fields keep full precision.
    """

    employee_id: Optional[EmployeeId]
    start_date: date
    end_date: date
    days_worked: int = 0
    total_hours: float = 0.0
    average_hours_per_day: float = 0.0
    incomplete_days: int = 0
    first_work_day: Optional[date] = None
    last_work_day: Optional[date] = None
    record_count: int = 0
    overtime_hours: float = 0.0

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days_worked": self.days_worked,
            "total_hours": _display(self.total_hours),
            "average_hours_per_day": _display(self.average_hours_per_day),
            "incomplete_days": self.incomplete_days,
            "first_work_day": _iso(self.first_work_day),
            "last_work_day": _iso(self.last_work_day),
            "record_count": self.record_count,
            "overtime_hours": _display(self.overtime_hours),
        }


@dataclass(frozen=True)
class Bucket:
    granularity: Granularity
    label: str
    start_date: date
    end_date: date
    stats: SummaryStats

    def to_dict(self) -> dict:
        data = self.stats.to_dict()
        data.update(
            {
                "granularity": self.granularity.value,
                "label": self.label,
                "start_date": self.start_date.isoformat(),
                "end_date": self.end_date.isoformat(),
            }
        )
        return data


@dataclass(frozen=True)
class PeriodTotals:
    """Hours for the current day, week and month as seen on ``as_of``."""

    employee_id: EmployeeId
    as_of: date
    today_hours: float
    week_hours: float
    month_hours: float
    month_overtime_hours: float

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "as_of": self.as_of.isoformat(),
            "today_hours": _display(self.today_hours),
            "week_hours": _display(self.week_hours),
            "month_hours": _display(self.month_hours),
            "month_overtime_hours": _display(self.month_overtime_hours),
        }
