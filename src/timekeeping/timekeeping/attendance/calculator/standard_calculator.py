from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import ensure_utc
from ...core.constants import DEFAULT_MIN_DAY_HOURS, DEFAULT_STANDARD_DAY_HOURS, HOURS_DISPLAY_PRECISION
from ...core.enums import WorkStatus
from ...core.exceptions import InvalidInput, InvalidInterval
from .base import HoursCalculator


def round_hours(value: float) -> float:
    """Display rounding. Sums are always taken over unrounded values."""
    return round(value, HOURS_DISPLAY_PRECISION)


class StandardHoursCalculator(HoursCalculator):
    """Standard rule: hours = (out - in) on absolute instants.

    Naive timestamps are read as UTC, so an interval crossing midnight or a
    DST switch is measured by elapsed time, not wall-clock arithmetic.
    """

    def __init__(
        self,
        *,
        standard_day_hours: float = DEFAULT_STANDARD_DAY_HOURS,
        min_day_hours: float = DEFAULT_MIN_DAY_HOURS,
    ):
        if min_day_hours > standard_day_hours:
            raise InvalidInput("min_day_hours cannot exceed standard_day_hours", field="min_day_hours")
        self.standard_day_hours = float(standard_day_hours)
        self.min_day_hours = float(min_day_hours)

    def compute_hours(self, clock_in: datetime, clock_out: datetime) -> float:
        if not isinstance(clock_in, datetime) or not isinstance(clock_out, datetime):
            raise InvalidInput("clock_in and clock_out must be datetimes")
        seconds = (ensure_utc(clock_out) - ensure_utc(clock_in)).total_seconds()
        if seconds <= 0:
            raise InvalidInterval(
                "clock_out must be after clock_in",
                clock_in=clock_in.isoformat(),
                clock_out=clock_out.isoformat(),
            )
        return seconds / 3600.0

    def classify(self, hours: float) -> WorkStatus:
        if hours > self.standard_day_hours:
            return WorkStatus.OVERTIME
        if hours < self.min_day_hours:
            return WorkStatus.INCOMPLETE
        return WorkStatus.PRESENT

    def overtime_hours(self, hours: float) -> float:
        return max(hours - self.standard_day_hours, 0.0)
