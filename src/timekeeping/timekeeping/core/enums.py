from __future__ import annotations

from enum import Enum


class RecordState(str, Enum):
    """Lifecycle of a single attendance record."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PresenceState(str, Enum):
    """Per-employee state derived from the open record (if any)."""

    ABSENT = "ABSENT"
    PRESENT = "PRESENT"


class WorkStatus(str, Enum):
    """Classification of a shift by the hours worked."""

    OPEN = "open"
    PRESENT = "present"
    OVERTIME = "overtime"
    INCOMPLETE = "incomplete"


class ReportType(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    STATISTICS = "statistics"


class Granularity(str, Enum):
    """Calendar bucket sizes used for trend aggregation."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class AlertKind(str, Enum):
    """Conditions an administrator should look at."""

    OPEN_FROM_PREVIOUS_DAY = "open_from_previous_day"
    LONG_SHIFT = "long_shift"
