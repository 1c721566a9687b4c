"""Calendar bucket boundaries.

Every day/week/month/year boundary used by summaries and reports is computed
here. Buckets are inclusive date ranges.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterator, Tuple

from ..core.enums import Granularity
from ..core.exceptions import InvalidInput

MONDAY = 0


def _as_granularity(value) -> Granularity:
    try:
        return Granularity(value)
    except ValueError as e:
        raise InvalidInput(f"unsupported granularity: {value!r}", field="granularity") from e


def bucket_start(day: date, granularity, *, week_start: int = MONDAY) -> date:
    g = _as_granularity(granularity)
    if g is Granularity.DAY:
        return day
    if g is Granularity.WEEK:
        return day - timedelta(days=(day.weekday() - week_start) % 7)
    if g is Granularity.MONTH:
        return day.replace(day=1)
    return day.replace(month=1, day=1)


def bucket_end(start: date, granularity) -> date:
    """Last day of the bucket beginning at ``start``."""
    g = _as_granularity(granularity)
    if g is Granularity.DAY:
        return start
    if g is Granularity.WEEK:
        return start + timedelta(days=6)
    if g is Granularity.MONTH:
        return start.replace(day=calendar.monthrange(start.year, start.month)[1])
    return start.replace(month=12, day=31)


def bucket_label(start: date, granularity, *, week_start: int = MONDAY) -> str:
    g = _as_granularity(granularity)
    if g is Granularity.DAY:
        return start.isoformat()
    if g is Granularity.WEEK:
        if week_start == MONDAY:
            iso_year, iso_week, _ = start.isocalendar()
            return f"{iso_year}-W{iso_week:02d}"
        return f"week-of-{start.isoformat()}"
    if g is Granularity.MONTH:
        return f"{start.year:04d}-{start.month:02d}"
    return f"{start.year:04d}"


def iter_buckets(
    start: date, end: date, granularity, *, week_start: int = MONDAY
) -> Iterator[Tuple[str, date, date]]:
    """Yield ``(label, first_day, last_day)`` for each bucket touching the range.

    The first and last buckets are clipped to ``start``/``end``.
    """
    g = _as_granularity(granularity)
    cursor = bucket_start(start, g, week_start=week_start)
    while cursor <= end:
        last = bucket_end(cursor, g)
        yield bucket_label(cursor, g, week_start=week_start), max(cursor, start), min(last, end)
        cursor = last + timedelta(days=1)
