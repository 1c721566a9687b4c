from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest
import pytz

from src.timekeeping.timekeeping.aggregation.buckets import bucket_start, iter_buckets
from src.timekeeping.timekeeping.aggregation.service import AggregationService
from src.timekeeping.timekeeping.attendance.memory_repository import InMemoryAttendanceRepository
from src.timekeeping.timekeeping.attendance.model import AttendanceRecord
from src.timekeeping.timekeeping.core.enums import Granularity
from src.timekeeping.timekeeping.core.exceptions import InvalidInput


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=pytz.utc)


def test_daily_buckets_cover_every_day():
    buckets = list(iter_buckets(date(2024, 2, 1), date(2024, 2, 7), Granularity.DAY))

    assert len(buckets) == 7
    assert buckets[0] == ("2024-02-01", date(2024, 2, 1), date(2024, 2, 1))
    assert buckets[-1][0] == "2024-02-07"


def test_weekly_buckets_start_monday_and_are_clipped():
    # 2024-02-01 is a Thursday.
    buckets = list(iter_buckets(date(2024, 2, 1), date(2024, 2, 14), "week"))

    assert buckets == [
        ("2024-W05", date(2024, 2, 1), date(2024, 2, 4)),
        ("2024-W06", date(2024, 2, 5), date(2024, 2, 11)),
        ("2024-W07", date(2024, 2, 12), date(2024, 2, 14)),
    ]


def test_monthly_buckets_follow_calendar_months():
    buckets = list(iter_buckets(date(2024, 1, 15), date(2024, 3, 10), Granularity.MONTH))

    assert buckets == [
        ("2024-01", date(2024, 1, 15), date(2024, 1, 31)),
        ("2024-02", date(2024, 2, 1), date(2024, 2, 29)),
        ("2024-03", date(2024, 3, 1), date(2024, 3, 10)),
    ]


def test_yearly_buckets():
    buckets = list(iter_buckets(date(2023, 12, 1), date(2024, 1, 31), Granularity.YEAR))

    assert [b[0] for b in buckets] == ["2023", "2024"]
    assert buckets[0][2] == date(2023, 12, 31)


def test_week_start_is_configurable():
    assert bucket_start(date(2024, 2, 1), Granularity.WEEK) == date(2024, 1, 29)
    assert bucket_start(date(2024, 2, 1), Granularity.WEEK, week_start=6) == date(2024, 1, 28)


def test_unknown_granularity_is_rejected():
    with pytest.raises(InvalidInput):
        list(iter_buckets(date(2024, 1, 1), date(2024, 1, 2), "fortnight"))


def test_bucketed_includes_zero_rows():
    repo = InMemoryAttendanceRepository(
        [AttendanceRecord(1, 1, _utc(2024, 2, 3, 9, 0), _utc(2024, 2, 3, 17, 0))]
    )
    svc = AggregationService(repo)

    buckets = svc.bucketed(1, date(2024, 2, 1), date(2024, 2, 7), Granularity.DAY)

    assert len(buckets) == 7
    assert [b.stats.days_worked for b in buckets] == [0, 0, 1, 0, 0, 0, 0]
    assert buckets[2].stats.total_hours == pytest.approx(8.0)
    assert buckets[0].to_dict()["total_hours"] == 0.0


def test_bucket_totals_add_up_to_the_range_summary():
    start = _utc(2024, 1, 1, 8, 0)
    records = [
        AttendanceRecord(i + 1, 1, start + timedelta(days=i * 3), start + timedelta(days=i * 3, hours=6 + i % 4))
        for i in range(20)
    ]
    svc = AggregationService(InMemoryAttendanceRepository(records))
    first, last = date(2024, 1, 1), date(2024, 3, 15)

    summary = svc.summarize(1, first, last)
    for g in (Granularity.DAY, Granularity.WEEK, Granularity.MONTH):
        buckets = svc.bucketed(1, first, last, g)
        assert sum(b.stats.total_hours for b in buckets) == pytest.approx(summary.total_hours)
        assert sum(b.stats.days_worked for b in buckets) == summary.days_worked
        assert buckets[0].start_date == first
        assert buckets[-1].end_date == last


def test_period_totals():
    repo = InMemoryAttendanceRepository(
        [
            AttendanceRecord(1, 1, _utc(2024, 1, 31, 9, 0), _utc(2024, 1, 31, 17, 0)),
            AttendanceRecord(2, 1, _utc(2024, 2, 1, 8, 0), _utc(2024, 2, 1, 18, 0)),
            AttendanceRecord(3, 1, _utc(2024, 2, 12, 9, 0), _utc(2024, 2, 12, 17, 0)),
            AttendanceRecord(4, 1, _utc(2024, 2, 14, 9, 0), _utc(2024, 2, 14, 11, 0)),
        ]
    )
    svc = AggregationService(repo)

    totals = svc.period_totals(1, as_of=_utc(2024, 2, 14, 12, 0))

    assert totals.as_of == date(2024, 2, 14)
    assert totals.today_hours == pytest.approx(2.0)
    assert totals.week_hours == pytest.approx(10.0)
    assert totals.month_hours == pytest.approx(20.0)
    assert totals.month_overtime_hours == pytest.approx(2.0)
