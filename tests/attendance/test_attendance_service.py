from __future__ import annotations

import logging
from datetime import date, timedelta

import pytest

from src.timekeeping.timekeeping.aggregation.cache import SummaryCache
from src.timekeeping.timekeeping.aggregation.service import AggregationService
from src.timekeeping.timekeeping.attendance.memory_repository import InMemoryAttendanceRepository
from src.timekeeping.timekeeping.attendance.service import AttendanceService
from src.timekeeping.timekeeping.core.enums import PresenceState, RecordState, WorkStatus
from src.timekeeping.timekeeping.core.exceptions import (
    AlreadyClockedIn,
    EmployeeNotFound,
    InvalidInput,
    InvalidInterval,
    InvalidRange,
    NotClockedIn,
    RecordNotFound,
    StoreUnavailable,
)


def test_clock_in_then_out_computes_hours(service, fixed_now):
    rec = service.clock_in(1, "HQ", "morning", now=fixed_now)
    assert rec.state is RecordState.OPEN
    assert rec.clock_in == fixed_now
    assert rec.location == "HQ"

    closed = service.clock_out(1, "HQ gate", now=fixed_now + timedelta(hours=8, minutes=30))

    assert closed.record_id == rec.record_id
    assert closed.state is RecordState.CLOSED
    assert closed.hours_worked == pytest.approx(8.5)
    assert closed.location_out == "HQ gate"
    assert service.status_of(closed) is WorkStatus.OVERTIME
    assert closed.to_dict()["hours_worked"] == 8.5


def test_second_clock_in_fails_and_creates_nothing(service, repo, fixed_now):
    first = service.clock_in(1, now=fixed_now)

    with pytest.raises(AlreadyClockedIn) as exc:
        service.clock_in(1, now=fixed_now + timedelta(minutes=5))

    assert exc.value.details["record_id"] == first.record_id
    assert repo.count_for_employee(1) == 1
    assert service.current_status(1) == first


def test_clock_out_without_open_record_fails(service):
    with pytest.raises(NotClockedIn):
        service.clock_out(1)


def test_clock_out_twice_fails(service, fixed_now):
    service.clock_in(1, now=fixed_now)
    service.clock_out(1, now=fixed_now + timedelta(hours=1))

    with pytest.raises(NotClockedIn):
        service.clock_out(1, now=fixed_now + timedelta(hours=2))


@pytest.mark.parametrize("delta", [timedelta(0), timedelta(minutes=-1)])
def test_clock_out_not_after_clock_in_is_rejected(service, fixed_now, delta):
    service.clock_in(1, now=fixed_now)

    with pytest.raises(InvalidInterval):
        service.clock_out(1, now=fixed_now + delta)

    assert service.presence(1) is PresenceState.PRESENT


@pytest.mark.parametrize("bad_id", [None, "", "   ", 0, -3, True, 1.5])
def test_invalid_employee_id_is_rejected(service, bad_id):
    with pytest.raises(InvalidInput):
        service.clock_in(bad_id)


def test_string_ids_are_opaque_keys(service, fixed_now):
    service.clock_in("EMP-7", now=fixed_now)
    service.clock_in("7", now=fixed_now)

    assert service.current_status("EMP-7").employee_id == "EMP-7"
    assert service.current_status(7).employee_id == 7


def test_notes_longer_than_limit_are_rejected(service):
    with pytest.raises(InvalidInput):
        service.clock_in(1, notes="x" * 1001)


def test_presence_and_current_duration(service, fixed_now):
    assert service.presence(1) is PresenceState.ABSENT
    rec = service.clock_in(1, now=fixed_now)

    assert service.presence(1) is PresenceState.PRESENT
    assert service.current_duration_hours(rec, now=fixed_now + timedelta(hours=2)) == pytest.approx(2.0)


def test_unknown_employee_rejected_when_validation_enabled(repo, directory, fixed_now):
    svc = AttendanceService(repo, directory=directory, validate_employees=True)

    with pytest.raises(EmployeeNotFound):
        svc.clock_in(99, now=fixed_now)
    with pytest.raises(EmployeeNotFound):
        svc.clock_in(4, now=fixed_now)

    assert svc.clock_in(1, now=fixed_now).employee_id == 1


def test_unknown_employee_allowed_when_validation_disabled(repo, directory, fixed_now):
    svc = AttendanceService(repo, directory=directory, validate_employees=False)
    assert svc.clock_in(99, now=fixed_now).employee_id == 99


def test_reads_reject_unknown_employee_when_validation_enabled(repo, directory, fixed_now):
    svc = AttendanceService(repo, directory=directory, validate_employees=True)

    with pytest.raises(EmployeeNotFound):
        svc.current_status(99)
    with pytest.raises(EmployeeNotFound):
        svc.get_records(99)
    with pytest.raises(EmployeeNotFound):
        svc.count_records(99)
    with pytest.raises(EmployeeNotFound):
        svc.clock_out(99, now=fixed_now)


def test_history_of_inactive_employee_stays_readable(repo, directory, fixed_now):
    repo.create_open(employee_id=4, clock_in=fixed_now, location="", notes="")
    svc = AttendanceService(repo, directory=directory, validate_employees=True)

    assert svc.current_status(4).employee_id == 4
    assert svc.count_records(4) == 1
    assert len(svc.get_records(4)) == 1


def test_get_records_newest_first_with_paging(service, fixed_now):
    for day in range(5):
        t = fixed_now + timedelta(days=day)
        service.clock_in(1, now=t)
        service.clock_out(1, now=t + timedelta(hours=8))
    service.clock_in(2, now=fixed_now)

    records = service.get_records(1, limit=2)
    assert [r.clock_in.day for r in records] == [19, 18]

    page2 = service.get_records(1, limit=2, offset=2)
    assert [r.clock_in.day for r in page2] == [17, 16]

    ranged = service.get_records(1, date(2024, 1, 16), date(2024, 1, 17))
    assert [r.clock_in.day for r in ranged] == [17, 16]
    assert service.count_records(1) == 5
    assert service.count_records(1, date(2024, 1, 16), date(2024, 1, 17)) == 2


def test_get_records_rejects_bad_paging_and_range(service):
    with pytest.raises(InvalidInput):
        service.get_records(1, limit=0)
    with pytest.raises(InvalidInput):
        service.get_records(1, offset=-1)
    with pytest.raises(InvalidRange):
        service.get_records(1, date(2024, 2, 1), date(2024, 1, 1))


def test_get_record(service, fixed_now):
    rec = service.clock_in(1, now=fixed_now)

    assert service.get_record(rec.record_id) == rec
    assert service.get_record(str(rec.record_id)) == rec
    with pytest.raises(RecordNotFound):
        service.get_record(999)
    with pytest.raises(InvalidInput):
        service.get_record("abc")


def test_bulk_clock_in_isolates_failures(service, fixed_now):
    service.clock_in(2, now=fixed_now)

    results = service.bulk_clock_in([1, 2, 3, None], now=fixed_now)

    assert [eid for eid, _ in results] == [1, 2, 3, None]
    assert results[0][1].employee_id == 1
    assert isinstance(results[1][1], AlreadyClockedIn)
    assert results[2][1].employee_id == 3
    assert isinstance(results[3][1], InvalidInput)


def test_bulk_clock_out(service, fixed_now):
    service.bulk_clock_in([1, 2], now=fixed_now)

    results = dict(service.bulk_clock_out([1, 2, 3], now=fixed_now + timedelta(hours=7)))

    assert results[1].hours_worked == pytest.approx(7.0)
    assert results[2].hours_worked == pytest.approx(7.0)
    assert isinstance(results[3], NotClockedIn)


def test_bulk_keeps_one_outcome_per_repeated_id(service, fixed_now):
    results = service.bulk_clock_in([1, 1], now=fixed_now)

    assert len(results) == 2
    (first_id, first), (second_id, second) = results
    assert first_id == second_id == 1
    assert first.employee_id == 1
    assert isinstance(second, AlreadyClockedIn)
    assert second.details["record_id"] == first.record_id
    assert service.current_status(1) == first


@pytest.mark.parametrize("bad_id", [[1], {"id": 1}, [], 2.5])
def test_bulk_reports_unhashable_or_malformed_ids(service, fixed_now, bad_id):
    results = service.bulk_clock_in([bad_id, 3], now=fixed_now)

    assert results[0][0] == bad_id
    assert isinstance(results[0][1], InvalidInput)
    assert results[1][1].employee_id == 3


def test_suspicious_shift_is_logged(service, fixed_now, caplog):
    service.clock_in(1, now=fixed_now)

    with caplog.at_level(logging.WARNING):
        service.clock_out(1, now=fixed_now + timedelta(hours=13))

    assert any("Suspicious shift" in r.getMessage() for r in caplog.records)


def test_writes_invalidate_cached_summary(repo, fixed_now):
    cache = SummaryCache()
    svc = AttendanceService(repo, cache=cache)
    agg = AggregationService(repo, cache=cache)
    day = fixed_now.date()

    assert agg.summarize(1, day, day).days_worked == 0
    assert len(cache) == 1

    svc.clock_in(1, now=fixed_now)
    assert len(cache) == 0
    assert agg.summarize(1, day, day).incomplete_days == 1

    svc.clock_out(1, now=fixed_now + timedelta(hours=8))
    stats = agg.summarize(1, day, day)
    assert stats.days_worked == 1
    assert stats.total_hours == pytest.approx(8.0)


class FlakyRepo(InMemoryAttendanceRepository):
    """Fails the first ``failures`` open-record lookups."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.calls = 0

    def get_open_for_employee(self, employee_id, *, cancel=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise StoreUnavailable("connection reset")
        return super().get_open_for_employee(employee_id, cancel=cancel)


def test_transient_store_failure_is_retried(fixed_now):
    repo = FlakyRepo(failures=2)
    svc = AttendanceService(repo, retry_attempts=3, retry_backoff_seconds=0.0)

    rec = svc.clock_in(1, now=fixed_now)

    assert rec.employee_id == 1
    assert repo.calls == 3


def test_store_failure_surfaces_after_retries(fixed_now):
    repo = FlakyRepo(failures=10)
    svc = AttendanceService(repo, retry_attempts=2, retry_backoff_seconds=0.0)

    with pytest.raises(StoreUnavailable):
        svc.clock_in(1, now=fixed_now)

    assert repo.calls == 2
    assert repo.count_for_employee(1) == 0


def test_business_errors_are_not_retried(fixed_now):
    repo = FlakyRepo(failures=0)
    svc = AttendanceService(repo, retry_attempts=5, retry_backoff_seconds=0.0)

    with pytest.raises(NotClockedIn):
        svc.clock_out(1, now=fixed_now)

    assert repo.calls == 1
