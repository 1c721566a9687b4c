from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytz

from src.timekeeping.timekeeping.attendance.memory_repository import InMemoryAttendanceRepository
from src.timekeeping.timekeeping.attendance.model import AttendanceRecord
from src.timekeeping.timekeeping.container import build_container
from src.timekeeping.timekeeping.core.exceptions import StoreUnavailable
from src.timekeeping.timekeeping.main import create_app

SETTINGS = SimpleNamespace(STORE_BACKEND="memory", STORE_RETRY_ATTEMPTS=1, STORE_RETRY_BACKOFF_SECONDS=0.0)


def _client(monkeypatch, records=(), directory=None, repo=None):
    monkeypatch.setenv("APP_ENV", "testing")
    container = build_container(SETTINGS, records=repo or InMemoryAttendanceRepository(records), directory=directory)
    return create_app(container=container).test_client()


@pytest.fixture
def earlier():
    return datetime.now(pytz.utc) - timedelta(hours=3)


def test_clock_in_and_duplicate(monkeypatch):
    client = _client(monkeypatch)

    res = client.post("/api/attendance/clock-in", json={"employee_id": 1, "location": "HQ"})
    assert res.status_code == 201
    assert res.get_json()["record"]["state"] == "OPEN"

    again = client.post("/api/attendance/clock-in", json={"employee_id": 1})
    assert again.status_code == 409
    body = again.get_json()
    assert body["success"] is False
    assert body["error"] == "ALREADY_CLOCKED_IN"


def test_clock_out_without_clock_in(monkeypatch):
    client = _client(monkeypatch)

    res = client.post("/api/attendance/clock-out", json={"employee_id": 1})

    assert res.status_code == 409
    assert res.get_json()["error"] == "NOT_CLOCKED_IN"


def test_clock_out_closes_open_record(monkeypatch, earlier):
    client = _client(monkeypatch, [AttendanceRecord(1, 5, earlier)])

    res = client.post("/api/attendance/clock-out", json={"employee_id": 5, "notes": "done"})

    assert res.status_code == 200
    record = res.get_json()["record"]
    assert record["state"] == "CLOSED"
    assert record["notes_out"] == "done"
    assert record["hours_worked"] == pytest.approx(3.0, abs=0.01)
    assert record["status"] == "incomplete"


def test_missing_employee_id_is_bad_request(monkeypatch):
    client = _client(monkeypatch)

    res = client.post("/api/attendance/clock-in", json={})

    assert res.status_code == 400
    assert res.get_json()["error"] == "INVALID_INPUT"


def test_non_json_body_is_bad_request(monkeypatch):
    client = _client(monkeypatch)

    res = client.post("/api/attendance/clock-in", data="employee_id=1")

    assert res.status_code == 400


def test_status(monkeypatch, earlier):
    client = _client(monkeypatch, [AttendanceRecord(1, 5, earlier)])

    present = client.get("/api/attendance/status/5").get_json()
    absent = client.get("/api/attendance/status/6").get_json()

    assert present["state"] == "PRESENT"
    assert present["current_hours"] == pytest.approx(3.0, abs=0.01)
    assert absent["state"] == "ABSENT"
    assert absent["record"] is None


def test_records_with_pagination(monkeypatch):
    start = datetime(2024, 1, 15, 9, 0, tzinfo=pytz.utc)
    records = [AttendanceRecord(i + 1, 1, start + timedelta(days=i), start + timedelta(days=i, hours=8)) for i in range(5)]
    client = _client(monkeypatch, records)

    body = client.get("/api/attendance/records?employee_id=1&limit=2&offset=1").get_json()

    assert [r["id"] for r in body["records"]] == [4, 3]
    assert body["pagination"] == {"total": 5, "limit": 2, "offset": 1}


def test_record_detail_and_not_found(monkeypatch):
    start = datetime(2024, 1, 15, 9, 0, tzinfo=pytz.utc)
    client = _client(monkeypatch, [AttendanceRecord(7, 1, start, start + timedelta(hours=8))])

    assert client.get("/api/attendance/records/7").get_json()["record"]["status"] == "present"
    missing = client.get("/api/attendance/records/8")
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "RECORD_NOT_FOUND"


def test_summary(monkeypatch):
    start = datetime(2024, 1, 15, 9, 0, tzinfo=pytz.utc)
    client = _client(monkeypatch, [AttendanceRecord(1, 1, start, start + timedelta(hours=8, minutes=30))])

    body = client.get("/api/attendance/summary?employee_id=1&start_date=2024-01-15&end_date=2024-01-15").get_json()

    assert body["summary"]["days_worked"] == 1
    assert body["summary"]["total_hours"] == 8.5
    assert body["summary"]["average_hours_per_day"] == 8.5
    assert body["summary"]["incomplete_days"] == 0


def test_summary_validation_errors(monkeypatch):
    client = _client(monkeypatch)

    missing = client.get("/api/attendance/summary?employee_id=1&end_date=2024-01-15")
    inverted = client.get("/api/attendance/summary?employee_id=1&start_date=2024-02-01&end_date=2024-01-01")
    malformed = client.get("/api/attendance/summary?employee_id=1&start_date=2024-13-01&end_date=2024-12-01")

    assert missing.status_code == 400
    assert inverted.status_code == 400
    assert inverted.get_json()["error"] == "INVALID_RANGE"
    assert malformed.get_json()["error"] == "INVALID_INPUT"


def test_trends(monkeypatch):
    client = _client(monkeypatch)

    body = client.get(
        "/api/attendance/trends?employee_id=1&start_date=2024-02-01&end_date=2024-02-07&granularity=day"
    ).get_json()

    assert len(body["buckets"]) == 7
    assert body["buckets"][0]["label"] == "2024-02-01"


def test_totals(monkeypatch):
    start = datetime(2024, 2, 14, 9, 0, tzinfo=pytz.utc)
    client = _client(monkeypatch, [AttendanceRecord(1, 1, start, start + timedelta(hours=2))])

    body = client.get("/api/attendance/totals/1?as_of=2024-02-14T12:00:00Z").get_json()

    assert body["totals"]["today_hours"] == 2.0
    assert body["totals"]["month_hours"] == 2.0


def test_bulk(monkeypatch):
    client = _client(monkeypatch)

    body = client.post("/api/attendance/bulk", json={"action": "clock_in", "employee_ids": [1, 2, 0]}).get_json()

    assert body["processed"] == 2
    assert body["failed"] == 1
    assert body["success"] is False


def test_report_json_and_csv(monkeypatch, directory):
    start = datetime(2024, 2, 1, 9, 0, tzinfo=pytz.utc)
    client = _client(monkeypatch, [AttendanceRecord(1, 1, start, start + timedelta(hours=8))], directory=directory)

    report = client.get("/api/reports?start_date=2024-02-01&end_date=2024-02-07&report_type=summary").get_json()
    assert [r["employee_id"] for r in report["report"]["rows"]] == [1, 2, 3]

    res = client.get("/api/reports/detailed.csv?start_date=2024-02-01&end_date=2024-02-07")
    assert res.status_code == 200
    assert res.mimetype == "text/csv"
    lines = res.data.decode("utf-8-sig").splitlines()
    assert lines[0].startswith("id,employee_id,full_name,department")
    assert "Alice Nguyen" in lines[1]


class DownRepo(InMemoryAttendanceRepository):
    def get_open_for_employee(self, employee_id, *, cancel=None):
        raise StoreUnavailable("database is down")


def test_store_unavailable_maps_to_503(monkeypatch):
    client = _client(monkeypatch, repo=DownRepo())

    res = client.get("/api/attendance/status/1")

    assert res.status_code == 503
    assert res.get_json()["error"] == "STORE_UNAVAILABLE"


def test_unknown_route_is_json_404(monkeypatch):
    client = _client(monkeypatch)

    res = client.get("/api/nope")

    assert res.status_code == 404
    assert res.get_json()["success"] is False


def test_bulk_reports_malformed_and_repeated_ids(monkeypatch):
    client = _client(monkeypatch)

    res = client.post("/api/attendance/bulk", json={"action": "clock_in", "employee_ids": [[1], 3, 3]})

    assert res.status_code == 200
    body = res.get_json()
    assert body["processed"] == 1
    assert body["failed"] == 2
    results = body["results"]
    assert results[0]["employee_id"] == [1]
    assert results[0]["error"] == "INVALID_INPUT"
    assert results[1]["success"] is True
    assert results[2]["error"] == "ALREADY_CLOCKED_IN"


def _day_records():
    return [
        AttendanceRecord(1, 1, datetime(2024, 2, 5, 9, 0, tzinfo=pytz.utc), None),
        AttendanceRecord(
            2, 2, datetime(2024, 2, 6, 6, 0, tzinfo=pytz.utc), datetime(2024, 2, 6, 19, 30, tzinfo=pytz.utc)
        ),
        AttendanceRecord(3, 3, datetime(2024, 2, 6, 9, 0, tzinfo=pytz.utc), None),
    ]


def test_all_records(monkeypatch, directory):
    client = _client(monkeypatch, _day_records(), directory=directory)

    body = client.get(
        "/api/attendance/all?start_date=2024-02-05&end_date=2024-02-06&incomplete_only=true&limit=1"
    ).get_json()

    assert [r["id"] for r in body["records"]] == [3]
    assert body["records"][0]["full_name"] == "Chi Le"
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["has_next"] is True

    missing = client.get("/api/attendance/all?start_date=2024-02-05")
    assert missing.status_code == 400


def test_overview(monkeypatch, directory):
    client = _client(monkeypatch, _day_records(), directory=directory)

    body = client.get("/api/attendance/overview?as_of=2024-02-06T18:00:00Z").get_json()

    assert body["overview"]["date"] == "2024-02-06"
    assert body["overview"]["total_employees"] == 3
    assert body["overview"]["checked_in"] == 1
    assert body["overview"]["absent"] == 1


def test_alerts(monkeypatch, directory):
    client = _client(monkeypatch, _day_records(), directory=directory)

    body = client.get("/api/attendance/alerts?as_of=2024-02-06T18:00:00Z").get_json()

    assert [(a["kind"], a["employee_id"]) for a in body["alerts"]] == [
        ("open_from_previous_day", 1),
        ("long_shift", 2),
    ]
    assert body["alerts"][1]["hours"] == 13.5
