"""Example: drive the engine through the service layer, without Flask.

Uses the in-memory store so it runs without a database.
"""

from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytz

from src.timekeeping.timekeeping.container import build_container
from src.timekeeping.timekeeping.core.enums import Granularity, ReportType
from src.timekeeping.timekeeping.employees.directory import StaticEmployeeDirectory
from src.timekeeping.timekeeping.employees.model import Employee
from src.timekeeping.timekeeping.reports.model import ReportRequest


def main():
    settings = SimpleNamespace(STORE_BACKEND="memory", TIMEZONE="UTC")
    directory = StaticEmployeeDirectory([Employee(1, "Alice Nguyen", "Engineering")])
    container = build_container(settings, directory=directory)
    svc = container.attendance_service

    start = datetime(2024, 2, 1, 9, 0, tzinfo=pytz.utc)
    for day in range(5):
        t = start + timedelta(days=day)
        svc.clock_in(1, "HQ", now=t)
        svc.clock_out(1, now=t + timedelta(hours=8, minutes=30))

    stats = container.aggregation_service.summarize(1, date(2024, 2, 1), date(2024, 2, 7))
    print(stats.to_dict())

    for bucket in container.aggregation_service.bucketed(1, date(2024, 2, 1), date(2024, 2, 7), Granularity.DAY):
        print(bucket.label, round(bucket.stats.total_hours, 2))

    report = container.report_service.build_report(
        ReportRequest(
            start_date=date(2024, 2, 1),
            end_date=date(2024, 2, 7),
            report_type=ReportType.STATISTICS,
            working_days_in_range=5,
        )
    )
    print(report.to_dict()["statistics"]["attendance_rate"])


if __name__ == "__main__":
    main()
