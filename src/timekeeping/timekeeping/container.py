from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .aggregation.cache import SummaryCache
from .aggregation.service import AggregationService
from .attendance.calculator.standard_calculator import StandardHoursCalculator
from .attendance.locks import EmployeeLocks
from .attendance.memory_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core import constants
from .core.exceptions import InvalidInput
from .database.bootstrap import db_config_from_dict
from .database.connection import DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeDirectory
from .employees.repository import EmployeeDirectory
from .reports.service import ReportService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    records_repo: AttendanceRepository
    directory: Optional[EmployeeDirectory]
    cache: Optional[SummaryCache]
    locks: EmployeeLocks

    attendance_service: AttendanceService
    aggregation_service: AggregationService
    report_service: ReportService


def build_container(
    settings,
    *,
    records: Optional[AttendanceRepository] = None,
    directory: Optional[EmployeeDirectory] = None,
) -> Container:
    """Wire stores and services from a settings module (or any object with the same attributes).

    ``records`` / ``directory`` override the configured backend. The memory
    backend has no employee directory unless one is passed in.
    """

    def opt(name: str, default):
        return getattr(settings, name, default)

    backend = str(opt("STORE_BACKEND", "mysql")).lower()
    conn: Optional[DatabaseConnection] = None
    if backend == "mysql":
        if records is None or directory is None:
            conn = DatabaseConnection(db_config_from_dict(dict(opt("DB_CONFIG", {}))))
        if records is None:
            records = MySQLAttendanceRepository(conn)
        if directory is None:
            directory = MySQLEmployeeDirectory(conn)
    elif backend == "memory":
        if records is None:
            records = InMemoryAttendanceRepository()
    else:
        raise InvalidInput(f"unknown STORE_BACKEND: {backend!r}", field="STORE_BACKEND")

    timezone = str(opt("TIMEZONE", constants.DEFAULT_TIMEZONE))
    retry_attempts = int(opt("STORE_RETRY_ATTEMPTS", constants.DEFAULT_STORE_RETRY_ATTEMPTS))
    retry_backoff = float(opt("STORE_RETRY_BACKOFF_SECONDS", constants.DEFAULT_STORE_RETRY_BACKOFF_SECONDS))
    validate_employees = bool(opt("VALIDATE_EMPLOYEES", False))
    max_daily_hours = float(opt("MAX_DAILY_HOURS", constants.DEFAULT_MAX_DAILY_HOURS))

    calculator = StandardHoursCalculator(
        standard_day_hours=float(opt("STANDARD_DAY_HOURS", constants.DEFAULT_STANDARD_DAY_HOURS)),
        min_day_hours=float(opt("MIN_DAY_HOURS", constants.DEFAULT_MIN_DAY_HOURS)),
    )
    # The cache only sees writes made through this process, so it is off by
    # default for the shared mysql store.
    cache = None
    if opt("SUMMARY_CACHE_ENABLED", backend == "memory"):
        max_entries = int(opt("SUMMARY_CACHE_MAX_ENTRIES", constants.DEFAULT_SUMMARY_CACHE_MAX_ENTRIES))
        cache = SummaryCache(max_entries=max_entries)
    locks = EmployeeLocks(timeout=float(opt("LOCK_TIMEOUT_SECONDS", constants.DEFAULT_LOCK_TIMEOUT_SECONDS)))

    attendance_service = AttendanceService(
        records,
        calculator,
        directory=directory,
        cache=cache,
        locks=locks,
        validate_employees=validate_employees,
        retry_attempts=retry_attempts,
        retry_backoff_seconds=retry_backoff,
        timezone=timezone,
        max_daily_hours=max_daily_hours,
    )
    aggregation_service = AggregationService(
        records,
        calculator,
        cache=cache,
        directory=directory,
        validate_employees=validate_employees,
        timezone=timezone,
        retry_attempts=retry_attempts,
        retry_backoff_seconds=retry_backoff,
    )
    report_service = ReportService(
        aggregation_service,
        directory,
        validate_employees=validate_employees,
        max_daily_hours=max_daily_hours,
    )

    logger.debug("Container ready: backend=%s timezone=%s cache=%s", backend, timezone, cache is not None)
    return Container(
        conn=conn,
        records_repo=records,
        directory=directory,
        cache=cache,
        locks=locks,
        attendance_service=attendance_service,
        aggregation_service=aggregation_service,
        report_service=report_service,
    )
