from __future__ import annotations

from datetime import datetime

import pytest
import pytz

from src.timekeeping.timekeeping.attendance.calculator.standard_calculator import StandardHoursCalculator
from src.timekeeping.timekeeping.attendance.locks import EmployeeLocks
from src.timekeeping.timekeeping.attendance.memory_repository import InMemoryAttendanceRepository
from src.timekeeping.timekeeping.attendance.service import AttendanceService
from src.timekeeping.timekeeping.employees.directory import StaticEmployeeDirectory
from src.timekeeping.timekeeping.employees.model import Employee


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 15, 9, 0, tzinfo=pytz.utc)


@pytest.fixture
def repo() -> InMemoryAttendanceRepository:
    return InMemoryAttendanceRepository()


@pytest.fixture
def directory() -> StaticEmployeeDirectory:
    return StaticEmployeeDirectory(
        [
            Employee(1, "Alice Nguyen", "Engineering"),
            Employee(2, "Bao Tran", "Engineering"),
            Employee(3, "Chi Le", "Operations"),
            Employee(4, "Duc Pham", "Operations", is_active=False),
        ]
    )


@pytest.fixture
def service(repo) -> AttendanceService:
    return AttendanceService(
        repo,
        StandardHoursCalculator(),
        locks=EmployeeLocks(timeout=2.0),
        retry_backoff_seconds=0.0,
    )
