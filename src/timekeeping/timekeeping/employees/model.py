from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

EmployeeId = Union[int, str]


@dataclass(frozen=True)
class Employee:
    """Display data for an employee.

    Employee identity is owned by an external directory; the engine only reads
    these fields to label reports.
    """

    employee_id: EmployeeId
    full_name: str
    department: Optional[str] = None
    is_active: bool = True
