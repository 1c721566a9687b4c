from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

from ..core.exceptions import EmployeeNotFound
from .model import Employee, EmployeeId
from .repository import EmployeeDirectory


class StaticEmployeeDirectory(EmployeeDirectory):
    """Directory built from lookup data injected by the caller."""

    def __init__(self, employees: Iterable[Employee] = ()):
        self._by_id: Dict[EmployeeId, Employee] = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id: EmployeeId) -> Optional[Employee]:
        return self._by_id.get(employee_id)

    def list_active(self, *, department: Optional[str] = None) -> Sequence[Employee]:
        items = [e for e in self._by_id.values() if e.is_active]
        if department is not None:
            items = [e for e in items if e.department == department]
        items.sort(key=lambda e: (e.full_name, str(e.employee_id)))
        return items


def ensure_known(
    directory: Optional[EmployeeDirectory],
    employee_id: EmployeeId,
    *,
    active_only: bool = False,
) -> Optional[Employee]:
    """Raise ``EmployeeNotFound`` unless the directory knows ``employee_id``.

    ``active_only`` also rejects deactivated employees (used for new
    clock-ins; history of a deactivated employee stays readable).
    Without a directory nothing can be checked and None is returned.
    """
    if directory is None:
        return None
    employee = directory.get_by_id(employee_id)
    if employee is None or (active_only and not employee.is_active):
        raise EmployeeNotFound(f"employee {employee_id} not found", employee_id=employee_id)
    return employee
