from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee, EmployeeId


class EmployeeDirectory(Protocol):
    """Lookup interface for employee display data.

    Note (DIP): services depend on this interface, never on a concrete store.
    """

    def get_by_id(self, employee_id: EmployeeId) -> Optional[Employee]:
        raise NotImplementedError

    def list_active(self, *, department: Optional[str] = None) -> Sequence[Employee]:
        raise NotImplementedError
