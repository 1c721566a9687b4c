from __future__ import annotations

from typing import Optional, Sequence

from ..attendance.mysql_attendance_repository import employee_key
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee, EmployeeId
from .repository import EmployeeDirectory


def _to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=employee_key(r["employee_id"]),
        full_name=r["full_name"],
        department=r.get("department"),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLEmployeeDirectory(EmployeeDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: EmployeeId) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, full_name, department, is_active
                FROM employees
                WHERE employee_id=%s
                """,
                (str(employee_id),),
            )
            row = fetchone(cur)
            return _to_employee(row) if row else None

    def list_active(self, *, department: Optional[str] = None) -> Sequence[Employee]:
        clauses = ["is_active=1"]
        params: list[object] = []
        if department is not None:
            clauses.append("department=%s")
            params.append(department)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT employee_id, full_name, department, is_active
                FROM employees
                WHERE {" AND ".join(clauses)}
                ORDER BY full_name, employee_id
                """,
                tuple(params),
            )
            return [_to_employee(r) for r in fetchall(cur)]
