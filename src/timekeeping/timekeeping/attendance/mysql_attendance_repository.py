from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Sequence

from ..common.cancellation import CancellationToken, check
from ..core.exceptions import AlreadyClockedIn
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, is_duplicate_key, to_db_datetime
from .model import AttendanceRecord, EmployeeId
from .repository import AttendanceRepository

_COLUMNS = "record_id, employee_id, clock_in, clock_out, location, notes, location_out, notes_out"


def employee_key(value) -> EmployeeId:
    """employee_id is stored as VARCHAR; numeric ids come back as int."""
    text = str(value)
    return int(text) if text.isdigit() else text


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        employee_id=employee_key(r["employee_id"]),
        clock_in=from_db_datetime(r["clock_in"]),
        clock_out=from_db_datetime(r.get("clock_out")),
        location=r.get("location") or "",
        notes=r.get("notes") or "",
        location_out=r.get("location_out") or "",
        notes_out=r.get("notes_out") or "",
    )


def _range_clauses(clauses: list[str], params: list[object], clock_in_from, clock_in_to) -> None:
    if clock_in_from is not None:
        clauses.append("clock_in >= %s")
        params.append(to_db_datetime(clock_in_from))
    if clock_in_to is not None:
        clauses.append("clock_in < %s")
        params.append(to_db_datetime(clock_in_to))


class MySQLAttendanceRepository(AttendanceRepository):
    """MySQL record store.

    The single-open-record rule is enforced by the unique index on the
    generated ``open_employee_id`` column (see database/schema.sql).
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s",
                (int(record_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_open_for_employee(
        self, employee_id: EmployeeId, *, cancel: Optional[CancellationToken] = None
    ) -> Optional[AttendanceRecord]:
        check(cancel)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s AND clock_out IS NULL
                ORDER BY clock_in DESC
                LIMIT 1
                """,
                (str(employee_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_open(
        self,
        *,
        employee_id: EmployeeId,
        clock_in: datetime,
        location: str = "",
        notes: str = "",
    ) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(employee_id, clock_in, location, notes)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (str(employee_id), to_db_datetime(clock_in), location, notes),
                )
                record_id = int(cur.lastrowid)
        except Exception as e:
            if is_duplicate_key(e):
                raise AlreadyClockedIn("employee already has an open record", employee_id=employee_id) from e
            raise

        return AttendanceRecord(
            record_id=record_id,
            employee_id=employee_id,
            clock_in=from_db_datetime(to_db_datetime(clock_in)),
            location=location,
            notes=notes,
        )

    def close_open(
        self,
        *,
        record_id: int,
        clock_out: datetime,
        location_out: str = "",
        notes_out: str = "",
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # hours_worked is a convenience copy for ad-hoc SQL; reads ignore it.
            cur.execute(
                """
                UPDATE attendance_records
                SET clock_out=%s,
                    hours_worked=ROUND(TIMESTAMPDIFF(MICROSECOND, clock_in, %s) / 3600000000, 2),
                    location_out=%s,
                    notes_out=%s
                WHERE record_id=%s AND clock_out IS NULL
                """,
                (to_db_datetime(clock_out), to_db_datetime(clock_out), location_out, notes_out, int(record_id)),
            )
            return cur.rowcount > 0

    def list_for_employee(
        self,
        employee_id: EmployeeId,
        *,
        clock_in_from: Optional[datetime] = None,
        clock_in_to: Optional[datetime] = None,
        limit: int = 30,
        offset: int = 0,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        check(cancel)
        clauses = ["employee_id=%s"]
        params: list[object] = [str(employee_id)]
        _range_clauses(clauses, params, clock_in_from, clock_in_to)
        params.extend([int(limit), int(offset)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {" AND ".join(clauses)}
                ORDER BY clock_in DESC, record_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_for_employee(
        self,
        employee_id: EmployeeId,
        *,
        clock_in_from: Optional[datetime] = None,
        clock_in_to: Optional[datetime] = None,
    ) -> int:
        clauses = ["employee_id=%s"]
        params: list[object] = [str(employee_id)]
        _range_clauses(clauses, params, clock_in_from, clock_in_to)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS total FROM attendance_records WHERE {' AND '.join(clauses)}",
                tuple(params),
            )
            r = fetchone(cur)
            return int(r["total"]) if r else 0

    def list_in_range(
        self,
        *,
        clock_in_from: datetime,
        clock_in_to: datetime,
        employee_ids: Optional[Collection[EmployeeId]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        check(cancel)
        clauses: list[str] = []
        params: list[object] = []
        _range_clauses(clauses, params, clock_in_from, clock_in_to)

        if employee_ids is not None:
            ids = [str(e) for e in employee_ids]
            if not ids:
                return []
            clauses.append(f"employee_id IN ({', '.join(['%s'] * len(ids))})")
            params.extend(ids)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {" AND ".join(clauses)}
                ORDER BY clock_in ASC, record_id ASC
                """,
                tuple(params),
            )
            rows = fetchall(cur)
        check(cancel)
        return [_to_record(r) for r in rows]

    def list_open(
        self,
        *,
        clock_in_before: Optional[datetime] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Sequence[AttendanceRecord]:
        check(cancel)
        clauses = ["clock_out IS NULL"]
        params: list[object] = []
        _range_clauses(clauses, params, None, clock_in_before)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {" AND ".join(clauses)}
                ORDER BY clock_in ASC, record_id ASC
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]
