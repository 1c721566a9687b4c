from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..common.datetime_utils import ensure_utc
from ..core.exceptions import StoreUnavailable
from .connection import DatabaseConnection

# Errors that mean "the database is not reachable right now".
TRANSIENT_ERRORS = (
    mysql.connector.errors.InterfaceError,
    mysql.connector.errors.OperationalError,
    mysql.connector.errors.PoolError,
)


def is_duplicate_key(exc: Exception) -> bool:
    return isinstance(exc, mysql.connector.errors.IntegrityError) and getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    try:
        conn = conn_factory.connect()
    except TRANSIENT_ERRORS as e:
        raise StoreUnavailable(f"cannot connect to database: {e}") from e
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except TRANSIENT_ERRORS as e:
        _safe_rollback(conn)
        raise StoreUnavailable(f"database error: {e}") from e
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except TRANSIENT_ERRORS:
        # Connection already gone; nothing left to roll back.
        pass


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_db_datetime(value: datetime) -> datetime:
    """DATETIME columns hold naive UTC."""
    return ensure_utc(value).replace(tzinfo=None)


def from_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return ensure_utc(value)
