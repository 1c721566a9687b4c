from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Tuple

import pytz

from ..core.exceptions import InvalidInput


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError as e:
        raise InvalidInput(f"invalid date: {value!r}", field="date") from e


def parse_iso_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are read as UTC, the same way they are persisted.
    """
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidInput(f"invalid timestamp: {value!r}", field="timestamp") from e
    return ensure_utc(parsed)


def now_utc() -> datetime:
    """Current instant (UTC, aware).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(pytz.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def get_timezone(name: str):
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as e:
        raise InvalidInput(f"unknown timezone: {name!r}", field="timezone") from e


def local_date(instant: datetime, tz) -> date:
    """Calendar date of an instant as seen on the wall clock of ``tz``."""
    return ensure_utc(instant).astimezone(tz).date()


def local_day_start(day: date, tz) -> datetime:
    """Instant (UTC) at which ``day`` begins in ``tz``."""
    return tz.localize(datetime.combine(day, time.min)).astimezone(pytz.utc)


def day_range_to_instants(start: date, end: date, tz) -> Tuple[datetime, datetime]:
    """Half-open instant range covering local days ``start``..``end`` inclusive."""
    return local_day_start(start, tz), local_day_start(end + timedelta(days=1), tz)


def to_iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
