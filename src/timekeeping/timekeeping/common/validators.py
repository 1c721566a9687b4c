from __future__ import annotations

from datetime import date
from typing import Optional, Tuple, Union

from ..core.constants import MAX_PAGE_SIZE
from ..core.exceptions import InvalidInput, InvalidRange

EmployeeId = Union[int, str]


def require_employee_id(value) -> EmployeeId:
    """Employee ids are opaque keys: a positive int or a non-empty string."""
    if isinstance(value, bool) or value is None:
        raise InvalidInput("employee_id is required", field="employee_id")
    if isinstance(value, int):
        if value <= 0:
            raise InvalidInput("employee_id must be positive", field="employee_id")
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidInput("employee_id is required", field="employee_id")
        return int(value) if value.isdigit() else value
    raise InvalidInput(f"unsupported employee_id type: {type(value).__name__}", field="employee_id")


def clean_text(value: Optional[str], field_name: str, max_len: int = 255) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidInput(f"{field_name} must be text", field=field_name)
    value = value.strip()
    if len(value) > max_len:
        raise InvalidInput(f"{field_name} longer than {max_len} characters", field=field_name)
    return value


def require_date(value, field_name: str) -> date:
    if not isinstance(value, date):
        raise InvalidInput(f"{field_name} must be a date", field=field_name)
    return value


def require_date_range(start: date, end: date) -> Tuple[date, date]:
    require_date(start, "start_date")
    require_date(end, "end_date")
    if start > end:
        raise InvalidRange(f"start_date {start} is after end_date {end}", start_date=str(start), end_date=str(end))
    return start, end


def require_optional_range(start: Optional[date], end: Optional[date]) -> None:
    if start is not None:
        require_date(start, "start_date")
    if end is not None:
        require_date(end, "end_date")
    if start is not None and end is not None and start > end:
        raise InvalidRange(f"start_date {start} is after end_date {end}", start_date=str(start), end_date=str(end))


def require_paging(limit: int, offset: int) -> Tuple[int, int]:
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_PAGE_SIZE:
        raise InvalidInput(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise InvalidInput("offset must be zero or positive", field="offset")
    return limit, offset
