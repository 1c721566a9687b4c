from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..common.datetime_utils import to_iso
from ..core.constants import HOURS_DISPLAY_PRECISION
from ..core.enums import RecordState, WorkStatus

EmployeeId = Union[int, str]


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one clock-in/clock-out interval.

    ``clock_out`` is None while the record is OPEN. Hours are always derived
    from the two instants and never stored as independent truth.
    """

    record_id: int
    employee_id: EmployeeId
    clock_in: datetime
    clock_out: Optional[datetime] = None
    location: str = ""
    notes: str = ""
    location_out: str = ""
    notes_out: str = ""

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    @property
    def state(self) -> RecordState:
        return RecordState.OPEN if self.is_open else RecordState.CLOSED

    @property
    def hours_worked(self) -> Optional[float]:
        if self.clock_out is None:
            return None
        return max((self.clock_out - self.clock_in).total_seconds(), 0.0) / 3600.0

    def to_dict(self, *, status: Optional[WorkStatus] = None) -> dict:
        hours = self.hours_worked
        data = {
            "id": self.record_id,
            "employee_id": self.employee_id,
            "clock_in": to_iso(self.clock_in),
            "clock_out": to_iso(self.clock_out),
            "location": self.location,
            "notes": self.notes,
            "location_out": self.location_out,
            "notes_out": self.notes_out,
            "hours_worked": round(hours, HOURS_DISPLAY_PRECISION) if hours is not None else None,
            "state": self.state.value,
        }
        if status is not None:
            data["status"] = status.value
        return data
