from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ...core.enums import WorkStatus
from ..model import AttendanceRecord


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked hours)."""

    @abstractmethod
    def compute_hours(self, clock_in: datetime, clock_out: datetime) -> float:
        raise NotImplementedError

    @abstractmethod
    def classify(self, hours: float) -> WorkStatus:
        raise NotImplementedError

    @abstractmethod
    def overtime_hours(self, hours: float) -> float:
        raise NotImplementedError

    def status_of(self, record: AttendanceRecord) -> WorkStatus:
        if record.clock_out is None:
            return WorkStatus.OPEN
        return self.classify(self.compute_hours(record.clock_in, record.clock_out))
