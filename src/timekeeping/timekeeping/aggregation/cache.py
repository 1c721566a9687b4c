from __future__ import annotations

import threading
from collections import OrderedDict
from datetime import date
from typing import Dict, Optional, Tuple

from ..attendance.model import EmployeeId
from ..core.constants import DEFAULT_SUMMARY_CACHE_MAX_ENTRIES
from .model import SummaryStats

CacheKey = Tuple[EmployeeId, date, date]


class SummaryCache:
    """Read-through cache of ``SummaryStats`` keyed by (employee, start, end).

    Each employee has a generation counter bumped on invalidation; a summary
    computed before a write is not stored after it. Holds at most
    ``max_entries`` summaries, dropping the least recently used.

    Invalidation only covers writes made through services sharing this
    instance, so it must not sit in front of a store written by other
    processes.
    """

    def __init__(self, max_entries: int = DEFAULT_SUMMARY_CACHE_MAX_ENTRIES):
        self._lock = threading.Lock()
        self._max_entries = max(1, int(max_entries))
        self._items: "OrderedDict[CacheKey, SummaryStats]" = OrderedDict()
        self._generations: Dict[EmployeeId, int] = {}

    def generation(self, employee_id: EmployeeId) -> int:
        with self._lock:
            return self._generations.get(employee_id, 0)

    def get(self, employee_id: EmployeeId, start: date, end: date) -> Optional[SummaryStats]:
        key = (employee_id, start, end)
        with self._lock:
            stats = self._items.get(key)
            if stats is not None:
                self._items.move_to_end(key)
            return stats

    def put(self, stats: SummaryStats, *, generation: int) -> bool:
        key = (stats.employee_id, stats.start_date, stats.end_date)
        with self._lock:
            if self._generations.get(stats.employee_id, 0) != generation:
                return False
            self._items[key] = stats
            self._items.move_to_end(key)
            while len(self._items) > self._max_entries:
                self._items.popitem(last=False)
            return True

    def invalidate(self, employee_id: EmployeeId) -> int:
        with self._lock:
            self._generations[employee_id] = self._generations.get(employee_id, 0) + 1
            stale = [k for k in self._items if k[0] == employee_id]
            for k in stale:
                del self._items[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
