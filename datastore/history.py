from __future__ import annotations

from collections import deque
from functools import lru_cache
from typing import Deque, Optional, Tuple

from models.records import SensorEntry
from settings import get_settings


class HistoryStore:
    """Fixed-capacity, arrival-ordered buffer of sensor entries.

    Appending past capacity evicts the oldest entry. The store is owned by the
    relay's event loop, so appends and snapshots never interleave.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity <= 0:
            raise ValueError("History capacity must be a positive integer.")
        self._entries: Deque[SensorEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, entry: SensorEntry) -> None:
        self._entries.append(entry)

    def snapshot(self) -> Tuple[SensorEntry, ...]:
        """Return the current contents, oldest first."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@lru_cache
def build_default_history(capacity: Optional[int] = None) -> HistoryStore:
    settings = get_settings()
    size = settings.history_capacity if capacity is None else capacity
    return HistoryStore(capacity=size)
