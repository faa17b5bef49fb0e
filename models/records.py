"""Domain models shared across services."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class SensorEntry:
    """One timestamped reading of named sensor channels.

    Entries never change after creation: ``sensor`` is copied on the way in
    and every payload handed out is a fresh copy.
    """

    sensor: Any
    timestamp: int
    source: Optional[str] = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sensor", copy.deepcopy(self.sensor))

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sensor": copy.deepcopy(self.sensor),
            "timestamp": self.timestamp,
        }
        if self.source is not None:
            payload["source"] = self.source
        return payload
