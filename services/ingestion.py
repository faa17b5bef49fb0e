"""Validation and normalization of inbound sensor payloads."""

from __future__ import annotations

import math
import time
from typing import Any, Mapping, Optional

from models.records import SensorEntry


class PayloadRejected(ValueError):
    """Raised when an inbound payload cannot become a sensor entry."""


MAX_SENSOR_DEPTH = 64


def receipt_clock_ms() -> int:
    return int(time.time() * 1000)


def _producer_timestamp(value: Any) -> Optional[int]:
    # bool is an int subclass but never a meaningful timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if not value:
        return None
    return int(value)


def _sensor_problem(sensor: Any) -> Optional[str]:
    """Describe why ``sensor`` cannot be relayed, or return ``None``."""
    pending = [(sensor, 1)]
    while pending:
        value, depth = pending.pop()
        if isinstance(value, float) and not math.isfinite(value):
            return "sensor contains a non-finite number"
        if isinstance(value, Mapping):
            children = value.values()
        elif isinstance(value, list):
            children = value
        else:
            continue
        if depth > MAX_SENSOR_DEPTH:
            return "sensor is nested too deeply"
        pending.extend((child, depth + 1) for child in children)
    return None


def build_entry(payload: Any, source: Optional[str], received_at_ms: int) -> SensorEntry:
    """Turn a decoded JSON payload into a :class:`SensorEntry`.

    The producer's ``timestamp`` is kept when it is a non-zero number;
    anything else falls back to ``received_at_ms``. Sensor values holding
    NaN or Infinity are rejected since clients cannot parse them.
    """
    if not isinstance(payload, Mapping):
        raise PayloadRejected("payload is not a JSON object")
    sensor = payload.get("sensor")
    if sensor is None:
        raise PayloadRejected("missing sensor field")
    problem = _sensor_problem(sensor)
    if problem is not None:
        raise PayloadRejected(problem)

    timestamp = _producer_timestamp(payload.get("timestamp"))
    return SensorEntry(
        sensor=sensor,
        timestamp=timestamp if timestamp is not None else received_at_ms,
        source=source,
    )
