"""Ingestion funnel shared by every transport adapter."""

from __future__ import annotations

import logging
from collections import Counter
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Tuple

from datastore.history import HistoryStore, build_default_history
from models.records import SensorEntry
from services.broadcast import Broadcaster
from services.ingestion import PayloadRejected, build_entry, receipt_clock_ms
from settings import get_settings

logger = logging.getLogger(__name__)


class SensorRelay:
    """Validates payloads, records them in history and fans them out."""

    def __init__(
        self,
        history: HistoryStore,
        broadcaster: Broadcaster,
        clock: Callable[[], int] = receipt_clock_ms,
    ) -> None:
        self.history = history
        self.broadcaster = broadcaster
        self.clock = clock
        self._accepted: Counter[str] = Counter()
        self._rejected: Counter[str] = Counter()

    def ingest(self, payload: Any, source: Optional[str]) -> Optional[SensorEntry]:
        """Accept one decoded payload; returns ``None`` when it is rejected."""
        label = source or "unknown"
        try:
            entry = build_entry(payload, source=source, received_at_ms=self.clock())
        except PayloadRejected as exc:
            self._rejected[label] += 1
            logger.info("Rejected sensor payload", extra={"source": label, "reason": str(exc)})
            return None

        self.history.append(entry)
        self.broadcaster.publish(entry)
        self._accepted[label] += 1
        logger.debug(
            "Accepted sensor entry",
            extra={"source": label, "history_size": len(self.history)},
        )
        return entry

    def snapshot(self) -> Tuple[SensorEntry, ...]:
        return self.history.snapshot()

    def stats(self) -> Dict[str, Dict[str, int]]:
        return {"accepted": dict(self._accepted), "rejected": dict(self._rejected)}


@lru_cache
def build_default_relay() -> SensorRelay:
    """Factory that wires the relay with the default history store."""
    settings = get_settings()
    history = build_default_history()
    broadcaster = Broadcaster(max_pending=settings.client_queue_size)
    return SensorRelay(history=history, broadcaster=broadcaster)
