from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from models.records import SensorEntry
from services.relay import SensorRelay


class IngestionAdapter(ABC):
    """A transport that produces sensor payloads for the shared relay.

    Subclasses own their connection mechanics; validation, history and
    fan-out all happen in :meth:`submit`.
    """

    source: str = "unknown"

    def __init__(self, relay: SensorRelay) -> None:
        self.relay = relay

    @abstractmethod
    async def start(self) -> None:
        """Begin receiving from the transport."""

    @abstractmethod
    async def stop(self) -> None:
        """Release transport resources."""

    def submit(self, payload: Any, source: Optional[str] = None) -> Optional[SensorEntry]:
        return self.relay.ingest(payload, source=source or self.source)
