from __future__ import annotations

import json
import logging
from typing import Any, Optional

from models.records import SensorEntry
from services.adapters.base import IngestionAdapter

logger = logging.getLogger(__name__)

REMOTE_SOURCE = "remote"


class SocketAdapter(IngestionAdapter):
    """Ingests readings pushed by realtime clients.

    ``sensor-realtime-send`` events from Socket.IO clients are tagged
    ``socket``. Text frames from a plain WebSocket remote carry one bare
    JSON object each and are tagged ``remote``.
    """

    source = "socket"

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    def receive_event(self, data: Any, client_id: Optional[str] = None) -> Optional[SensorEntry]:
        return self.submit(data)

    def receive_text(self, text: str, client_id: Optional[str] = None) -> Optional[SensorEntry]:
        try:
            payload = json.loads(text)
        except (ValueError, RecursionError) as exc:
            logger.warning(
                "Ignoring malformed realtime message",
                extra={"client_id": client_id, "reason": str(exc)},
            )
            return None
        return self.submit(payload, source=REMOTE_SOURCE)
