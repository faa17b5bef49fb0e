"""Fan-out of sensor entries to connected realtime clients."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from models.records import SensorEntry

logger = logging.getLogger(__name__)

INITIAL_DATA_EVENT = "sensor-initial-data"
USER_EVENT = "user"
REALTIME_RECEIVE_EVENT = "sensor-realtime-receive"
REALTIME_SEND_EVENT = "sensor-realtime-send"


def encode_data(data: Any) -> str:
    """Strict JSON encoding; NaN and Infinity raise ``ValueError``."""
    return json.dumps(data, separators=(",", ":"), allow_nan=False)


@dataclass(frozen=True)
class OutboundMessage:
    """One named event for a client, with ``data`` already encoded as ``text``."""

    event: str
    data: Any
    text: str

    @classmethod
    def build(cls, event: str, data: Any) -> "OutboundMessage":
        return cls(event=event, data=data, text=encode_data(data))


class ClientChannel:
    """Outbound message queue for one connected client."""

    def __init__(self, client_id: str, max_pending: int) -> None:
        self.client_id = client_id
        self.closed = False
        self.dropped = 0
        self._queue: asyncio.Queue[Optional[OutboundMessage]] = asyncio.Queue(maxsize=max_pending)

    def offer(self, message: OutboundMessage) -> bool:
        """Queue a message without waiting; a full queue drops it."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def next_message(self) -> Optional[OutboundMessage]:
        """Wait for the next outbound message, ``None`` once closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # A waiting reader drains the queue; next_message sees ``closed`` afterwards.
            pass


class Broadcaster:
    """Tracks live client channels and delivers every new entry to each."""

    def __init__(self, max_pending: int = 256) -> None:
        self.max_pending = max_pending
        self._channels: Dict[str, ClientChannel] = {}

    @property
    def client_count(self) -> int:
        return len(self._channels)

    def connect(self, client_id: str, initial: Iterable[SensorEntry]) -> ClientChannel:
        """Register a client and queue its initial snapshot and identity."""
        # The initial pair must always fit even for a tiny queue size.
        channel = ClientChannel(client_id, max_pending=max(self.max_pending, 2))
        channel.offer(
            OutboundMessage.build(INITIAL_DATA_EVENT, [entry.to_payload() for entry in initial])
        )
        channel.offer(OutboundMessage.build(USER_EVENT, {"id": client_id}))
        self._channels[client_id] = channel
        logger.info(
            "Realtime client connected",
            extra={"client_id": client_id, "client_count": self.client_count},
        )
        return channel

    def disconnect(self, channel: ClientChannel) -> None:
        channel.close()
        if self._channels.get(channel.client_id) is channel:
            del self._channels[channel.client_id]
        logger.info(
            "Realtime client disconnected",
            extra={"client_id": channel.client_id, "client_count": self.client_count},
        )

    def publish(self, entry: SensorEntry) -> int:
        """Deliver ``entry`` to every open channel and return how many accepted it."""
        try:
            message = OutboundMessage.build(REALTIME_RECEIVE_EVENT, entry.to_payload())
        except ValueError as exc:
            logger.warning(
                "Dropping entry that is not valid JSON",
                extra={"source": entry.source, "reason": str(exc)},
            )
            return 0
        delivered = 0
        for channel in list(self._channels.values()):
            if channel.offer(message):
                delivered += 1
            else:
                logger.debug(
                    "Dropped realtime message for slow client",
                    extra={"client_id": channel.client_id},
                )
        return delivered
