"""Socket.IO realtime channel used by the dashboard and remote pages."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import socketio

from app.api import get_relay
from services.adapters.websocket import SocketAdapter
from services.broadcast import REALTIME_SEND_EVENT, ClientChannel
from services.relay import SensorRelay

logger = logging.getLogger(__name__)


@dataclass
class _Session:
    adapter: SocketAdapter
    channel: ClientChannel
    sender: "asyncio.Task[None]"


class RealtimeEvents:
    """Binds each Socket.IO session to a broadcaster channel.

    Every session gets ``sensor-initial-data`` and ``user`` on connect and
    ``sensor-realtime-receive`` for each accepted entry. Readings arrive as
    ``sensor-realtime-send`` events.
    """

    def __init__(self, server: Any, relay_factory: Callable[[], SensorRelay] = get_relay) -> None:
        self.server = server
        self._relay_factory = relay_factory
        self._sessions: Dict[str, _Session] = {}

    def register(self) -> None:
        self.server.on("connect", handler=self.on_connect)
        self.server.on("disconnect", handler=self.on_disconnect)
        self.server.on(REALTIME_SEND_EVENT, handler=self.on_sensor_send)

    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Any = None) -> None:
        relay = self._relay_factory()
        channel = relay.broadcaster.connect(sid, relay.snapshot())
        sender = asyncio.create_task(self._forward(sid, channel))
        self._sessions[sid] = _Session(adapter=SocketAdapter(relay), channel=channel, sender=sender)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        session = self._sessions.pop(sid, None)
        if session is None:
            return
        session.adapter.relay.broadcaster.disconnect(session.channel)
        session.sender.cancel()
        with suppress(asyncio.CancelledError):
            await session.sender

    async def on_sensor_send(self, sid: str, data: Any = None) -> None:
        session = self._sessions.get(sid)
        if session is None:
            logger.warning("Reading from unknown Socket.IO session", extra={"client_id": sid})
            return
        session.adapter.receive_event(data, client_id=sid)

    async def _forward(self, sid: str, channel: ClientChannel) -> None:
        while True:
            message = await channel.next_message()
            if message is None:
                return
            await self.server.emit(message.event, message.data, to=sid)


def create_socketio_server(
    relay_factory: Callable[[], SensorRelay] = get_relay,
    cors_allowed_origins: Optional[Any] = "*",
) -> socketio.AsyncServer:
    server = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=cors_allowed_origins)
    RealtimeEvents(server, relay_factory=relay_factory).register()
    return server
