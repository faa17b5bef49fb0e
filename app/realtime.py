"""Plain WebSocket channel for remotes that do not speak Socket.IO.

Frames are bare JSON: the history array on connect, then one entry per
broadcast. Inbound text frames are readings tagged ``remote``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.api import get_relay
from services.adapters.websocket import SocketAdapter
from services.broadcast import USER_EVENT, ClientChannel
from services.relay import SensorRelay

logger = logging.getLogger(__name__)

router = APIRouter()


async def _forward(websocket: WebSocket, channel: ClientChannel) -> None:
    while True:
        message = await channel.next_message()
        if message is None:
            return
        if message.event == USER_EVENT:
            continue
        try:
            await websocket.send_text(message.text)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.debug(
                "Realtime send failed",
                extra={"client_id": channel.client_id, "reason": repr(exc)},
            )
            return


@router.websocket("/ws")
async def remote_channel(
    websocket: WebSocket,
    relay: SensorRelay = Depends(get_relay),
) -> None:
    await websocket.accept()
    client_id = uuid4().hex
    adapter = SocketAdapter(relay)
    channel = relay.broadcaster.connect(client_id, relay.snapshot())
    sender = asyncio.create_task(_forward(websocket, channel))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None and message.get("bytes") is not None:
                text = message["bytes"].decode("utf-8", errors="replace")
            if text is not None:
                adapter.receive_text(text, client_id=client_id)
    finally:
        relay.broadcaster.disconnect(channel)
        sender.cancel()
        with suppress(asyncio.CancelledError):
            await sender
