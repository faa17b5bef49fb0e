from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from app.realtime import router as realtime_router
from app.socketio_server import create_socketio_server
from logging_config import configure_logging
from services.adapters import build_adapters
from services.relay import build_default_relay
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    relay = build_default_relay()
    adapters = build_adapters(relay, get_settings())
    started = []
    try:
        for adapter in adapters:
            try:
                await adapter.start()
            except OSError as exc:
                logger.error(
                    "Failed to start ingestion adapter",
                    extra={"source": adapter.source, "reason": str(exc)},
                )
                continue
            started.append(adapter)
        yield
    finally:
        for adapter in reversed(started):
            await adapter.stop()
        build_default_relay.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="IMU Sensor Relay",
        description="Relays IMU readings from TCP, MQTT and WebSocket producers to dashboards.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(router)
    app.include_router(realtime_router)
    return app


def create_asgi_app() -> socketio.ASGIApp:
    """Serve Socket.IO under ``/socket.io/`` and hand every other request to FastAPI."""
    return socketio.ASGIApp(create_socketio_server(), other_asgi_app=create_app())


app = create_asgi_app()
