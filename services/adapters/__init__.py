"""Transport adapters feeding the sensor relay."""

from __future__ import annotations

from typing import List

from services.adapters.base import IngestionAdapter
from services.adapters.mqtt import MqttAdapter
from services.adapters.websocket import SocketAdapter
from services.adapters.tcp import TcpAdapter
from services.relay import SensorRelay
from settings import Settings


def build_adapters(relay: SensorRelay, settings: Settings) -> List[IngestionAdapter]:
    """Create the listener adapters enabled by configuration."""
    adapters: List[IngestionAdapter] = []
    if settings.tcp_enabled:
        adapters.append(
            TcpAdapter(
                relay,
                host=settings.tcp_host,
                port=settings.tcp_port,
                string_aware=settings.tcp_string_aware,
            )
        )
    if settings.mqtt_enabled:
        adapters.append(
            MqttAdapter(
                relay,
                broker_url=settings.mqtt_broker,
                topic=settings.mqtt_topic,
                username=settings.mqtt_username,
                password=settings.mqtt_password,
            )
        )
    return adapters


__all__ = [
    "IngestionAdapter",
    "MqttAdapter",
    "SocketAdapter",
    "TcpAdapter",
    "build_adapters",
]
