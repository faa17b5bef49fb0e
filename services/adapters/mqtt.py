from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt

from services.adapters.base import IngestionAdapter
from services.relay import SensorRelay

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883}
_TLS_SCHEMES = {"mqtts", "ssl"}


@dataclass(frozen=True)
class BrokerAddress:
    host: str
    port: int
    tls: bool


def parse_broker_url(url: str) -> BrokerAddress:
    """Split ``mqtt://host:port`` style URLs into connection parameters."""
    parts = urlsplit(url if "://" in url else f"mqtt://{url}")
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise ValueError(f"Unsupported MQTT broker scheme {scheme!r} in {url!r}.")
    if not parts.hostname:
        raise ValueError(f"MQTT broker URL {url!r} has no host.")
    return BrokerAddress(
        host=parts.hostname,
        port=parts.port or _DEFAULT_PORTS[scheme],
        tls=scheme in _TLS_SCHEMES,
    )


def _default_client_factory() -> mqtt.Client:
    return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)


class MqttAdapter(IngestionAdapter):
    """Subscribes to one broker topic; every message is one JSON document.

    paho runs its network loop on its own thread, so received payloads are
    handed back to the relay's event loop before ingestion.
    """

    source = "mqtt"

    def __init__(
        self,
        relay: SensorRelay,
        broker_url: str,
        topic: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_factory: Callable[[], Any] = _default_client_factory,
    ) -> None:
        super().__init__(relay)
        self.broker_url = broker_url
        self.broker = parse_broker_url(broker_url)
        self.topic = topic
        self.username = username
        self.password = password
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        client = self._client_factory()
        if self.username:
            client.username_pw_set(self.username, self.password)
        if self.broker.tls:
            client.tls_set()
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.reconnect_delay_set(min_delay=1, max_delay=30)
        # Socket work happens on the paho thread started by loop_start.
        client.connect_async(self.broker.host, self.broker.port)
        client.loop_start()
        self._client = client
        logger.info(
            "MQTT ingestion connecting",
            extra={"broker": self.broker_url, "topic": self.topic},
        )

    async def stop(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        client.disconnect()
        client.loop_stop()
        logger.info("MQTT ingestion stopped", extra={"broker": self.broker_url})

    def handle_payload(self, raw: bytes) -> None:
        """Decode one broker message and pass it to the relay."""
        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            logger.warning(
                "MQTT message parse error",
                extra={"topic": self.topic, "reason": str(exc)},
            )
            return
        self.submit(payload)

    def _on_connect(self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None) -> None:
        if getattr(reason_code, "is_failure", False):
            logger.error(
                "MQTT connection refused",
                extra={"broker": self.broker_url, "reason": str(reason_code)},
            )
            return
        client.subscribe(self.topic)
        logger.info("Subscribed to MQTT topic", extra={"broker": self.broker_url, "topic": self.topic})

    def _on_disconnect(
        self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None
    ) -> None:
        if self._client is None:
            return
        logger.warning(
            "MQTT connection lost",
            extra={"broker": self.broker_url, "reason": str(reason_code)},
        )

    def _on_message(self, client: Any, userdata: Any, message: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.handle_payload, bytes(message.payload))
