from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TCP_ENABLED_ENV = "RELAY_TCP_ENABLED"
_TCP_HOST_ENV = "RELAY_TCP_HOST"
_TCP_PORT_ENV = "RELAY_TCP_PORT"
_TCP_STRING_AWARE_ENV = "RELAY_TCP_STRING_AWARE"
_MQTT_ENABLED_ENV = "MQTT_ENABLED"
_MQTT_BROKER_ENV = "MQTT_BROKER"
_MQTT_TOPIC_ENV = "MQTT_TOPIC"
_MQTT_USER_ENV = "MQTT_USER"
_MQTT_PASS_ENV = "MQTT_PASS"
_HISTORY_CAPACITY_ENV = "RELAY_HISTORY_CAPACITY"
_CLIENT_QUEUE_SIZE_ENV = "RELAY_CLIENT_QUEUE_SIZE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    tcp_enabled: bool
    tcp_host: str
    tcp_port: int
    tcp_string_aware: bool
    mqtt_enabled: bool
    mqtt_broker: str
    mqtt_topic: str
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    history_capacity: int
    client_queue_size: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_port(name: str, default: int) -> int:
    port = _read_positive_int(name, default)
    return port if port <= 65535 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        tcp_enabled=_read_bool_env(_TCP_ENABLED_ENV, True),
        tcp_host=_read_str_env(_TCP_HOST_ENV, "0.0.0.0"),
        tcp_port=_read_port(_TCP_PORT_ENV, 3000),
        tcp_string_aware=_read_bool_env(_TCP_STRING_AWARE_ENV, False),
        mqtt_enabled=_read_bool_env(_MQTT_ENABLED_ENV, True),
        mqtt_broker=_read_str_env(_MQTT_BROKER_ENV, "mqtt://public.cloud.shiftr.io:1883"),
        mqtt_topic=_read_str_env(_MQTT_TOPIC_ENV, "kezia/imu/data"),
        mqtt_username=_read_optional_env(_MQTT_USER_ENV, "public"),
        mqtt_password=_read_optional_env(_MQTT_PASS_ENV, "public"),
        history_capacity=_read_positive_int(_HISTORY_CAPACITY_ENV, 1000),
        client_queue_size=_read_positive_int(_CLIENT_QUEUE_SIZE_ENV, 256),
        log_level=_read_log_level("INFO"),
    )
