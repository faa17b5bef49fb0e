from __future__ import annotations

from typing import Iterable

from datastore.history import build_default_history
from services.relay import build_default_relay
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("RELAY_TCP_ENABLED", "no")
    monkeypatch.setenv("RELAY_TCP_PORT", "3100")
    monkeypatch.setenv("RELAY_TCP_STRING_AWARE", "true")
    monkeypatch.setenv("MQTT_BROKER", "mqtts://broker.example:8883")
    monkeypatch.setenv("MQTT_TOPIC", "lab/imu")
    monkeypatch.setenv("MQTT_USER", "")
    monkeypatch.setenv("RELAY_HISTORY_CAPACITY", "5")
    monkeypatch.setenv("RELAY_CLIENT_QUEUE_SIZE", "32")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_history, build_default_relay)
    _clear_caches(caches)

    try:
        settings = get_settings()
        relay = build_default_relay()

        assert settings.tcp_enabled is False
        assert settings.tcp_port == 3100
        assert settings.tcp_string_aware is True
        assert settings.mqtt_broker == "mqtts://broker.example:8883"
        assert settings.mqtt_topic == "lab/imu"
        assert settings.mqtt_username is None
        assert settings.log_level == "DEBUG"
        assert relay.history.capacity == 5
        assert relay.broadcaster.max_pending == 32
    finally:
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("RELAY_TCP_ENABLED", "maybe")
    monkeypatch.setenv("RELAY_TCP_PORT", "70000")
    monkeypatch.setenv("RELAY_HISTORY_CAPACITY", "-1")
    monkeypatch.setenv("RELAY_CLIENT_QUEUE_SIZE", "lots")
    monkeypatch.setenv("MQTT_TOPIC", "   ")
    get_settings.cache_clear()

    try:
        settings = get_settings()

        assert settings.tcp_enabled is True
        assert settings.tcp_port == 3000
        assert settings.history_capacity == 1000
        assert settings.client_queue_size == 256
        assert settings.mqtt_topic == "kezia/imu/data"
        assert settings.mqtt_broker == "mqtt://public.cloud.shiftr.io:1883"
    finally:
        get_settings.cache_clear()
