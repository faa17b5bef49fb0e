"""Tests for payload validation and the shared ingestion funnel."""

from __future__ import annotations

import asyncio
import json

import pytest

from datastore.history import HistoryStore
from services.broadcast import Broadcaster
from services.ingestion import MAX_SENSOR_DEPTH, PayloadRejected, build_entry
from services.relay import SensorRelay

RECEIPT_MS = 1_700_000_000_123


def _relay(capacity: int = 10) -> SensorRelay:
    return SensorRelay(
        history=HistoryStore(capacity=capacity),
        broadcaster=Broadcaster(max_pending=16),
        clock=lambda: RECEIPT_MS,
    )


@pytest.mark.parametrize(
    "payload",
    [
        {"sensor": {"gx": 1.0}},
        {"sensor": {"gx": 1.0}, "timestamp": None},
        {"sensor": {"gx": 1.0}, "timestamp": 0},
        {"sensor": {"gx": 1.0}, "timestamp": "soon"},
        {"sensor": {"gx": 1.0}, "timestamp": True},
    ],
)
def test_missing_or_invalid_timestamp_uses_receipt_clock(payload) -> None:
    entry = build_entry(payload, source="tcp", received_at_ms=RECEIPT_MS)

    assert entry.timestamp == RECEIPT_MS
    assert entry.source == "tcp"


def test_producer_timestamp_is_kept() -> None:
    entry = build_entry(
        {"sensor": {"gx": 1.0}, "timestamp": 1_699_999_999_000.7},
        source="mqtt",
        received_at_ms=RECEIPT_MS,
    )

    assert entry.timestamp == 1_699_999_999_000


@pytest.mark.parametrize("payload", [{}, {"sensor": None}, {"timestamp": 5}, [1, 2], "text"])
def test_payload_without_sensor_is_rejected(payload) -> None:
    with pytest.raises(PayloadRejected):
        build_entry(payload, source="tcp", received_at_ms=RECEIPT_MS)


@pytest.mark.parametrize(
    "text",
    [
        '{"sensor":{"gx":NaN}}',
        '{"sensor":{"gx":1.0,"gy":Infinity}}',
        '{"sensor":[1,[2,-Infinity]],"timestamp":5}',
    ],
)
def test_non_finite_sensor_values_are_rejected(text) -> None:
    relay = _relay()

    assert relay.ingest(json.loads(text), source="tcp") is None

    assert len(relay.history) == 0
    assert relay.stats()["rejected"] == {"tcp": 1}


def test_deeply_nested_sensor_is_rejected() -> None:
    nested: object = 1
    for _ in range(MAX_SENSOR_DEPTH + 1):
        nested = {"a": nested}
    shallow: object = 1
    for _ in range(MAX_SENSOR_DEPTH):
        shallow = [shallow]

    with pytest.raises(PayloadRejected, match="nested too deeply"):
        build_entry({"sensor": nested}, source="tcp", received_at_ms=RECEIPT_MS)
    assert build_entry({"sensor": shallow}, source="tcp", received_at_ms=RECEIPT_MS).sensor == shallow


def test_ingest_appends_and_counts_per_source() -> None:
    relay = _relay()

    entry = relay.ingest({"sensor": {"gx": 0.5}}, source="tcp")
    relay.ingest({"sensor": {"gx": 0.6}, "timestamp": 10}, source="mqtt")
    relay.ingest({"no_sensor": True}, source="mqtt")

    assert entry is not None
    assert [item.sensor for item in relay.snapshot()] == [{"gx": 0.5}, {"gx": 0.6}]
    assert relay.stats() == {
        "accepted": {"tcp": 1, "mqtt": 1},
        "rejected": {"mqtt": 1},
    }


def test_rejected_payload_is_neither_stored_nor_broadcast() -> None:
    async def scenario() -> None:
        relay = _relay()
        channel = relay.broadcaster.connect("client-1", relay.snapshot())
        await channel.next_message()  # initial snapshot
        await channel.next_message()  # user id

        assert relay.ingest({"timestamp": 5}, source="socket") is None
        relay.ingest({"sensor": {"v": 1}}, source="socket")

        message = await channel.next_message()
        assert message.event == "sensor-realtime-receive"
        assert json.loads(message.text)["sensor"] == {"v": 1}
        assert len(relay.history) == 1

    asyncio.run(scenario())


def test_ingest_respects_history_capacity() -> None:
    relay = _relay(capacity=3)

    for value in range(1, 5):
        relay.ingest({"sensor": {"v": value}}, source="tcp")

    assert [entry.sensor for entry in relay.snapshot()] == [{"v": 2}, {"v": 3}, {"v": 4}]
