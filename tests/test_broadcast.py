"""Unit tests for realtime fan-out."""

from __future__ import annotations

import asyncio
import json

import pytest

from models.records import SensorEntry
from services.broadcast import (
    INITIAL_DATA_EVENT,
    REALTIME_RECEIVE_EVENT,
    USER_EVENT,
    Broadcaster,
    encode_data,
)


def _entry(value: int) -> SensorEntry:
    return SensorEntry(sensor={"v": value}, timestamp=value, source="tcp")


async def _drain(channel) -> list[dict]:
    messages = []
    while not channel._queue.empty():
        message = await channel.next_message()
        messages.append({"event": message.event, "data": json.loads(message.text)})
    return messages


def test_connect_queues_initial_snapshot_then_user() -> None:
    async def scenario() -> None:
        broadcaster = Broadcaster()
        channel = broadcaster.connect("abc", [_entry(1), _entry(2)])

        messages = await _drain(channel)

        assert [message["event"] for message in messages] == [INITIAL_DATA_EVENT, USER_EVENT]
        assert [item["sensor"] for item in messages[0]["data"]] == [{"v": 1}, {"v": 2}]
        assert messages[1]["data"] == {"id": "abc"}

    asyncio.run(scenario())


def test_publish_reaches_every_connected_client_once() -> None:
    async def scenario() -> None:
        broadcaster = Broadcaster()
        channels = [broadcaster.connect(f"client-{i}", []) for i in range(3)]
        for channel in channels:
            await _drain(channel)

        delivered = broadcaster.publish(_entry(7))

        assert delivered == 3
        for channel in channels:
            messages = await _drain(channel)
            assert messages == [
                {
                    "event": REALTIME_RECEIVE_EVENT,
                    "data": {"sensor": {"v": 7}, "timestamp": 7, "source": "tcp"},
                }
            ]

    asyncio.run(scenario())


def test_late_client_only_sees_entry_through_snapshot() -> None:
    async def scenario() -> None:
        broadcaster = Broadcaster()
        entry = _entry(1)
        broadcaster.publish(entry)

        channel = broadcaster.connect("late", [entry])
        messages = await _drain(channel)

        assert [message["event"] for message in messages] == [INITIAL_DATA_EVENT, USER_EVENT]

    asyncio.run(scenario())


def test_disconnected_client_misses_later_entries() -> None:
    async def scenario() -> None:
        broadcaster = Broadcaster()
        staying = broadcaster.connect("staying", [])
        leaving = broadcaster.connect("leaving", [])
        await _drain(staying)
        await _drain(leaving)

        broadcaster.disconnect(leaving)
        delivered = broadcaster.publish(_entry(3))

        assert delivered == 1
        assert broadcaster.client_count == 1
        assert await leaving.next_message() is None
        assert len(await _drain(staying)) == 1

    asyncio.run(scenario())


def test_full_client_queue_drops_messages() -> None:
    async def scenario() -> None:
        broadcaster = Broadcaster(max_pending=2)
        channel = broadcaster.connect("slow", [])

        # The queue already holds the two connect messages.
        assert broadcaster.publish(_entry(1)) == 0
        assert channel.dropped == 1

        await _drain(channel)
        assert broadcaster.publish(_entry(2)) == 1

    asyncio.run(scenario())


def test_encode_data_refuses_non_finite_numbers() -> None:
    assert encode_data({"v": 1.5, "ok": [1, 2]}) == '{"v":1.5,"ok":[1,2]}'
    with pytest.raises(ValueError):
        encode_data({"v": float("nan")})
    with pytest.raises(ValueError):
        encode_data([float("-inf")])


def test_publish_drops_entry_that_browsers_cannot_parse() -> None:
    async def scenario() -> None:
        broadcaster = Broadcaster()
        channel = broadcaster.connect("abc", [])
        await _drain(channel)

        delivered = broadcaster.publish(SensorEntry(sensor={"v": float("inf")}, timestamp=1, source="tcp"))

        assert delivered == 0
        assert await _drain(channel) == []
        assert broadcaster.publish(_entry(2)) == 1

    asyncio.run(scenario())
