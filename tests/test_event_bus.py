"""Tests for the EventBus."""

import asyncio

import pytest

from courierkit.shared.core.event_bus import EventBus


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber():
    bus = EventBus()
    received = []

    async def first(payload):
        received.append(("first", payload["n"]))

    async def second(payload):
        received.append(("second", payload["n"]))

    await bus.subscribe("orders.changed", first)
    await bus.subscribe("orders.changed", second)
    await bus.subscribe("orders.changed", first)
    await bus.publish("orders.changed", {"n": 1})

    assert await bus.wait_until_idle()
    assert sorted(received) == [("first", 1), ("second", 1)]
    assert bus.subscriber_count("orders.changed") == 2


@pytest.mark.asyncio
async def test_failing_handler_does_not_affect_others():
    bus = EventBus()
    received = []

    async def broken(payload):
        raise RuntimeError("handler bug")

    async def healthy(payload):
        received.append(payload)

    await bus.subscribe("session.changed", broken)
    await bus.subscribe("session.changed", healthy)
    await bus.publish("session.changed", {"ok": True})

    assert await bus.wait_until_idle()
    assert received == [{"ok": True}]


@pytest.mark.asyncio
async def test_unsubscribe_and_clear():
    bus = EventBus()
    received = []

    async def handler(payload):
        received.append(payload)

    await bus.subscribe("stats.changed", handler)
    await bus.unsubscribe("stats.changed", handler)
    await bus.unsubscribe("stats.changed", handler)
    await bus.publish("stats.changed", {})
    await bus.wait_until_idle()
    assert received == []

    await bus.subscribe("stats.changed", handler)
    bus.clear()
    assert bus.subscriber_count("stats.changed") == 0


@pytest.mark.asyncio
async def test_wait_until_idle_follows_chained_events():
    bus = EventBus()
    received = []

    async def relay(payload):
        await bus.publish("second", payload)

    async def sink(payload):
        received.append(payload)

    await bus.subscribe("first", relay)
    await bus.subscribe("second", sink)
    await bus.publish("first", {"hop": 1})

    assert await bus.wait_until_idle()
    assert received == [{"hop": 1}]


@pytest.mark.asyncio
async def test_late_subscriber_can_replay_current_snapshot():
    bus = EventBus()
    received = []

    async def view(payload):
        received.append(payload)

    await bus.publish("orders.changed", {"pending_ids": ["o1"]})
    await bus.publish("orders.changed", {"pending_ids": ["o1", "o2"]})

    await bus.subscribe("orders.changed", view, replay=True)
    await bus.wait_until_idle()

    assert received == [{"pending_ids": ["o1", "o2"]}]
    assert bus.last_payload("orders.changed") == {"pending_ids": ["o1", "o2"]}


@pytest.mark.asyncio
async def test_subscribe_without_replay_waits_for_next_event():
    bus = EventBus()
    received = []

    async def view(payload):
        received.append(payload)

    await bus.publish("stats.changed", {"n": 1})
    await bus.subscribe("stats.changed", view)
    await bus.wait_until_idle()
    assert received == []

    bus.clear()
    assert bus.last_payload("stats.changed") is None


@pytest.mark.asyncio
async def test_drain_cancels_stuck_handlers():
    bus = EventBus()
    cancelled = asyncio.Event()

    async def stuck(payload):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    await bus.subscribe("session.changed", stuck)
    await bus.publish("session.changed", {})

    assert await bus.drain(timeout=0.05) == 1
    assert cancelled.is_set()
    assert await bus.drain(timeout=0.05) == 0
