"""
Unit Tests for EventBus
=======================

Test Coverage
-------------
- Exact and wildcard subscriptions
- Priority ordering, once listeners, unsubscribe
- Listener failures and timeouts isolated from the publisher
- Callback signature validation
- Metrics
"""

import asyncio

import pytest

from fightslot.core.event.bus import EventBus
from fightslot.core.event.router import EventRouter
from fightslot.core.event.types import ListenerPriority


def _noop(payload):
    return None


@pytest.mark.unit
class TestRouting:
    @pytest.mark.parametrize(
        "event_name, pattern, expected",
        [
            ("sync.field_resolved", "sync.*", True),
            ("chain.failed", "*.failed", True),
            ("fight.state_changed", "sync.*", False),
            ("sync.field_failed", "sync.field_*", True),
            ("sync", "sync.*", False),
        ],
    )
    def test_wildcards(self, event_name, pattern, expected):
        assert EventRouter().matches(event_name, pattern) is expected

    async def test_wildcard_subscriber_receives(self, event_bus):
        """Test a pattern subscriber sees every matching event."""
        # Arrange
        seen = []
        event_bus.subscribe("sync.*", seen.append, identifier="all-sync")

        # Act
        await event_bus.publish("sync.cycle_started", {"cycle": 1})
        await event_bus.publish("fight.state_changed", {"state": "IDLE"})
        await event_bus.publish("sync.field_resolved", {"field": "char_hp"})

        # Assert
        assert seen == [{"cycle": 1}, {"field": "char_hp"}]


@pytest.mark.unit
class TestDelivery:
    async def test_priority_order(self, event_bus):
        """Test CRITICAL runs before HIGH before NORMAL."""
        # Arrange
        order = []
        event_bus.subscribe(
            "x", lambda p: order.append("normal"), identifier="n"
        )
        event_bus.subscribe(
            "x", lambda p: order.append("critical"), priority=ListenerPriority.CRITICAL, identifier="c"
        )
        event_bus.subscribe(
            "x", lambda p: order.append("high"), priority=ListenerPriority.HIGH, identifier="h"
        )

        # Act
        await event_bus.publish("x", {})

        # Assert
        assert order == ["critical", "high", "normal"]

    async def test_async_and_sync_callbacks(self, event_bus):
        """Test both callback kinds are awaited or called inline."""
        # Arrange
        seen = []

        async def on_async(payload):
            seen.append(("async", payload["n"]))

        event_bus.subscribe("x", on_async)
        event_bus.subscribe("x", lambda p: seen.append(("sync", p["n"])), identifier="s")

        # Act
        await event_bus.publish("x", {"n": 1})

        # Assert
        assert sorted(seen) == [("async", 1), ("sync", 1)]

    async def test_low_priority_runs_in_background(self, event_bus):
        """Test LOW listeners finish after drain()."""
        # Arrange
        seen = []

        async def slow(payload):
            await asyncio.sleep(0)
            seen.append(payload)

        event_bus.subscribe("x", slow, priority=ListenerPriority.LOW)

        # Act
        await event_bus.publish("x", {"n": 1})
        await event_bus.drain()

        # Assert
        assert seen == [{"n": 1}]

    async def test_once_listener(self, event_bus):
        # Arrange
        seen = []
        event_bus.subscribe("x", seen.append, identifier="once", once=True)

        # Act
        await event_bus.publish("x", {"n": 1})
        await event_bus.publish("x", {"n": 2})

        # Assert
        assert seen == [{"n": 1}]
        assert event_bus.get_listener_count("x") == 0

    async def test_unsubscribe(self, event_bus):
        # Arrange
        seen = []
        listener_id = event_bus.subscribe("x", seen.append, identifier="gone")

        # Act
        removed = event_bus.unsubscribe("x", listener_id)
        await event_bus.publish("x", {"n": 1})

        # Assert
        assert removed is True
        assert seen == []

    def test_duplicate_identifier_ignored(self, event_bus):
        event_bus.subscribe("x", _noop, identifier="dup")
        event_bus.subscribe("x", _noop, identifier="dup")
        assert event_bus.get_listener_count("x") == 1


@pytest.mark.unit
class TestIsolation:
    async def test_failing_listener_does_not_raise(self, event_bus):
        """Test a broken listener is logged and others still run."""
        # Arrange
        seen = []

        def broken(payload):
            raise RuntimeError("listener bug")

        event_bus.subscribe("x", broken)
        event_bus.subscribe("x", seen.append, identifier="ok")

        # Act
        await event_bus.publish("x", {"n": 1})

        # Assert
        assert seen == [{"n": 1}]
        assert event_bus.get_metrics().listener_errors == {"x": 1}

    @pytest.mark.slow
    async def test_high_listener_timeout(self):
        """Test a hung HIGH listener is cut off at its timeout."""
        # Arrange
        bus = EventBus(high_timeout_seconds=0.05)

        async def hang(payload):
            await asyncio.sleep(1)

        bus.subscribe("x", hang, priority=ListenerPriority.HIGH)

        # Act
        results = await bus.publish("x", {})

        # Assert
        assert results == [None]
        assert bus.get_metrics().listener_errors == {"x": 1}

    def test_rejects_wrong_signature(self, event_bus):
        """Test callbacks must take exactly one payload argument."""
        with pytest.raises(ValueError):
            event_bus.subscribe("x", lambda a, b: None, identifier="bad")

    async def test_metrics_count_publishes(self, event_bus):
        # Arrange
        event_bus.subscribe("x", _noop, identifier="p")

        # Act
        await event_bus.publish("x", {})
        await event_bus.publish("y", {})

        # Assert
        metrics = event_bus.get_metrics()
        assert metrics.events_published == {"x": 1, "y": 1}
        assert metrics.total_listeners == 1
