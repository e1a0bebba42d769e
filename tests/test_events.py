"""
Tests for event records and the event bus.

See dharma/karma/events.py for implementation.
"""

import asyncio
import logging

from dharma.karma.events import (
    EventBus,
    EventType,
    SeedPlanted,
    SeedStrengthened,
    StoreOverflow,
)
from tests.helpers import make_seed


def _planted(timestamp: float = 0.0) -> SeedPlanted:
    return SeedPlanted(timestamp=timestamp, seed=make_seed())


def test_event_kinds_are_fixed():
    assert SeedPlanted.type is EventType.PLANTED
    assert EventType("seed:ripened") is EventType.RIPENED
    assert EventType.OVERFLOW.value == "store:overflow"


def test_metadata_excludes_envelope():
    event = SeedStrengthened(timestamp=1.0, seed=make_seed(), amount_added=10, new_potency=60.0)
    assert event.metadata == {"amount_added": 10, "new_potency": 60.0}

    overflow = StoreOverflow(timestamp=1.0, current_size=5, max_size=5)
    assert overflow.metadata == {"current_size": 5, "max_size": 5, "evicted": None}


def test_listeners_called_in_registration_order():
    bus = EventBus()
    calls = []

    bus.on(EventType.PLANTED, lambda e: calls.append("first"))
    bus.on("seed:planted", lambda e: calls.append("second"))
    bus.on(EventType.RIPENED, lambda e: calls.append("other kind"))

    bus.emit(_planted())

    assert calls == ["first", "second"]


def test_same_listener_registered_once():
    bus = EventBus()
    calls = []

    def listener(event):
        calls.append(event)

    bus.on(EventType.PLANTED, listener)
    bus.on(EventType.PLANTED, listener)
    bus.emit(_planted())

    assert len(calls) == 1
    assert bus.listener_count(EventType.PLANTED) == 1


def test_unsubscribe_and_off():
    bus = EventBus()
    calls = []

    def listener(event):
        calls.append(event)

    unsubscribe = bus.on(EventType.PLANTED, listener)
    unsubscribe()
    bus.emit(_planted())

    bus.on(EventType.PLANTED, listener)
    bus.off("seed:planted", listener)
    bus.emit(_planted())

    assert calls == []
    assert bus.listener_count() == 0


def test_on_any_receives_every_kind():
    bus = EventBus()
    seen = []

    unsubscribe = bus.on_any(lambda e: seen.append(e.type))
    bus.emit(_planted())
    bus.emit(StoreOverflow(timestamp=0.0, current_size=1, max_size=1))

    assert seen == [EventType.PLANTED, EventType.OVERFLOW]

    unsubscribe()
    assert bus.listener_count() == 0


def test_failing_listener_is_logged_and_skipped(caplog):
    """A raising listener must not stop delivery to the rest."""
    bus = EventBus()
    calls = []

    def broken(event):
        raise RuntimeError("listener bug")

    bus.on(EventType.PLANTED, broken)
    bus.on(EventType.PLANTED, lambda e: calls.append(e))

    with caplog.at_level(logging.ERROR, logger="dharma.karma.events"):
        bus.emit(_planted())

    assert len(calls) == 1
    assert "Error in karmic event listener for seed:planted" in caplog.text


def test_listener_may_unsubscribe_during_emit():
    bus = EventBus()
    calls = []
    handles = {}

    def once_only(event):
        calls.append("once")
        handles["once"]()

    handles["once"] = bus.on(EventType.PLANTED, once_only)
    bus.on(EventType.PLANTED, lambda e: calls.append("always"))

    bus.emit(_planted())
    bus.emit(_planted())

    assert calls == ["once", "always", "always"]


def test_once_resolves_with_next_event():
    bus = EventBus()
    event = _planted(timestamp=42.0)

    async def scenario():
        asyncio.get_running_loop().call_soon(bus.emit, event)
        return await bus.once(EventType.PLANTED)

    assert asyncio.run(scenario()) is event
    assert bus.listener_count() == 0


def test_clear_drops_all_listeners():
    bus = EventBus()
    bus.on(EventType.PLANTED, lambda e: None)
    bus.on_any(lambda e: None)

    bus.clear()

    assert bus.listener_count() == 0
