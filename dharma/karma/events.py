"""
Karmic events and the synchronous event bus.

Every state transition of a seed is announced as one of a closed set of
event kinds. Each kind is its own dataclass carrying only its payload.
"""

import asyncio
import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional, Union

from dharma.karma.core import Manifestation, Seed

logger = logging.getLogger(__name__)


class EventType(Enum):
    """All event kinds the store can emit."""
    PLANTED = "seed:planted"            # Action created karmic potential
    STRENGTHENED = "seed:strengthened"  # Repeated action increased potency
    WEAKENED = "seed:weakened"          # Counter-action reduced potency
    RIPENING = "seed:ripening"          # Conditions met, beginning to manifest
    RIPENED = "seed:ripened"            # A manifestation was produced
    EXHAUSTED = "seed:exhausted"        # Expired or spent without ripening
    PURIFIED = "seed:purified"          # Neutralized through practice
    OVERFLOW = "store:overflow"         # Capacity reached, one seed evicted
    COLLECTIVE_FORMED = "collective:formed"


# =============================================================================
# EVENT RECORDS
# =============================================================================

_ENVELOPE_FIELDS = {"timestamp", "seed", "manifestation"}


@dataclass
class KarmicEvent:
    """Base for every event: a kind and the time it happened."""
    type: ClassVar[EventType]
    timestamp: float

    @property
    def metadata(self) -> Dict[str, Any]:
        """Payload fields other than the timestamp, seed and manifestation."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in _ENVELOPE_FIELDS
        }


@dataclass
class SeedEvent(KarmicEvent):
    """An event about one seed."""
    seed: Seed


@dataclass
class SeedPlanted(SeedEvent):
    type: ClassVar[EventType] = EventType.PLANTED


@dataclass
class SeedStrengthened(SeedEvent):
    type: ClassVar[EventType] = EventType.STRENGTHENED
    amount_added: float
    new_potency: float


@dataclass
class SeedWeakened(SeedEvent):
    type: ClassVar[EventType] = EventType.WEAKENED
    amount_reduced: float
    new_potency: float


@dataclass
class SeedRipening(SeedEvent):
    type: ClassVar[EventType] = EventType.RIPENING


@dataclass
class SeedRipened(SeedEvent):
    type: ClassVar[EventType] = EventType.RIPENED
    manifestation: Manifestation


@dataclass
class SeedExhausted(SeedEvent):
    type: ClassVar[EventType] = EventType.EXHAUSTED
    reason: str = "expired"             # "expired" | "spent"


@dataclass
class SeedPurified(SeedEvent):
    type: ClassVar[EventType] = EventType.PURIFIED
    reason: str = "purified"            # "purified" | "weakened"


@dataclass
class StoreOverflow(KarmicEvent):
    type: ClassVar[EventType] = EventType.OVERFLOW
    current_size: int
    max_size: int
    evicted: Optional[Seed] = None


@dataclass
class CollectiveFormed(KarmicEvent):
    type: ClassVar[EventType] = EventType.COLLECTIVE_FORMED
    group_id: str
    participant_count: int
    valence: str


Listener = Callable[[KarmicEvent], None]
EventKey = Union[EventType, str]


# =============================================================================
# EVENT BUS
# =============================================================================

class EventBus:
    """
    Per-kind publish/subscribe.

    Listeners run synchronously in registration order. A listener that
    raises is logged and skipped; the rest still receive the event.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventType, List[Listener]] = {kind: [] for kind in EventType}

    def on(self, event_type: EventKey, listener: Listener) -> Callable[[], None]:
        """
        Subscribe to one event kind.

        Args:
            event_type: EventType or its string value (e.g. "seed:ripened")
            listener: Called with each matching event

        Returns:
            Zero-argument function that unsubscribes
        """
        kind = EventType(event_type)
        listeners = self._listeners[kind]
        if listener not in listeners:
            listeners.append(listener)
        return lambda: self.off(kind, listener)

    def on_any(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to every event kind. Returns one unsubscribe for all."""
        unsubscribers = [self.on(kind, listener) for kind in EventType]

        def _unsubscribe() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return _unsubscribe

    def off(self, event_type: EventKey, listener: Listener) -> None:
        listeners = self._listeners[EventType(event_type)]
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: KarmicEvent) -> None:
        """Deliver an event to its listeners. Never raises."""
        # Copy: listeners may unsubscribe while being called
        for listener in list(self._listeners[event.type]):
            try:
                listener(event)
            except Exception:
                logger.exception("Error in karmic event listener for %s", event.type.value)

    async def once(self, event_type: EventKey) -> KarmicEvent:
        """Wait for the next event of a kind."""
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _listener(event: KarmicEvent) -> None:
            if not future.done():
                future.set_result(event)

        unsubscribe = self.on(event_type, _listener)
        try:
            return await future
        finally:
            unsubscribe()

    def listener_count(self, event_type: Optional[EventKey] = None) -> int:
        if event_type is None:
            return sum(len(listeners) for listeners in self._listeners.values())
        return len(self._listeners[EventType(event_type)])

    def clear(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()
