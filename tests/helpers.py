"""
Test helpers for deterministic store testing.

Provides utilities to:
1. Script the random draws a store makes
2. Build a store on a simulated clock
3. Record every event a store emits
"""

import random
from typing import List, Optional, Sequence, Tuple

from dharma.karma.config import StoreConfig
from dharma.karma.core import ActionParams, Seed
from dharma.karma.events import KarmicEvent
from dharma.karma.scheduling import ManualScheduler
from dharma.karma.seeds import create_seed
from dharma.karma.store import KarmicStore


# =============================================================================
# RANDOMNESS
# =============================================================================

class ScriptedRandom(random.Random):
    """
    Random source that returns queued values from random(), then a fallback.

    uniform(a, b) is built on random(), so it follows the script too:
    a fallback of 0.0 makes every delay equal min_delay and every
    ripening draw succeed whenever the probability is above zero.
    """

    def __init__(self, values: Sequence[float] = (), fallback: float = 0.0):
        super().__init__(0)
        self._values = list(values)
        self.fallback = fallback

    def random(self) -> float:
        if self._values:
            return self._values.pop(0)
        return self.fallback


# =============================================================================
# STORE BUILDERS
# =============================================================================

def make_store(
    rng: Optional[random.Random] = None,
    scheduler: Optional[ManualScheduler] = None,
    **overrides
) -> Tuple[KarmicStore, ManualScheduler]:
    """
    Build a store on a ManualScheduler.

    Automatic sweeping is off unless overridden, so only per-seed timers
    fire on advance().
    """
    scheduler = scheduler or ManualScheduler()
    settings = {"enable_auto_ripening": False}
    settings.update(overrides)
    store = KarmicStore(
        config=StoreConfig(**settings),
        scheduler=scheduler,
        rng=rng or ScriptedRandom(),
    )
    return store, scheduler


def make_seed(valence: str = "wholesome", now: float = 0.0, **params) -> Seed:
    """Build a dormant seed outside any store."""
    params.setdefault("description", f"test {valence} action")
    return create_seed(ActionParams(valence=valence, **params), now=now)


def record_events(store: KarmicStore) -> List[KarmicEvent]:
    """Subscribe to every event kind; returns the live list of events."""
    events: List[KarmicEvent] = []
    store.on_any(events.append)
    return events


def event_types(events: List[KarmicEvent]) -> List[str]:
    return [event.type.value for event in events]
