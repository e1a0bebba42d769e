"""
Ripening conditions: the name -> check registry and ready-made conditions.

Checks are closures and cannot be persisted. A condition that must
survive a save/load carries a `name`; after loading, the store looks the
name up in its ConditionRegistry to get a live check back.
"""

import random
import time
from typing import Callable, Dict, Iterator, Optional

from dharma.karma.core import RipeningCondition
from dharma.karma.events import EventType, SeedRipened


Check = Callable[[], bool]


class ConditionRegistry:
    """
    Explicit name -> check mapping.

    Build one, register checks before evaluation, and hand it to the
    stores that need to rebind restored conditions. Never persisted.
    """

    def __init__(self) -> None:
        self._checks: Dict[str, Check] = {}

    def register(self, name: str, check: Check) -> None:
        """Register (or replace) the check for a name."""
        self._checks[name] = check

    def get(self, name: str) -> Optional[Check]:
        return self._checks.get(name)

    def unregister(self, name: str) -> bool:
        return self._checks.pop(name, None) is not None

    def __contains__(self, name: object) -> bool:
        return name in self._checks

    def __len__(self) -> int:
        return len(self._checks)

    def __iter__(self) -> Iterator[str]:
        return iter(self._checks)


# =============================================================================
# PREDEFINED CONDITIONS
# =============================================================================

def after_time(
    seconds: float,
    clock: Callable[[], float] = time.time,
    name: Optional[str] = None
) -> RipeningCondition:
    """Satisfied once `seconds` have passed since the condition was built."""
    start = clock()
    return RipeningCondition(
        kind="time",
        description=f"{seconds}s have passed",
        weight=1.0,
        check=lambda: clock() - start >= seconds,
        name=name,
    )


def random_chance(
    probability: float,
    rng: Optional[random.Random] = None,
    name: Optional[str] = None
) -> RipeningCondition:
    """Satisfied on each check with the given probability."""
    source = rng or random.Random()
    return RipeningCondition(
        kind="random",
        description=f"{probability * 100:g}% chance",
        weight=0.5,
        check=lambda: source.random() < probability,
        name=name,
    )


def when_true(get_value: Check, description: str, name: Optional[str] = None) -> RipeningCondition:
    """Satisfied while a caller-owned state flag is true."""
    return RipeningCondition(
        kind="state",
        description=description,
        weight=1.0,
        check=get_value,
        name=name,
    )


def accumulation_threshold(
    get_count: Callable[[], float],
    threshold: float,
    description: str,
    name: Optional[str] = None
) -> RipeningCondition:
    """Satisfied once a caller-owned counter reaches the threshold."""
    return RipeningCondition(
        kind="accumulation",
        description=f"{description} reaches {threshold}",
        weight=1.0,
        check=lambda: get_count() >= threshold,
        name=name,
    )


def after_similar_ripens(store, valence: str, name: Optional[str] = None) -> RipeningCondition:
    """
    Satisfied after any seed of the same valence has ripened in `store`.

    Subscribes to the store's ripened events for the store's lifetime.
    """
    triggered = {"value": False}

    def _listener(event: SeedRipened) -> None:
        if event.seed.valence == valence:
            triggered["value"] = True

    store.on(EventType.RIPENED, _listener)

    return RipeningCondition(
        kind="trigger",
        description=f"After {valence} karma ripens",
        weight=0.8,
        check=lambda: triggered["value"],
        name=name,
    )
