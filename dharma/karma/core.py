"""
Core data structures for the karmic seed store.

A seed is stored potential from an intentional action. It sits in the
store until its conditions line up, then ripens into a Manifestation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional
import time


# =============================================================================
# VOCABULARIES
# =============================================================================

CHANNELS: FrozenSet[str] = frozenset({"bodily", "verbal", "mental"})

VALENCES: FrozenSet[str] = frozenset({"wholesome", "unwholesome", "neutral"})

UNWHOLESOME_ROOTS: FrozenSet[str] = frozenset({"greed", "aversion", "delusion"})
WHOLESOME_ROOTS: FrozenSet[str] = frozenset({"non-greed", "non-aversion", "non-delusion"})
ROOTS: FrozenSet[str] = UNWHOLESOME_ROOTS | WHOLESOME_ROOTS | {"neutral"}

# immediate: soon, deferred: later in this life, then the two far horizons
TIMINGS: FrozenSet[str] = frozenset({"immediate", "deferred", "next-life", "distant-future"})

CONDITION_KINDS: FrozenSet[str] = frozenset({"time", "state", "trigger", "random", "accumulation"})

POLARITY_BY_VALENCE = {
    "wholesome": "pleasant",
    "unwholesome": "unpleasant",
    "neutral": "neutral",
}


class SeedState(Enum):
    """
    Lifecycle states of a seed.

    dormant -> active -> ripening -> (active | ripened)
    Any non-terminal state may jump to purified or exhausted.
    """
    DORMANT = "dormant"      # Freshly built, not yet in a store
    ACTIVE = "active"        # Awaiting ripening
    RIPENING = "ripening"    # Transient, inside a single ripening step
    RIPENED = "ripened"      # All ripenings spent
    EXHAUSTED = "exhausted"  # Expired or spent without further fruit
    PURIFIED = "purified"    # Neutralized by purification or weakening


TERMINAL_STATES: FrozenSet[SeedState] = frozenset({
    SeedState.RIPENED,
    SeedState.EXHAUSTED,
    SeedState.PURIFIED,
})


def _never() -> bool:
    return False


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class RipeningCondition:
    """
    One weighted requirement for a seed to ripen.

    `check` is executable and never persisted; `name` is the key used to
    look a check back up in a ConditionRegistry after a restore.
    """
    kind: str                                # From CONDITION_KINDS
    description: str
    weight: float = 1.0                      # 0.0–1.0
    check: Callable[[], bool] = field(default=_never, compare=False, repr=False)
    name: Optional[str] = None

    def __post_init__(self) -> None:
        self.weight = max(0.0, min(1.0, float(self.weight)))


@dataclass
class ActionParams:
    """
    Input to the seed factory: what was done, how, and with what intent.

    None for min_delay/max_delay means "use the store's defaults".
    """
    valence: str
    description: str
    channel: str = "mental"
    intention_strength: int = 5             # 0–10
    root: str = "neutral"
    timing: str = "deferred"
    min_delay: Optional[float] = None       # seconds
    max_delay: Optional[float] = None       # seconds
    conditions: List[RipeningCondition] = field(default_factory=list)
    potency: Optional[float] = None         # overrides intention_strength * 10
    max_ripenings: int = 1
    tags: List[str] = field(default_factory=list)
    group_id: Optional[str] = None


@dataclass
class Seed:
    """
    Stored potential of a single action.

    Owned by exactly one KarmicStore; mutate only through the store.
    """
    id: str
    created_at: float

    # Action
    channel: str
    valence: str
    description: str

    # Intention
    intention_strength: int
    root: str

    # Potency
    potency: float                          # 0–100, changes over life
    original_potency: float
    strength: str                           # weak | moderate | strong | weighty

    # Ripening configuration
    timing: str
    min_delay: float
    max_delay: float
    conditions: List[RipeningCondition] = field(default_factory=list)

    # Lifecycle
    state: SeedState = SeedState.DORMANT
    ripening_progress: int = 0              # 0, 50 mid-ripening, 100 after
    times_ripened: int = 0
    max_ripenings: int = 1

    # Grouping
    tags: List[str] = field(default_factory=list)
    group_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def ripenings_left(self) -> int:
        return max(0, self.max_ripenings - self.times_ripened)


@dataclass
class Manifestation:
    """
    The experienced result (vipaka) of one ripening.
    """
    id: str
    seed_id: str
    polarity: str                           # pleasant | unpleasant | neutral
    intensity: int                          # 1–10
    description: str
    is_partial: bool                        # Source seed may ripen again
    timestamp: float = field(default_factory=time.time)


@dataclass
class KarmicBalance:
    """Potency totals of unresolved seeds, by valence."""
    wholesome: float
    unwholesome: float
    neutral: float
    balance: float
    total_potency: float


@dataclass
class StoreStatistics:
    """Snapshot counts over every seed in a store, terminal ones included."""
    total_seeds: int
    by_state: Dict[str, int]
    by_valence: Dict[str, int]
    by_channel: Dict[str, int]
    average_potency: float
    oldest_seed: Optional[float]
    newest_seed: Optional[float]
