"""
Karmic Seed Store - time-deferred, probabilistic consequences.

Intentional actions plant seeds. Seeds wait, gain or lose potency, and
ripen into manifestations when their conditions line up.
"""

from dharma.karma.core import (
    ActionParams,
    KarmicBalance,
    Manifestation,
    RipeningCondition,
    Seed,
    SeedState,
    StoreStatistics,
)
from dharma.karma.config import (
    StoreConfig,
    get_config,
    set_config,
    reset_config,
    load_config_from_yaml,
)
from dharma.karma.seeds import (
    create_seed,
    wholesome_action,
    unwholesome_action,
    immediate_karma,
    weighty_karma,
)
from dharma.karma.conditions import (
    ConditionRegistry,
    after_time,
    random_chance,
    when_true,
    accumulation_threshold,
    after_similar_ripens,
)
from dharma.karma.events import EventBus, EventType, KarmicEvent
from dharma.karma.scheduling import AsyncioScheduler, ManualScheduler
from dharma.karma.store import KarmicStore
from dharma.karma.persistence import (
    serialize_store,
    deserialize_store,
    save_store,
    load_store,
)

__all__ = [
    # Core data structures
    "ActionParams",
    "KarmicBalance",
    "Manifestation",
    "RipeningCondition",
    "Seed",
    "SeedState",
    "StoreStatistics",
    # Config
    "StoreConfig",
    "get_config",
    "set_config",
    "reset_config",
    "load_config_from_yaml",
    # Seed factory
    "create_seed",
    "wholesome_action",
    "unwholesome_action",
    "immediate_karma",
    "weighty_karma",
    # Conditions
    "ConditionRegistry",
    "after_time",
    "random_chance",
    "when_true",
    "accumulation_threshold",
    "after_similar_ripens",
    # Events
    "EventBus",
    "EventType",
    "KarmicEvent",
    # Scheduling
    "AsyncioScheduler",
    "ManualScheduler",
    # Store
    "KarmicStore",
    # Persistence
    "serialize_store",
    "deserialize_store",
    "save_store",
    "load_store",
]
