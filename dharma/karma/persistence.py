"""
Persistence layer for karmic stores.

A saved store is plain JSON: the seeds, the store config, and a
timestamp. Condition checks are code and are not saved; each condition
keeps its kind, name, description and weight, and comes back with a
placeholder check that is never satisfied until the store rebinds it.
"""

import json
import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dharma.karma.conditions import ConditionRegistry
from dharma.karma.config import StoreConfig
from dharma.karma.core import RipeningCondition, Seed, SeedState
from dharma.karma.scheduling import Scheduler
from dharma.karma.store import KarmicStore

logger = logging.getLogger(__name__)


# =============================================================================
# JSON ENCODING - Conditions and seeds
# =============================================================================

def _encode_condition(condition: RipeningCondition) -> dict:
    """Drop the check; keep what can be rebound later."""
    record = {
        "type": condition.kind,
        "description": condition.description,
        "weight": condition.weight,
    }
    if condition.name is not None:
        record["name"] = condition.name
    return record


def _decode_condition(data: dict) -> RipeningCondition:
    """Placeholder check: never satisfied until rebound."""
    return RipeningCondition(
        kind=data["type"],
        description=data.get("description", ""),
        weight=data.get("weight", 1.0),
        name=data.get("name"),
    )


def _encode_seed(seed: Seed) -> dict:
    return {
        "id": seed.id,
        "created_at": seed.created_at,
        "channel": seed.channel,
        "valence": seed.valence,
        "description": seed.description,
        "intention_strength": seed.intention_strength,
        "root": seed.root,
        "potency": seed.potency,
        "original_potency": seed.original_potency,
        "strength": seed.strength,
        "timing": seed.timing,
        "min_delay": seed.min_delay,
        "max_delay": seed.max_delay,
        "conditions": [_encode_condition(c) for c in seed.conditions],
        "state": seed.state.value,  # Enum -> str for JSON
        "ripening_progress": seed.ripening_progress,
        "times_ripened": seed.times_ripened,
        "max_ripenings": seed.max_ripenings,
        "tags": list(seed.tags),
        "group_id": seed.group_id,
    }


def _decode_seed(data: dict) -> Seed:
    """
    Reconstruct a Seed from its JSON record.

    Raises:
        ValueError: If a required field is missing or the state is unknown
    """
    try:
        return Seed(
            id=data["id"],
            created_at=data["created_at"],
            channel=data["channel"],
            valence=data["valence"],
            description=data["description"],
            intention_strength=data["intention_strength"],
            root=data["root"],
            potency=data["potency"],
            original_potency=data["original_potency"],
            strength=data["strength"],
            timing=data["timing"],
            min_delay=data["min_delay"],
            max_delay=data["max_delay"],
            conditions=[_decode_condition(c) for c in data.get("conditions", [])],
            state=SeedState(data["state"]),
            ripening_progress=data.get("ripening_progress", 0),
            times_ripened=data.get("times_ripened", 0),
            max_ripenings=data.get("max_ripenings", 1),
            tags=list(data.get("tags", [])),
            group_id=data.get("group_id"),
        )
    except KeyError as e:
        raise ValueError(f"Seed record missing field: {e.args[0]}") from e


# =============================================================================
# STORE SERIALIZATION
# =============================================================================

def serialize_store(store: KarmicStore) -> dict:
    """
    Serialize a store to a JSON-compatible dict.

    Includes every seed (terminal ones too) and the store config.
    Listeners, timers and condition checks are not included.

    Args:
        store: Store to serialize

    Returns:
        {"seeds": [...], "config": {...}, "saved_at": float}
    """
    return {
        "seeds": [_encode_seed(seed) for seed in store.get_seeds()],
        "config": store.config.to_dict(),
        "saved_at": time.time(),  # Metadata for debugging
    }


def deserialize_store(
    data: dict,
    registry: Optional[ConditionRegistry] = None,
    scheduler: Optional[Scheduler] = None,
) -> KarmicStore:
    """
    Build a new store from serialized data.

    The restored store keeps the saved config but never sweeps on its
    own and arms no timers: call rebind_conditions() and then
    start_ripening_check() to bring it back to life.

    Args:
        data: Dict from serialize_store()
        registry: Name -> check registry for rebind_conditions()
        scheduler: Scheduler for the new store

    Returns:
        Restored KarmicStore

    Raises:
        ValueError: If the data or a seed record is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Serialized store must be a dictionary")

    config = StoreConfig.from_dict(data.get("config", {}))
    store = KarmicStore(
        config=replace(config, enable_auto_ripening=False),
        scheduler=scheduler,
        registry=registry,
    )
    # Keep the saved settings; only the sweep stays off
    store.config = config

    for record in data.get("seeds", []):
        store.restore_seed(_decode_seed(record))

    logger.debug("Restored store with %d seeds", len(store))
    return store


# =============================================================================
# FILE I/O
# =============================================================================

def save_store(store: KarmicStore, path: Union[str, Path]) -> None:
    """
    Save a store to a JSON file.

    Creates the parent directory if it doesn't exist.

    Args:
        store: Store to save
        path: Destination file
    """
    state_file = Path(path)
    state_file.parent.mkdir(parents=True, exist_ok=True)
    state_data = serialize_store(store)

    # Write atomically (write to temp, then rename)
    temp_file = state_file.with_suffix(state_file.suffix + ".tmp")
    with open(temp_file, 'w') as f:
        json.dump(state_data, f, indent=2)

    temp_file.replace(state_file)


def load_store(
    path: Union[str, Path],
    registry: Optional[ConditionRegistry] = None,
    scheduler: Optional[Scheduler] = None,
) -> Optional[KarmicStore]:
    """
    Load a store from a JSON file if it exists.

    Args:
        path: File written by save_store()
        registry: Name -> check registry for rebind_conditions()
        scheduler: Scheduler for the new store

    Returns:
        Restored KarmicStore, or None if no file found

    Raises:
        ValueError: If the file is corrupted
    """
    state_file = Path(path)
    if not state_file.exists():
        return None

    with open(state_file, 'r') as f:
        try:
            state_data: Dict[str, Any] = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupted store file {state_file}: {e}") from e

    return deserialize_store(state_data, registry=registry, scheduler=scheduler)
