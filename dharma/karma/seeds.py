"""
Seed factory: ActionParams -> Seed.

Pure construction. The store decides when a seed becomes active.
"""

import time
import uuid
from dataclasses import replace
from typing import Optional

from dharma.karma.core import (
    CHANNELS,
    ROOTS,
    TIMINGS,
    VALENCES,
    ActionParams,
    Seed,
    SeedState,
)


# Factory defaults, used when params and store both leave a value unset
DEFAULT_MIN_DELAY = 1.0
DEFAULT_MAX_DELAY = 60.0

# Lower bound of each strength band, strongest first
STRENGTH_THRESHOLDS = (
    (80.0, "weighty"),
    (50.0, "strong"),
    (25.0, "moderate"),
)


def generate_id() -> str:
    """Opaque unique id for seeds, manifestations and collectives."""
    return uuid.uuid4().hex


def strength_category(potency: float) -> str:
    """
    Map potency to its strength band.

    >>> strength_category(80)
    'weighty'
    >>> strength_category(24.9)
    'weak'
    """
    for threshold, label in STRENGTH_THRESHOLDS:
        if potency >= threshold:
            return label
    return "weak"


def _check_vocabulary(params: ActionParams) -> None:
    if params.channel not in CHANNELS:
        raise ValueError(f"Unknown channel '{params.channel}', expected one of {sorted(CHANNELS)}")
    if params.valence not in VALENCES:
        raise ValueError(f"Unknown valence '{params.valence}', expected one of {sorted(VALENCES)}")
    if params.root not in ROOTS:
        raise ValueError(f"Unknown root '{params.root}', expected one of {sorted(ROOTS)}")
    if params.timing not in TIMINGS:
        raise ValueError(f"Unknown timing '{params.timing}', expected one of {sorted(TIMINGS)}")


def create_seed(params: ActionParams, now: Optional[float] = None) -> Seed:
    """
    Build a dormant seed from action parameters.

    potency = params.potency if given, else intention_strength * 10,
    clamped to 0–100. Strength band is derived from that potency.

    Args:
        params: What was done and with what intent
        now: Creation timestamp. If None, uses current time.

    Returns:
        A fresh Seed in state DORMANT

    Raises:
        ValueError: If a vocabulary value is unknown
    """
    _check_vocabulary(params)

    if now is None:
        now = time.time()

    intention = max(0, min(10, int(params.intention_strength)))
    raw_potency = params.potency if params.potency is not None else intention * 10
    potency = max(0.0, min(100.0, float(raw_potency)))

    min_delay = params.min_delay if params.min_delay is not None else DEFAULT_MIN_DELAY
    max_delay = params.max_delay if params.max_delay is not None else DEFAULT_MAX_DELAY
    min_delay = max(0.0, float(min_delay))
    max_delay = max(min_delay, float(max_delay))

    return Seed(
        id=generate_id(),
        created_at=now,
        channel=params.channel,
        valence=params.valence,
        description=params.description,
        intention_strength=intention,
        root=params.root,
        potency=potency,
        original_potency=potency,
        strength=strength_category(potency),
        timing=params.timing,
        min_delay=min_delay,
        max_delay=max_delay,
        conditions=list(params.conditions),
        state=SeedState.DORMANT,
        ripening_progress=0,
        times_ripened=0,
        max_ripenings=max(1, int(params.max_ripenings)),
        tags=list(params.tags),
        group_id=params.group_id,
    )


# =============================================================================
# CONVENIENCE BUILDERS
# =============================================================================

def wholesome_action(description: str, intensity: int = 5, channel: str = "mental") -> ActionParams:
    """A wholesome action rooted in non-greed."""
    return ActionParams(
        valence="wholesome",
        description=description,
        channel=channel,
        intention_strength=intensity,
        root="non-greed",
    )


def unwholesome_action(
    description: str,
    intensity: int = 5,
    root: str = "greed",
    channel: str = "mental"
) -> ActionParams:
    """An unwholesome action; root defaults to greed."""
    return ActionParams(
        valence="unwholesome",
        description=description,
        channel=channel,
        intention_strength=intensity,
        root=root,
    )


def immediate_karma(params: ActionParams) -> ActionParams:
    """Same action, but ripening within a few seconds."""
    return replace(params, timing="immediate", min_delay=0.1, max_delay=5.0)


def weighty_karma(params: ActionParams) -> ActionParams:
    """Same action at full force; weighty seeds bear fruit three times."""
    return replace(params, potency=100.0, intention_strength=10, max_ripenings=3)
