"""
Ripening decisions: condition scoring and delay computation.

Ripening is a tendency, not a certainty. Both the no-condition case and
the weighted-condition case end in one uniform draw against a probability.
"""

import random
from typing import Sequence

from dharma.karma.core import RipeningCondition, Seed


def condition_score(conditions: Sequence[RipeningCondition]) -> float:
    """
    Fraction of condition weight currently satisfied.

    Every check is called exactly once. Returns 1.0 when the total
    weight is zero, so weightless conditions never block ripening.

    Args:
        conditions: The seed's ripening conditions

    Returns:
        satisfied_weight / total_weight in [0.0, 1.0]
    """
    total_weight = 0.0
    satisfied_weight = 0.0

    for condition in conditions:
        total_weight += condition.weight
        if condition.check():
            satisfied_weight += condition.weight

    if total_weight <= 0:
        return 1.0
    return satisfied_weight / total_weight


def ripening_probability(seed: Seed) -> float:
    """
    Probability that the seed ripens on this check.

    No conditions: potency / 100.
    With conditions: condition_score * potency / 100.
    """
    potency_factor = seed.potency / 100.0
    if not seed.conditions:
        return potency_factor
    return condition_score(seed.conditions) * potency_factor


def evaluate_conditions(seed: Seed, rng: random.Random) -> bool:
    """
    Decide whether a seed ripens now.

    Args:
        seed: Seed to evaluate
        rng: Random source; inject a seeded one for reproducible runs

    Returns:
        True if the draw falls below the ripening probability
    """
    probability = ripening_probability(seed)
    return rng.random() < probability


def compute_delay(seed: Seed, rng: random.Random, time_scale: float) -> float:
    """
    Wall delay until the next ripening attempt.

    Immediate seeds wait exactly min_delay; every other timing draws a
    fresh uniform delay in [min_delay, max_delay]. The result is divided
    by time_scale, so a scale of 2 halves every wait.

    Args:
        seed: Seed being scheduled
        rng: Random source
        time_scale: Store time scale (already clamped >= 0.1)

    Returns:
        Scaled delay in seconds
    """
    if seed.timing == "immediate":
        base_delay = seed.min_delay
    else:
        base_delay = rng.uniform(seed.min_delay, seed.max_delay)
    return base_delay / time_scale


def scaled_age(seed: Seed, now: float, time_scale: float) -> float:
    """Seed age measured in the same units as min_delay/max_delay."""
    return (now - seed.created_at) * time_scale
