"""
Tests for ripening decisions: condition scoring, probability and delays.

See dharma/karma/ripening.py for implementation.
"""

import pytest

from dharma.karma.core import RipeningCondition
from dharma.karma.ripening import (
    compute_delay,
    condition_score,
    evaluate_conditions,
    ripening_probability,
    scaled_age,
)
from tests.helpers import ScriptedRandom, make_seed


def _condition(satisfied: bool, weight: float = 1.0) -> RipeningCondition:
    return RipeningCondition(kind="state", description="flag", weight=weight, check=lambda: satisfied)


def test_condition_score_is_weighted():
    conditions = [_condition(True, 1.0), _condition(False, 0.5)]
    assert condition_score(conditions) == pytest.approx(2 / 3)


def test_condition_score_zero_weight_never_blocks():
    assert condition_score([_condition(False, 0.0)]) == 1.0


def test_each_check_called_once():
    calls = []

    def check():
        calls.append(1)
        return True

    seed = make_seed(potency=100, conditions=[
        RipeningCondition(kind="state", description="a", check=check),
        RipeningCondition(kind="state", description="b", check=check),
    ])

    evaluate_conditions(seed, ScriptedRandom())

    assert len(calls) == 2


def test_probability_without_conditions():
    seed = make_seed(potency=70)
    assert ripening_probability(seed) == pytest.approx(0.7)


def test_probability_with_conditions():
    seed = make_seed(potency=80, conditions=[_condition(True), _condition(False)])
    assert ripening_probability(seed) == pytest.approx(0.4)


def test_evaluate_draws_against_probability():
    seed = make_seed(potency=70)

    assert evaluate_conditions(seed, ScriptedRandom([0.69])) is True
    assert evaluate_conditions(seed, ScriptedRandom([0.7])) is False


def test_failing_condition_at_full_potency_never_ripens():
    seed = make_seed(potency=100, conditions=[_condition(False)])

    for _ in range(10):
        assert evaluate_conditions(seed, ScriptedRandom()) is False


def test_zero_potency_never_ripens():
    seed = make_seed(potency=0)
    assert evaluate_conditions(seed, ScriptedRandom()) is False


# =============================================================================
# DELAYS
# =============================================================================

def test_immediate_delay_is_min_delay():
    seed = make_seed(timing="immediate", min_delay=0.1, max_delay=5.0)

    assert compute_delay(seed, ScriptedRandom(fallback=0.9), 1.0) == pytest.approx(0.1)
    assert compute_delay(seed, ScriptedRandom(fallback=0.9), 2.0) == pytest.approx(0.05)


def test_deferred_delay_is_uniform_in_window():
    seed = make_seed(min_delay=10.0, max_delay=20.0)

    assert compute_delay(seed, ScriptedRandom(fallback=0.5), 1.0) == pytest.approx(15.0)
    assert compute_delay(seed, ScriptedRandom(fallback=0.5), 2.0) == pytest.approx(7.5)


def test_scaled_age():
    seed = make_seed(now=100.0)

    assert scaled_age(seed, 103.0, 1.0) == pytest.approx(3.0)
    assert scaled_age(seed, 103.0, 2.0) == pytest.approx(6.0)
