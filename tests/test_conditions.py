"""
Tests for the condition registry and predefined conditions.

See dharma/karma/conditions.py for implementation.
"""

from dharma.karma.conditions import (
    ConditionRegistry,
    accumulation_threshold,
    after_similar_ripens,
    after_time,
    random_chance,
    when_true,
)
from dharma.karma.core import ActionParams, RipeningCondition
from tests.helpers import ScriptedRandom, make_store


def test_registry_register_and_lookup():
    registry = ConditionRegistry()
    check = lambda: True  # noqa: E731

    registry.register("harvest", check)

    assert "harvest" in registry
    assert registry.get("harvest") is check
    assert registry.get("missing") is None
    assert len(registry) == 1
    assert list(registry) == ["harvest"]


def test_registry_unregister():
    registry = ConditionRegistry()
    registry.register("harvest", lambda: True)

    assert registry.unregister("harvest") is True
    assert registry.unregister("harvest") is False
    assert "harvest" not in registry


def test_condition_weight_is_clamped():
    assert RipeningCondition(kind="state", description="x", weight=1.5).weight == 1.0
    assert RipeningCondition(kind="state", description="x", weight=-1).weight == 0.0


def test_default_check_is_never_satisfied():
    assert RipeningCondition(kind="state", description="x").check() is False


def test_after_time():
    clock = {"now": 100.0}
    condition = after_time(5.0, clock=lambda: clock["now"], name="cooled")

    assert condition.kind == "time"
    assert condition.weight == 1.0
    assert condition.name == "cooled"
    assert condition.check() is False

    clock["now"] = 105.0
    assert condition.check() is True


def test_random_chance():
    condition = random_chance(0.5, rng=ScriptedRandom([0.2, 0.9]))

    assert condition.kind == "random"
    assert condition.weight == 0.5
    assert condition.description == "50% chance"
    assert condition.check() is True
    assert condition.check() is False


def test_when_true_follows_flag():
    state = {"at_temple": False}
    condition = when_true(lambda: state["at_temple"], "Visiting the temple")

    assert condition.kind == "state"
    assert condition.description == "Visiting the temple"
    assert condition.check() is False

    state["at_temple"] = True
    assert condition.check() is True


def test_accumulation_threshold():
    counter = {"merit": 2}
    condition = accumulation_threshold(lambda: counter["merit"], 3, "merit")

    assert condition.kind == "accumulation"
    assert condition.description == "merit reaches 3"
    assert condition.check() is False

    counter["merit"] = 3
    assert condition.check() is True


def test_after_similar_ripens():
    store, _ = make_store()
    condition = after_similar_ripens(store, "wholesome")

    assert condition.kind == "trigger"
    assert condition.weight == 0.8
    assert condition.check() is False

    other = store.plant(ActionParams(valence="unwholesome", description="theft"))
    store.force_ripen(other.id)
    assert condition.check() is False

    similar = store.plant(ActionParams(valence="wholesome", description="gift"))
    store.force_ripen(similar.id)
    assert condition.check() is True
