#!/usr/bin/env python3
"""Karma sim: one practitioner, one store, a few weeks of simulated days.

This is a lightweight simulation that demonstrates:
- planting wholesome/unwholesome seeds from a simple daily policy
- practice (strengthening good seeds, confessing and weakening bad ones)
- timers and the periodic sweep on a simulated clock
- ripenings as they happen, and the karmic balance at the end

Run:
  python scripts/karma_sim.py

Notes:
- Time runs on a ManualScheduler; one day is one simulated minute.
- The same seed always produces the same transcript.
"""

import random
import sys
from dataclasses import dataclass
from pathlib import Path

# Ensure repo root is on sys.path when running as a script
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dharma.karma.conditions import accumulation_threshold, after_similar_ripens
from dharma.karma.config import StoreConfig
from dharma.karma.core import ActionParams, SeedState
from dharma.karma.events import EventType, SeedRipened
from dharma.karma.scheduling import ManualScheduler
from dharma.karma.seeds import immediate_karma, unwholesome_action, weighty_karma, wholesome_action
from dharma.karma.store import KarmicStore


DAY = 60.0


# ----------------------------
# Model
# ----------------------------

@dataclass
class Practitioner:
    name: str
    # Inclinations (0-10)
    generosity: int
    temper: int
    diligence: int
    merit: int = 0


GOOD_DEEDS = [
    ("bodily", "gave food to a monk"),
    ("verbal", "spoke kindly to a rival"),
    ("mental", "sat in meditation"),
    ("bodily", "swept the temple yard"),
]

BAD_DEEDS = [
    ("verbal", "told a convenient lie", "greed"),
    ("bodily", "kicked the dog", "aversion"),
    ("mental", "nursed a grudge", "aversion"),
    ("verbal", "gossiped about a neighbour", "delusion"),
]


def roll(stat: int, rng: random.Random) -> bool:
    """Stat check: stat in 0-10 against a d10."""
    return rng.randint(1, 10) <= stat


def choose_action(person: Practitioner, rng: random.Random) -> ActionParams:
    if roll(person.generosity, rng):
        channel, description = rng.choice(GOOD_DEEDS)
        params = wholesome_action(description, intensity=rng.randint(3, 9), channel=channel)
    else:
        channel, description, root = rng.choice(BAD_DEEDS)
        params = unwholesome_action(description, intensity=rng.randint(2, 8), root=root, channel=channel)

    # Rare acts carry more weight
    roll_value = rng.random()
    if roll_value < 0.08:
        params = weighty_karma(params)
    elif roll_value < 0.25:
        params = immediate_karma(params)
    return params


def print_ripening(event: SeedRipened, day: int) -> None:
    m = event.manifestation
    marker = "partial" if m.is_partial else "final"
    print(f"  RIPENED day {day}: {m.polarity:<10} intensity={m.intensity:<2} ({marker}) <- {event.seed.description}")


def simulate(seed: int = 42, steps: int = 21) -> int:
    rng = random.Random(seed)
    scheduler = ManualScheduler()

    config = StoreConfig(
        max_seeds=40,
        default_min_delay=DAY,
        default_max_delay=7 * DAY,
        ripening_check_interval=DAY / 2,
        enable_auto_ripening=True,
    )
    store = KarmicStore(config=config, scheduler=scheduler, rng=random.Random(seed + 1))

    person = Practitioner(name="Tissa", generosity=6, temper=5, diligence=4)

    print("=" * 72)
    print("KARMA SIM: 1 practitioner / 1 store / simulated days")
    print(f"seed={seed} steps={steps}")
    print("=" * 72)

    day = {"current": 0}
    store.on(EventType.RIPENED, lambda e: print_ripening(e, day["current"]))
    store.on(EventType.EXHAUSTED, lambda e: print(
        f"  EXHAUSTED day {day['current']}: {e.seed.description} ({e.reason})"
    ))
    store.on(EventType.OVERFLOW, lambda e: print(
        f"  OVERFLOW: store full at {e.max_size}, dropped '{e.evicted.description if e.evicted else None}'"
    ))

    # A long-term vow that only bears fruit once enough merit is made
    store.plant(ActionParams(
        valence="wholesome",
        description="vowed to keep the precepts",
        intention_strength=8,
        min_delay=3 * DAY,
        max_delay=steps * DAY * 2,
        conditions=[
            accumulation_threshold(lambda: person.merit, 5, "merit"),
            after_similar_ripens(store, "wholesome"),
        ],
        tags=["vow"],
    ))

    for step in range(1, steps + 1):
        day["current"] = step
        print(f"\n--- DAY {step} ---")

        for _ in range(rng.randint(1, 3)):
            params = choose_action(person, rng)
            planted = store.plant(params)
            print(f"ACTION: {planted.valence:<11} {planted.channel:<6} {planted.description} "
                  f"(potency {planted.potency:.0f}, {planted.timing})")

        # Practice: strengthen a good seed, confess a bad one
        if roll(person.diligence, rng):
            active_good = store.get_seeds(valence="wholesome", state=SeedState.ACTIVE)
            if active_good:
                target = rng.choice(active_good)
                store.strengthen(target.id, 15)
                person.merit += 1
                print(f"PRACTICE: repeated '{target.description}' (merit {person.merit})")

        if roll(10 - person.temper, rng):
            active_bad = store.get_seeds(valence="unwholesome", state=SeedState.ACTIVE)
            if active_bad:
                target = max(active_bad, key=lambda s: s.potency)
                store.weaken(target.id, 25)
                print(f"PRACTICE: confessed '{target.description}'")

        # A community day every week
        if step % 7 == 0:
            store.create_collective(["Tissa", "Mitta", "Sona"], wholesome_action("rebuilt the well", intensity=7))
            print("COLLECTIVE: the village rebuilt the well")

        scheduler.advance(DAY)

    balance = store.get_karmic_balance()
    stats = store.get_statistics()

    print("\n" + "=" * 72)
    print(f"BALANCE  wholesome={balance.wholesome:.1f}  unwholesome={balance.unwholesome:.1f}  "
          f"net={balance.balance:+.1f}")
    print("STATES   " + "  ".join(f"{state}={count}" for state, count in stats.by_state.items()))
    print(f"SEEDS    total={stats.total_seeds}  average potency={stats.average_potency:.1f}")
    print("=" * 72)

    store.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(simulate())
