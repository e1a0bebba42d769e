"""
KarmicStore: the storehouse of seeds awaiting ripening.

The store is the only writer of seed state. Every mutation (plant,
strengthen, weaken, purify, ripen, expire, evict) goes through it and is
announced on its EventBus.

Ripening runs along two paths:
1. Per-seed timers armed on the store's Scheduler
2. A periodic sweep (process_queue) for seeds whose timers never fired

Single-threaded: every call and every timer callback runs to completion.
"""

import asyncio
import logging
import math
import random
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Union

from dharma.karma.arena import SeedArena
from dharma.karma.conditions import Check, ConditionRegistry
from dharma.karma.config import MIN_TIME_SCALE, StoreConfig, get_config
from dharma.karma.core import (
    POLARITY_BY_VALENCE,
    ActionParams,
    KarmicBalance,
    Manifestation,
    Seed,
    SeedState,
    StoreStatistics,
)
from dharma.karma.events import (
    CollectiveFormed,
    EventBus,
    EventKey,
    KarmicEvent,
    Listener,
    SeedExhausted,
    SeedPlanted,
    SeedPurified,
    SeedRipened,
    SeedRipening,
    SeedStrengthened,
    SeedWeakened,
    StoreOverflow,
)
from dharma.karma.ripening import compute_delay, evaluate_conditions, scaled_age
from dharma.karma.scheduling import AsyncioScheduler, Scheduler, TimerHandle
from dharma.karma.seeds import create_seed, generate_id

logger = logging.getLogger(__name__)

# Absorbs float error between a timer's due time and the seed's age
_AGE_TOLERANCE = 1e-9


def _round_half_up(value: float) -> int:
    """Round halves up: 2.5 -> 3, 4.5 -> 5."""
    return int(math.floor(value + 0.5))


class KarmicStore:
    """
    Storehouse of karmic seeds.

    Args:
        config: Store settings (default: the active config from get_config())
        scheduler: Clock and timer source (default: AsyncioScheduler)
        rng: Random source for delays and ripening draws
        registry: Name -> check registry used by rebind_conditions()
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        registry: Optional[ConditionRegistry] = None,
    ):
        # Own copy: set_time_scale() must not leak into the shared config
        self.config = replace(config or get_config())
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng or random.Random()
        self.registry = registry if registry is not None else ConditionRegistry()
        self.events = EventBus()

        self._seeds = SeedArena()
        self._timers: Dict[str, TimerHandle] = {}
        self._sweeping = False
        self._sweep_handle: Optional[TimerHandle] = None

        if self.config.enable_auto_ripening:
            self.start_ripening_check()

    # =========================================================================
    # SEED MANAGEMENT
    # =========================================================================

    def plant(self, params: ActionParams) -> Seed:
        """
        Plant a seed for an intentional action.

        At capacity, one seed is evicted first (spent seeds before live
        ones). Planting never fails for lack of room.

        Args:
            params: The action

        Returns:
            The new, active seed
        """
        if len(self._seeds) >= self.config.max_seeds:
            self._evict_one()

        params = replace(
            params,
            min_delay=params.min_delay if params.min_delay is not None else self.config.default_min_delay,
            max_delay=params.max_delay if params.max_delay is not None else self.config.default_max_delay,
        )
        seed = create_seed(params, now=self.scheduler.now())
        seed.state = SeedState.ACTIVE
        self._seeds.add(seed)

        logger.debug("Planted %s seed %s (potency %.1f)", seed.valence, seed.id, seed.potency)
        self._emit(SeedPlanted(timestamp=self.scheduler.now(), seed=seed))

        self._schedule_ripening(seed)
        return seed

    def strengthen(self, seed_id: str, amount: float = 10) -> bool:
        """Repeat the action: raise potency (capped at 100)."""
        seed = self._seeds.get(seed_id)
        if seed is None or seed.is_terminal:
            return False

        seed.potency = max(0.0, min(100.0, seed.potency + amount))
        self._emit(SeedStrengthened(
            timestamp=self.scheduler.now(),
            seed=seed,
            amount_added=amount,
            new_potency=seed.potency,
        ))

        # A negative amount is a counter-action; at zero it purifies like weaken()
        if amount < 0 and seed.potency == 0 and not seed.is_terminal:
            self._purify_spent(seed)
        return True

    def weaken(self, seed_id: str, amount: float = 10) -> bool:
        """
        Counter-action, regret or confession: lower potency.

        A seed weakened to zero is purified.
        """
        seed = self._seeds.get(seed_id)
        if seed is None or seed.is_terminal:
            return False

        seed.potency = max(0.0, min(100.0, seed.potency - amount))
        self._emit(SeedWeakened(
            timestamp=self.scheduler.now(),
            seed=seed,
            amount_reduced=amount,
            new_potency=seed.potency,
        ))

        if seed.potency == 0 and not seed.is_terminal:
            self._purify_spent(seed)

        return True

    def _purify_spent(self, seed: Seed) -> None:
        seed.state = SeedState.PURIFIED
        self._cancel_timer(seed.id)
        self._emit(SeedPurified(timestamp=self.scheduler.now(), seed=seed, reason="weakened"))

    def purify(self, seed_id: str) -> bool:
        """Neutralize a seed completely. It will never ripen."""
        seed = self._seeds.get(seed_id)
        if seed is None or seed.is_terminal:
            return False

        seed.state = SeedState.PURIFIED
        seed.potency = 0.0
        self._cancel_timer(seed.id)

        logger.debug("Purified seed %s", seed.id)
        self._emit(SeedPurified(timestamp=self.scheduler.now(), seed=seed))
        return True

    def get_seed(self, seed_id: str) -> Optional[Seed]:
        return self._seeds.get(seed_id)

    def get_seeds(
        self,
        valence: Optional[str] = None,
        state: Optional[Union[SeedState, str]] = None,
        channel: Optional[str] = None,
    ) -> List[Seed]:
        """All seeds matching every given filter."""
        wanted_state = SeedState(state) if state is not None else None
        return [
            seed for seed in self._seeds
            if (valence is None or seed.valence == valence)
            and (wanted_state is None or seed.state is wanted_state)
            and (channel is None or seed.channel == channel)
        ]

    def get_seeds_by_tag(self, tag: str) -> List[Seed]:
        return [seed for seed in self._seeds if tag in seed.tags]

    def restore_seed(self, seed: Seed) -> None:
        """
        Insert a seed as-is: no events, no timer.

        Used when rebuilding a store from saved data.
        """
        self._seeds.add(seed)

    def __len__(self) -> int:
        return len(self._seeds)

    def __contains__(self, seed_id: object) -> bool:
        return seed_id in self._seeds

    # =========================================================================
    # RIPENING
    # =========================================================================

    def attempt_ripening(self, seed_id: str) -> Optional[Manifestation]:
        """
        Try to ripen a seed now.

        Returns None if the seed is unknown, not active, or younger than
        its min_delay. A failed condition check re-arms the seed's timer.
        """
        seed = self._seeds.get(seed_id)
        if seed is None or seed.state is not SeedState.ACTIVE:
            return None

        age = scaled_age(seed, self.scheduler.now(), self.config.time_scale)
        if age + _AGE_TOLERANCE < seed.min_delay:
            return None

        if not evaluate_conditions(seed, self.rng):
            self._schedule_ripening(seed, retry=True)
            return None

        return self._ripen(seed)

    def force_ripen(self, seed_id: str) -> Optional[Manifestation]:
        """Ripen regardless of age and conditions. Spent seeds still refuse."""
        seed = self._seeds.get(seed_id)
        if seed is None or seed.is_terminal or seed.state is SeedState.RIPENING:
            return None

        seed.state = SeedState.ACTIVE
        return self._ripen(seed)

    def process_queue(self) -> List[Manifestation]:
        """
        Sweep every active seed.

        Seeds inside their [min_delay, max_delay] window get a ripening
        attempt; seeds past max_delay expire.

        Returns:
            Manifestations produced by this sweep
        """
        results: List[Manifestation] = []
        now = self.scheduler.now()

        for seed in self._seeds.snapshot():
            if seed.state is not SeedState.ACTIVE or seed.id not in self._seeds:
                continue

            age = scaled_age(seed, now, self.config.time_scale)
            if age > seed.max_delay:
                self._exhaust(seed, reason="expired")
            elif age + _AGE_TOLERANCE >= seed.min_delay:
                manifestation = self.attempt_ripening(seed.id)
                if manifestation is not None:
                    results.append(manifestation)

        return results

    def _ripen(self, seed: Seed) -> Optional[Manifestation]:
        """Shared ripening step for attempt, force and sweep."""
        now = self.scheduler.now()
        self._cancel_timer(seed.id)

        seed.state = SeedState.RIPENING
        seed.ripening_progress = 50
        self._emit(SeedRipening(timestamp=now, seed=seed))

        # A ripening listener may have purified the seed
        if seed.state is not SeedState.RIPENING:
            return None

        ripenings_remain = seed.times_ripened + 1 < seed.max_ripenings
        next_potency = seed.potency
        if ripenings_remain:
            next_potency = max(0.0, seed.potency - seed.original_potency / seed.max_ripenings)
        may_ripen_again = ripenings_remain and next_potency > 0

        manifestation = self._manifest(seed, now, may_ripen_again)

        seed.times_ripened += 1
        seed.ripening_progress = 100

        if not ripenings_remain:
            seed.state = SeedState.RIPENED
            logger.debug("Seed %s fully ripened", seed.id)
            self._emit(SeedRipened(timestamp=now, seed=seed, manifestation=manifestation))
            return manifestation

        # Partial ripening: the seed spends down its potential
        seed.potency = next_potency
        if not may_ripen_again:
            self._emit(SeedRipened(timestamp=now, seed=seed, manifestation=manifestation))
            self._exhaust(seed, reason="spent")
            return manifestation

        seed.state = SeedState.ACTIVE
        self._emit(SeedRipened(timestamp=now, seed=seed, manifestation=manifestation))
        if seed.state is SeedState.ACTIVE:
            self._schedule_ripening(seed)
        return manifestation

    def _manifest(self, seed: Seed, now: float, may_ripen_again: bool) -> Manifestation:
        intensity_ratio = seed.potency / 100.0
        return Manifestation(
            id=generate_id(),
            seed_id=seed.id,
            timestamp=now,
            polarity=POLARITY_BY_VALENCE.get(seed.valence, "neutral"),
            intensity=max(1, _round_half_up(seed.intention_strength * intensity_ratio)),
            description=f"Result of {seed.valence} {seed.channel} karma: {seed.description}",
            is_partial=may_ripen_again,
        )

    def _exhaust(self, seed: Seed, reason: str) -> None:
        seed.state = SeedState.EXHAUSTED
        self._cancel_timer(seed.id)
        logger.debug("Seed %s exhausted (%s)", seed.id, reason)
        self._emit(SeedExhausted(timestamp=self.scheduler.now(), seed=seed, reason=reason))

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def _schedule_ripening(self, seed: Seed, retry: bool = False) -> None:
        """
        Arm (or re-arm) the seed's timer with a fresh delay.

        A retry after a failed check waits at least one sweep interval, so
        a zero-delay seed whose conditions keep failing cannot spin.
        """
        self._cancel_timer(seed.id)

        # A store built outside a running loop arms its sweep on first use
        if self._sweeping and self._sweep_handle is None:
            self._arm_sweep()

        seed_id = seed.id
        delay = compute_delay(seed, self.rng, self.config.time_scale)
        if retry:
            delay = max(delay, self.config.ripening_check_interval)
        handle = self.scheduler.after(delay, lambda: self._on_timer(seed_id))
        if handle is not None:
            self._timers[seed_id] = handle

    def _on_timer(self, seed_id: str) -> None:
        self._timers.pop(seed_id, None)
        self.attempt_ripening(seed_id)

        # Fired ahead of the store clock: the seed is still too young
        seed = self._seeds.get(seed_id)
        if seed is not None and seed.state is SeedState.ACTIVE and seed_id not in self._timers:
            self._schedule_ripening(seed)

    def _cancel_timer(self, seed_id: str) -> None:
        handle = self._timers.pop(seed_id, None)
        if handle is not None:
            handle.cancel()

    def has_timer(self, seed_id: str) -> bool:
        return seed_id in self._timers

    def start_ripening_check(self) -> None:
        """Start the periodic sweep. No-op if already running."""
        if self._sweeping:
            return
        self._sweeping = True
        self._arm_sweep()

    def stop_ripening_check(self) -> None:
        self._sweeping = False
        if self._sweep_handle is not None:
            self._sweep_handle.cancel()
            self._sweep_handle = None

    @property
    def is_sweeping(self) -> bool:
        return self._sweeping

    def _arm_sweep(self) -> None:
        self._sweep_handle = self.scheduler.after(self.config.ripening_check_interval, self._sweep)

    def _sweep(self) -> None:
        self._sweep_handle = None
        if not self._sweeping:
            return
        try:
            self.process_queue()
        finally:
            if self._sweeping and self._sweep_handle is None:
                self._arm_sweep()

    def set_time_scale(self, scale: float) -> None:
        """Speed up (>1) or slow down (<1) every future delay."""
        self.config.time_scale = max(MIN_TIME_SCALE, float(scale))

    # =========================================================================
    # CAPACITY
    # =========================================================================

    def _evict_one(self) -> None:
        """Drop the first spent seed, or else the weakest live one."""
        size = len(self._seeds)
        victim = next((seed for seed in self._seeds if seed.is_terminal), None)
        if victim is None:
            victim = min(self._seeds, key=lambda seed: seed.potency, default=None)

        if victim is not None:
            self._cancel_timer(victim.id)
            self._seeds.remove(victim.id)
            logger.warning(
                "Store at capacity (%d); evicted %s seed %s",
                self.config.max_seeds, victim.state.value, victim.id,
            )

        self._emit(StoreOverflow(
            timestamp=self.scheduler.now(),
            current_size=size,
            max_size=self.config.max_seeds,
            evicted=victim,
        ))

    def clear(self) -> None:
        """Cancel every timer and drop every seed."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._seeds.clear()

    def dispose(self) -> None:
        """Stop sweeping, clear seeds and drop all listeners."""
        self.stop_ripening_check()
        self.clear()
        self.events.clear()

    # =========================================================================
    # EVENTS
    # =========================================================================

    def on(self, event_type: EventKey, listener: Listener) -> Callable[[], None]:
        return self.events.on(event_type, listener)

    def on_any(self, listener: Listener) -> Callable[[], None]:
        return self.events.on_any(listener)

    def off(self, event_type: EventKey, listener: Listener) -> None:
        self.events.off(event_type, listener)

    async def once(self, event_type: EventKey) -> KarmicEvent:
        return await self.events.once(event_type)

    async def wait_for_ripening(
        self,
        seed_id: str,
        timeout: Optional[float] = None
    ) -> Optional[Manifestation]:
        """
        Wait until a seed ripens.

        Resolves with the manifestation of the seed's next ripening, None
        at once if the seed is unknown or spent, or None after `timeout`
        seconds. A timeout of None or 0 waits without limit. The seed itself
        is never touched by the wait.
        """
        seed = self._seeds.get(seed_id)
        if seed is None or seed.is_terminal:
            return None

        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _listener(event: SeedRipened) -> None:
            if event.seed.id == seed_id and not future.done():
                future.set_result(event.manifestation)

        unsubscribe = self.events.on(SeedRipened.type, _listener)
        try:
            if not timeout:
                return await future
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            return None
        finally:
            unsubscribe()

    def _emit(self, event: KarmicEvent) -> None:
        self.events.emit(event)

    # =========================================================================
    # COLLECTIVE KARMA
    # =========================================================================

    def create_collective(self, participant_ids: Iterable[str], params: ActionParams) -> List[Seed]:
        """
        Plant one linked seed per participant of a shared action.

        All seeds share a new group id and carry the "collective" tag.
        """
        participants = list(participant_ids)
        group_id = generate_id()
        tags = list(params.tags) + ["collective"]

        seeds = [
            self.plant(replace(params, group_id=group_id, tags=list(tags)))
            for _ in participants
        ]

        self._emit(CollectiveFormed(
            timestamp=self.scheduler.now(),
            group_id=group_id,
            participant_count=len(participants),
            valence=params.valence,
        ))
        return seeds

    def get_collective_seeds(self, group_id: str) -> List[Seed]:
        return [seed for seed in self._seeds if seed.group_id == group_id]

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def get_karmic_balance(self) -> KarmicBalance:
        """Potency of unresolved seeds by valence."""
        totals = {"wholesome": 0.0, "unwholesome": 0.0, "neutral": 0.0}

        for seed in self._seeds:
            if seed.is_terminal:
                continue
            key = seed.valence if seed.valence in totals else "neutral"
            totals[key] += seed.potency

        return KarmicBalance(
            wholesome=totals["wholesome"],
            unwholesome=totals["unwholesome"],
            neutral=totals["neutral"],
            balance=totals["wholesome"] - totals["unwholesome"],
            total_potency=sum(totals.values()),
        )

    def get_statistics(self) -> StoreStatistics:
        seeds = self._seeds.snapshot()

        by_state = {state.value: 0 for state in SeedState}
        by_valence = {"wholesome": 0, "unwholesome": 0, "neutral": 0}
        by_channel = {"bodily": 0, "verbal": 0, "mental": 0}
        total_potency = 0.0

        for seed in seeds:
            by_state[seed.state.value] += 1
            by_valence[seed.valence] = by_valence.get(seed.valence, 0) + 1
            by_channel[seed.channel] = by_channel.get(seed.channel, 0) + 1
            total_potency += seed.potency

        timestamps = [seed.created_at for seed in seeds]

        return StoreStatistics(
            total_seeds=len(seeds),
            by_state=by_state,
            by_valence=by_valence,
            by_channel=by_channel,
            average_potency=total_potency / len(seeds) if seeds else 0.0,
            oldest_seed=min(timestamps) if timestamps else None,
            newest_seed=max(timestamps) if timestamps else None,
        )

    # =========================================================================
    # CONDITION REGISTRY
    # =========================================================================

    def register_condition(self, name: str, check: Check) -> None:
        self.registry.register(name, check)

    def get_condition(self, name: str) -> Optional[Check]:
        return self.registry.get(name)

    def rebind_conditions(self) -> int:
        """
        Re-attach live checks to named conditions from the registry.

        Conditions without a name, or whose name is not registered, keep
        their current check.

        Returns:
            Number of conditions rebound
        """
        rebound = 0
        for seed in self._seeds:
            conditions = []
            for condition in seed.conditions:
                check = self.registry.get(condition.name) if condition.name else None
                if check is not None:
                    condition = replace(condition, check=check)
                    rebound += 1
                conditions.append(condition)
            seed.conditions = conditions
        return rebound
