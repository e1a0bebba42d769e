"""
Clocks and deferred callbacks.

The store never touches wall time or timers directly. It asks a
Scheduler for `now()` and for `after(delay, callback)`, which returns a
handle with `cancel()` (or None when nothing could be armed).

ManualScheduler drives tests and simulations; AsyncioScheduler runs
timers on an asyncio event loop.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Clock plus single-shot deferred callbacks."""

    def now(self) -> float:
        ...

    def after(self, delay: float, callback: Callable[[], None]) -> Optional[TimerHandle]:
        ...


# =============================================================================
# MANUAL (SIMULATED) CLOCK
# =============================================================================

class ManualTimer:
    """Handle for a callback armed on a ManualScheduler."""

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Simulated clock. Time only moves when `advance()` is called.

    Callbacks fire in due-time order; ties fire in the order they were
    armed. A callback armed during an advance fires in the same advance
    if it falls due inside the window.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: List[Tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def after(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.due, next(self._sequence), timer))
        return timer

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every callback that falls due.

        Args:
            seconds: How far to move the clock

        Returns:
            Number of callbacks fired
        """
        target = self._now + max(0.0, seconds)
        fired = 0

        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, due)
            timer.callback()
            fired += 1

        self._now = target
        return fired

    def pending(self) -> int:
        """Number of armed, uncancelled callbacks."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)


# =============================================================================
# ASYNCIO
# =============================================================================

class AsyncioScheduler:
    """
    Wall-clock scheduler on an asyncio event loop.

    Uses the given loop, or the loop running when a timer is armed.
    Outside a running loop no timer is armed; the store's sweep and
    direct calls still work.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def now(self) -> float:
        return time.time()

    def after(self, delay: float, callback: Callable[[], None]) -> Optional[asyncio.TimerHandle]:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop; timer not armed")
                return None
        return loop.call_later(max(0.0, delay), callback)
