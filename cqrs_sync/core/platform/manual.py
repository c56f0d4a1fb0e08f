"""
Manual Platform

Deterministic virtual-time platform for tests and simulations. Nothing runs
until the owner advances the clock; exceptions raised by timers propagate to
the caller of advance()/run_next().
"""

import heapq
import itertools
import logging
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)


class ManualPlatform:
    """
    Virtual clock with an ordered timer queue.

    Timers due at the same instant run in the order they were armed.
    """

    def __init__(self):
        self.now = 0
        self.errors: List[BaseException] = []
        self._timers: List[Tuple[int, int, Callable[[], Any]]] = []
        self._seq = itertools.count()

    def set_timeout(self, fn: Callable[[], Any], delay_ms: int) -> None:
        heapq.heappush(self._timers, (self.now + max(delay_ms, 0), next(self._seq), fn))

    def report_error(self, exc: BaseException) -> None:
        logger.error(f"Unhandled sync error: {exc}")
        self.errors.append(exc)

    @property
    def pending(self) -> int:
        return len(self._timers)

    @property
    def next_due(self) -> int:
        """Virtual time of the earliest armed timer."""
        if not self._timers:
            raise LookupError("No timers armed")
        return self._timers[0][0]

    def run_next(self) -> bool:
        """Jump to the earliest timer and run it. False when none is armed."""
        if not self._timers:
            return False
        due, _, fn = heapq.heappop(self._timers)
        self.now = max(self.now, due)
        fn()
        return True

    def advance(self, ms: int) -> int:
        """Move the clock forward, running every timer that falls due."""
        deadline = self.now + ms
        ran = 0
        while self._timers and self._timers[0][0] <= deadline:
            self.run_next()
            ran += 1
        self.now = deadline
        return ran

    def run_until_idle(self, max_steps: int = 1000) -> int:
        """Run timers until none is armed; guards against endless polling."""
        ran = 0
        while self._timers:
            if ran >= max_steps:
                raise RuntimeError(f"Platform still busy after {max_steps} timers")
            self.run_next()
            ran += 1
        return ran
