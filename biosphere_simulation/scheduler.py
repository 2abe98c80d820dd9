from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledCallback:
    due: float
    seq: int
    callback: Callable[[], object] = field(compare=False)
    label: str = field(default="", compare=False)


class Scheduler:
    """Delayed callbacks keyed by simulation time, drained once per tick."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[ScheduledCallback] = []
        self._seq = itertools.count()

    def schedule(self, delay: float, callback: Callable[[], object], *, label: str = "") -> ScheduledCallback:
        entry = ScheduledCallback(self.now + max(0.0, delay), next(self._seq), callback, label)
        heapq.heappush(self._queue, entry)
        return entry

    def advance(self, dt: float) -> int:
        """Move time forward and run everything that has come due, in order."""
        self.now += max(0.0, dt)
        ran = 0
        while self._queue and self._queue[0].due <= self.now:
            entry = heapq.heappop(self._queue)
            logger.debug("Running scheduled callback %r at t=%.2f", entry.label, self.now)
            entry.callback()
            ran += 1
        return ran

    @property
    def pending(self) -> int:
        return len(self._queue)

    def clear(self) -> None:
        self._queue.clear()


__all__ = ["Scheduler", "ScheduledCallback"]
