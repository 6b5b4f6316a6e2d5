"""Timer sources for playback.

:class:`ThreadScheduler` fires callbacks in real time on timer threads.
:class:`VirtualScheduler` keeps its own clock and only fires callbacks when
advanced, which makes replays deterministic.
"""

from __future__ import annotations

import heapq
import itertools
import threading
from collections.abc import Callable
from typing import Protocol


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall: ...


class ThreadScheduler:
    """Real-time scheduler backed by :class:`threading.Timer`."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class _VirtualCall:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Scheduler driven by an explicit virtual clock (seconds)."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, _VirtualCall]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = _VirtualCall(self.now + delay, callback)
        heapq.heappush(self._queue, (call.when, next(self._seq), call))
        return call

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def next_delay(self) -> float | None:
        """Seconds until the next live callback, or ``None`` when idle."""
        self._drop_cancelled()
        if not self._queue:
            return None
        return max(self._queue[0][0] - self.now, 0.0)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in order. Returns the count fired."""
        target = self.now + seconds
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0][0] > target:
                break
            when, _, call = heapq.heappop(self._queue)
            self.now = when
            call.callback()
            fired += 1
        self.now = target
        return fired

    def run_until_idle(self, max_calls: int = 100_000) -> int:
        """Fire callbacks until none remain (or *max_calls* is reached)."""
        fired = 0
        while fired < max_calls:
            delay = self.next_delay()
            if delay is None:
                break
            fired += self.advance(delay)
        return fired

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
