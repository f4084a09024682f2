"""Deferred-callback schedulers for the playback clock.

The player never touches timers directly. It asks a scheduler to run a
callback once after a delay and keeps the returned handle so it can
cancel it. Three implementations:

  - ManualScheduler:   fake clock, advanced explicitly (tests, headless use)
  - BlockingScheduler: real time, runs callbacks on the calling thread
  - AsyncioScheduler:  wraps ``loop.call_later`` for event-loop hosts

All of them are single-threaded: a callback runs to completion before
the next one is considered, and a cancelled call never fires.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass(order=True)
class ScheduledCall:
    """Handle for one pending callback."""

    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)
    _on_cancel: Optional[Callable[[], None]] = field(default=None, compare=False, repr=False)

    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call more than once."""
        if self.cancelled:
            return
        self.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()


class Scheduler:
    """Interface: run a callback once after a delay."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        raise NotImplementedError


class _HeapScheduler(Scheduler):
    """Shared queue handling for the manual and blocking schedulers."""

    def __init__(self) -> None:
        self._queue: list[ScheduledCall] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(
            due=self.now() + max(0.0, delay),
            seq=next(self._seq),
            callback=callback,
        )
        heapq.heappush(self._queue, call)
        return call

    @property
    def pending(self) -> int:
        """Number of calls that will still fire."""
        return sum(1 for c in self._queue if not c.cancelled)

    def _pop_next(self) -> Optional[ScheduledCall]:
        while self._queue:
            call = heapq.heappop(self._queue)
            if not call.cancelled:
                return call
        return None

    def _peek_due(self) -> Optional[float]:
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0].due if self._queue else None


class ManualScheduler(_HeapScheduler):
    """Fake clock for deterministic playback.

    Usage:
        scheduler = ManualScheduler()
        player = Player(scheduler)
        ...
        scheduler.advance(1.5)      # fire everything due within 1.5s
        scheduler.run_until_idle()  # fire everything, jumping the clock
    """

    def __init__(self, start: float = 0.0) -> None:
        super().__init__()
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due calls in order. Returns calls fired."""
        target = self._now + seconds
        fired = 0
        while True:
            due = self._peek_due()
            if due is None or due > target:
                break
            call = self._pop_next()
            self._now = max(self._now, call.due)
            call.callback()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, max_calls: int = 1_000_000) -> int:
        """Fire calls until none remain. Returns calls fired."""
        fired = 0
        while fired < max_calls:
            call = self._pop_next()
            if call is None:
                break
            self._now = max(self._now, call.due)
            call.callback()
            fired += 1
        return fired


class BlockingScheduler(_HeapScheduler):
    """Real-time scheduler that sleeps between callbacks on the calling thread."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__()
        self._clock = clock
        self._sleep = sleep

    def now(self) -> float:
        return self._clock()

    def run(self) -> int:
        """Run until no calls remain. Returns calls fired."""
        fired = 0
        while True:
            call = self._pop_next()
            if call is None:
                return fired
            wait = call.due - self.now()
            if wait > 0:
                self._sleep(wait)
            call.callback()
            fired += 1


class AsyncioScheduler(Scheduler):
    """Adapter over an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._seq = itertools.count()

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(due=self.now() + max(0.0, delay), seq=next(self._seq), callback=callback)

        def _fire() -> None:
            if not call.cancelled:
                callback()

        handle = self._loop.call_later(max(0.0, delay), _fire)
        call._on_cancel = handle.cancel
        return call
