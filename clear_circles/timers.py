"""Cooperative timers: a scheduler seam plus owned periodic and one-shot timers.

Everything runs on one logical thread. In the server that is the asyncio event
loop; offline (simulation, tests) it is ManualScheduler's virtual clock.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Callable, Protocol


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """What the game needs from a clock: current time and delayed callbacks."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Handle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop (monotonic loop.time())."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Handle:
        return self.loop.call_later(delay, callback, *args)


class ManualHandle:
    """Pending call on a ManualScheduler."""

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock. Time only moves when advance() is called.

    Due callbacks run in deadline order (ties in scheduling order), with now()
    set to each callback's deadline while it runs.
    """

    # Float slack so a 0.1s timer armed ten times lands inside advance(1.0).
    EPSILON = 1e-9

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[tuple[float, int, ManualHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualHandle:
        handle = ManualHandle(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of armed, not cancelled calls."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> None:
        """Move time forward by seconds, running every call that falls due."""
        deadline = self._now + seconds
        while self._queue and self._queue[0][0] <= deadline + self.EPSILON:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, when)
            handle.callback(*handle.args)
        self._now = max(self._now, deadline)

    def run_until(
        self, predicate: Callable[[], bool], timeout: float, step: float = 0.1
    ) -> bool:
        """Advance in steps until predicate() holds or timeout elapses. Returns predicate()."""
        end = self._now + timeout
        while not predicate() and self._now < end - self.EPSILON:
            self.advance(min(step, end - self._now))
        return predicate()


class PeriodicTimer:
    """A repeating callback owned by whoever enables it.

    start() tears down any armed tick before arming a new one, so two ticks
    are never pending at once. A callback that stops or restarts its own timer
    is respected: the old tick does not re-arm behind it.
    """

    def __init__(self, scheduler: Scheduler, period: float, callback: Callable[[], None]):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.scheduler = scheduler
        self.period = period
        self.callback = callback
        self._handle: Handle | None = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        self.stop()
        self._arm(self._generation)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._generation += 1

    def _arm(self, generation: int) -> None:
        self._handle = self.scheduler.call_later(self.period, self._fire, generation)

    def _fire(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._handle = None
        self.callback()
        if generation == self._generation and self._handle is None:
            self._arm(generation)


class Timeout:
    """A cancellable one-shot delay; scheduling again replaces the pending call."""

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._handle: Handle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()
        self._handle = self.scheduler.call_later(delay, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()
