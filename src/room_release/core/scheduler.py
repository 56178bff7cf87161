"""
Timer scheduling for the room-release kernel.

Every timer the system uses (countdown tick, countdown deadline, forced
re-evaluation) goes through a Scheduler so it can be cancelled safely and
driven by virtual time in tests.

Two implementations are provided:
- AsyncioScheduler: real timers on the running asyncio event loop
- ManualScheduler: virtual clock advanced explicitly (tests, simulations)
"""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, UTC
from typing import Awaitable, Callable, List, Optional, Set

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


async def _run_callback(callback: TimerCallback) -> None:
    """Run a timer callback, logging instead of propagating failures."""
    try:
        await callback()
    except Exception as e:
        name = getattr(callback, "__name__", repr(callback))
        logger.error(f"Error in timer callback {name}: {e}", exc_info=True)


class TimerHandle(ABC):
    """A scheduled call that can be cancelled.

    cancel() is idempotent and safe to call after the timer has fired.
    """

    @abstractmethod
    def cancel(self) -> None:
        """Prevent any future firing of this timer."""
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        pass


class Scheduler(ABC):
    """
    Abstract interface for time and timers.

    Callbacks are coroutine functions taking no arguments. A callback that is
    already running is never interrupted by cancel(); cancellation only
    prevents future firings.
    """

    @abstractmethod
    def now(self) -> datetime:
        """
        Get the current time.

        Returns:
            Current datetime (timezone-aware)
        """
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        """
        Run callback once after delay seconds.

        Args:
            delay: Delay in seconds
            callback: Coroutine function to run

        Returns:
            Handle that can cancel the call
        """
        pass

    def call_every(self, period: float, callback: TimerCallback) -> TimerHandle:
        """
        Run callback every period seconds until cancelled.

        The first call happens one period from now.

        Args:
            period: Interval in seconds
            callback: Coroutine function to run

        Returns:
            Handle that stops the repetition
        """
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        return _RepeatingTimer(self, period, callback)


class _RepeatingTimer(TimerHandle):
    """Repetition built on top of Scheduler.call_later."""

    def __init__(self, scheduler: Scheduler, period: float, callback: TimerCallback) -> None:
        self._scheduler = scheduler
        self._period = period
        self._callback = callback
        self._cancelled = False
        self._current: Optional[TimerHandle] = None
        self._schedule_next()

    def _schedule_next(self) -> None:
        self._current = self._scheduler.call_later(self._period, self._fire)

    async def _fire(self) -> None:
        if self._cancelled:
            return
        # Next firing is booked before the callback runs so a slow callback
        # does not drift the period.
        self._schedule_next()
        await self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._current is not None:
            self._current.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


# =============================================================================
# asyncio implementation
# =============================================================================


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self) -> None:
        self._timer: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by the asyncio event loop.

    Callbacks are started as tasks; references are kept until they finish.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()

    def now(self) -> datetime:
        return datetime.now(UTC)

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        handle = _AsyncioTimerHandle()

        def _spawn() -> None:
            if handle.cancelled:
                return
            task = loop.create_task(_run_callback(callback))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        handle._timer = loop.call_later(delay, _spawn)
        return handle


# =============================================================================
# Virtual-time implementation
# =============================================================================


@dataclass(order=True)
class _ManualTimer(TimerHandle):
    due: datetime
    seq: int
    callback: TimerCallback = field(compare=False)
    _cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """
    Scheduler with a virtual clock.

    Time only moves when advance() is awaited; due callbacks run in order of
    their due time (ties in scheduling order) with the clock set to that
    due time.

    Example:
        scheduler = ManualScheduler()
        scheduler.call_later(60, on_deadline)
        await scheduler.advance(59)   # nothing fires
        await scheduler.advance(1)    # on_deadline runs
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
        self._queue: List[_ManualTimer] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._now

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        timer = _ManualTimer(
            due=self._now + timedelta(seconds=delay),
            seq=next(self._seq),
            callback=callback,
        )
        heapq.heappush(self._queue, timer)
        return timer

    async def advance(self, seconds: float) -> None:
        """
        Move the clock forward, running every callback that falls due.

        Args:
            seconds: How far to advance the clock
        """
        target = self._now + timedelta(seconds=seconds)
        while self._queue and self._queue[0].due <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = timer.due
            await _run_callback(timer.callback)
        self._now = target

    @property
    def pending(self) -> int:
        """Number of timers still waiting to fire."""
        return sum(1 for t in self._queue if not t.cancelled)
