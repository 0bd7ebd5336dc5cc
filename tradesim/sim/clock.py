"""
Scheduling for the simulators.

- Scheduler: the timer collaborator (repeating and single-shot callbacks)
- AsyncioScheduler: backed by an asyncio event loop
- ManualScheduler: virtual time advanced explicitly (tests, headless CLI)
- MarketClock: drives one engine tick per interval, pausable and speed-adjustable

Pausing cancels the timer; ticks missed while paused are never replayed.
Speed changes the interval only, never the size of a price step.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from ..config.config import ClockConfig
from ..utils.logger import get_logger

logger = get_logger()

Callback = Callable[[], None]


@dataclass(eq=False)
class TimerHandle:
    """Cancellation handle returned by a Scheduler."""
    timer_id: int
    callback: Callback
    due_ms: int
    interval_ms: Optional[int] = None  # None = single shot
    cancelled: bool = False
    native: object = field(default=None, repr=False)

    @property
    def repeating(self) -> bool:
        return self.interval_ms is not None


class Scheduler(ABC):
    """Timer collaborator consumed by MarketClock, BiasController and ToastNotifier."""

    @property
    @abstractmethod
    def now_ms(self) -> int:
        """Current time in milliseconds."""
        ...

    @abstractmethod
    def schedule_repeating(self, interval_ms: int, callback: Callback) -> TimerHandle:
        """Invoke callback every interval_ms until cancelled."""
        ...

    @abstractmethod
    def schedule_once(self, delay_ms: int, callback: Callback) -> TimerHandle:
        """Invoke callback once after delay_ms unless cancelled."""
        ...

    @abstractmethod
    def cancel(self, handle: TimerHandle) -> None:
        """Cancel a timer. Cancelling twice is a no-op."""
        ...


class ManualScheduler(Scheduler):
    """
    Virtual-time scheduler.

    Nothing fires until advance() is called; timers then fire in due order,
    repeating timers as many times as fit in the advanced span.

    Usage:
        scheduler = ManualScheduler()
        scheduler.schedule_repeating(1000, on_tick)
        scheduler.advance(3000)  # on_tick fires 3 times
    """

    def __init__(self, start_ms: int = 0):
        self._now = start_ms
        self._queue: List[Tuple[int, int, TimerHandle]] = []
        self._ids = itertools.count(1)

    @property
    def now_ms(self) -> int:
        return self._now

    @property
    def pending(self) -> int:
        """Number of live timers."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (handle.due_ms, handle.timer_id, handle))

    def schedule_repeating(self, interval_ms: int, callback: Callback) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        handle = TimerHandle(next(self._ids), callback, self._now + interval_ms, interval_ms)
        self._push(handle)
        return handle

    def schedule_once(self, delay_ms: int, callback: Callback) -> TimerHandle:
        handle = TimerHandle(next(self._ids), callback, self._now + max(0, delay_ms))
        self._push(handle)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancelled = True

    def advance(self, ms: int) -> int:
        """
        Move virtual time forward, firing every timer that comes due.

        Args:
            ms: Milliseconds to advance (>= 0)

        Returns:
            Number of callbacks fired
        """
        if ms < 0:
            raise ValueError(f"Cannot advance by a negative span: {ms}")
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            if handle.repeating:
                handle.due_ms = due + handle.interval_ms
                # Re-queue under a fresh id to keep heap entries unique
                handle.timer_id = next(self._ids)
                self._push(handle)
            handle.callback()
            fired += 1
        self._now = target
        return fired


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by an asyncio event loop's call_later.

    Without an explicit loop the running loop is bound on first use, so the
    scheduler must then be used from inside a coroutine or callback.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._ids = itertools.count(1)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def now_ms(self) -> int:
        return int(self.loop.time() * 1000)

    def schedule_repeating(self, interval_ms: int, callback: Callback) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        handle = TimerHandle(next(self._ids), callback, self.now_ms + interval_ms, interval_ms)

        def _fire():
            if handle.cancelled:
                return
            handle.due_ms += interval_ms
            handle.native = self.loop.call_later(interval_ms / 1000.0, _fire)
            callback()

        handle.native = self.loop.call_later(interval_ms / 1000.0, _fire)
        return handle

    def schedule_once(self, delay_ms: int, callback: Callback) -> TimerHandle:
        handle = TimerHandle(next(self._ids), callback, self.now_ms + max(0, delay_ms))

        def _fire():
            if not handle.cancelled:
                handle.cancelled = True
                callback()

        handle.native = self.loop.call_later(max(0, delay_ms) / 1000.0, _fire)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancelled = True
        if isinstance(handle.native, asyncio.TimerHandle):
            handle.native.cancel()


class MarketClock:
    """
    Periodic driver for one simulator instance.

    States: stopped -> running <-> paused -> stopped.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callback,
        config: Optional[ClockConfig] = None,
    ):
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._config = config or ClockConfig()
        self._speed = 1
        self._handle: Optional[TimerHandle] = None
        self._started = False
        self._paused = False
        self.tick_count = 0

    @property
    def speed(self) -> int:
        return self._speed

    @property
    def interval_ms(self) -> int:
        return self._config.interval_for(self._speed)

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    @property
    def is_paused(self) -> bool:
        return self._paused

    def _tick(self) -> None:
        self.tick_count += 1
        self._on_tick()

    def _arm(self) -> None:
        self._disarm()
        self._handle = self._scheduler.schedule_repeating(self.interval_ms, self._tick)

    def _disarm(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None

    def start(self) -> None:
        """Start ticking (no-op if already running)."""
        self._started = True
        if self._paused or self.is_running:
            return
        self._arm()
        logger.debug(f"MarketClock started at {self.interval_ms}ms")

    def pause(self) -> None:
        self._paused = True
        self._disarm()

    def resume(self) -> None:
        self._paused = False
        if self._started:
            self._arm()

    def toggle_pause(self) -> bool:
        """Flip paused state. Returns the new is_paused."""
        if self._paused:
            self.resume()
        else:
            self.pause()
        return self._paused

    def set_speed(self, speed: int) -> None:
        """
        Change tick speed; a running clock is re-armed at the new interval.

        Raises:
            ValueError: If speed is not a configured setting
        """
        self._config.interval_for(speed)
        self._speed = speed
        if self.is_running:
            self._arm()

    def toggle_speed(self) -> int:
        """Switch between normal and fast speed. Returns the new speed."""
        fast = self._config.fast_speed
        self.set_speed(1 if self._speed == fast else fast)
        return self._speed

    def stop(self) -> None:
        self._disarm()
        self._started = False
        self._paused = False
