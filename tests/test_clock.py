"""
Clock, bias and toast tests on virtual time.
"""

import asyncio

import numpy as np
import pytest

from tradesim.config.config import BiasConfig, ClockConfig
from tradesim.sim.clock import AsyncioScheduler, ManualScheduler, MarketClock
from tradesim.sim.notifications import ToastNotifier
from tradesim.sim.pricing import BiasController
from tradesim.sim.types import Direction


class TestManualScheduler:
    def test_repeating_fires_per_interval(self, scheduler):
        calls = []
        scheduler.schedule_repeating(1000, lambda: calls.append(scheduler.now_ms))
        assert scheduler.advance(3500) == 3
        assert calls == [1000, 2000, 3000]
        assert scheduler.now_ms == 3500

    def test_once_fires_once(self, scheduler):
        calls = []
        scheduler.schedule_once(500, lambda: calls.append(1))
        scheduler.advance(10000)
        assert calls == [1]

    def test_cancel(self, scheduler):
        calls = []
        handle = scheduler.schedule_repeating(100, lambda: calls.append(1))
        scheduler.advance(250)
        scheduler.cancel(handle)
        scheduler.advance(1000)
        assert calls == [1, 1]
        assert scheduler.pending == 0

    def test_timers_fire_in_due_order(self, scheduler):
        order = []
        scheduler.schedule_once(300, lambda: order.append("c"))
        scheduler.schedule_once(100, lambda: order.append("a"))
        scheduler.schedule_once(200, lambda: order.append("b"))
        scheduler.advance(300)
        assert order == ["a", "b", "c"]

    def test_rejects_negative_advance(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.advance(-1)

    def test_rejects_zero_interval(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.schedule_repeating(0, lambda: None)


class TestMarketClock:
    """stopped -> running <-> paused -> stopped."""

    def _clock(self, scheduler):
        ticks = []
        clock = MarketClock(scheduler, lambda: ticks.append(scheduler.now_ms), ClockConfig())
        return clock, ticks

    def test_ticks_every_second_at_speed_one(self, scheduler):
        clock, ticks = self._clock(scheduler)
        clock.start()
        scheduler.advance(3000)
        assert ticks == [1000, 2000, 3000]
        assert clock.tick_count == 3

    def test_fast_speed_interval(self, scheduler):
        clock, ticks = self._clock(scheduler)
        clock.start()
        clock.set_speed(3)
        scheduler.advance(1050)
        assert ticks == [350, 700, 1050]

    def test_pause_and_resume(self, scheduler):
        clock, ticks = self._clock(scheduler)
        clock.start()
        scheduler.advance(1000)
        assert clock.toggle_pause() is True
        scheduler.advance(5000)
        assert len(ticks) == 1
        assert clock.toggle_pause() is False
        scheduler.advance(1000)
        assert len(ticks) == 2

    def test_start_while_paused_stays_paused(self, scheduler):
        clock, ticks = self._clock(scheduler)
        clock.pause()
        clock.start()
        scheduler.advance(3000)
        assert ticks == []
        clock.resume()
        scheduler.advance(1000)
        assert len(ticks) == 1

    def test_speed_change_while_paused_does_not_tick(self, scheduler):
        clock, ticks = self._clock(scheduler)
        clock.start()
        clock.pause()
        clock.set_speed(3)
        scheduler.advance(2000)
        assert ticks == []
        assert clock.interval_ms == 350

    def test_unsupported_speed(self, scheduler):
        clock, _ = self._clock(scheduler)
        with pytest.raises(ValueError):
            clock.set_speed(2)
        assert clock.speed == 1

    def test_toggle_speed(self, scheduler):
        clock, _ = self._clock(scheduler)
        assert clock.toggle_speed() == 3
        assert clock.toggle_speed() == 1

    def test_stop(self, scheduler):
        clock, ticks = self._clock(scheduler)
        clock.start()
        clock.stop()
        scheduler.advance(5000)
        assert ticks == []
        assert not clock.is_running


class TestAsyncioScheduler:
    def test_once_and_repeating(self):
        async def scenario():
            scheduler = AsyncioScheduler(asyncio.get_running_loop())
            once, repeating = [], []
            scheduler.schedule_once(10, lambda: once.append(1))
            handle = scheduler.schedule_repeating(10, lambda: repeating.append(1))
            await asyncio.sleep(0.06)
            scheduler.cancel(handle)
            count = len(repeating)
            await asyncio.sleep(0.03)
            return once, count, len(repeating)

        once, count, later = asyncio.run(scenario())
        assert once == [1]
        assert count >= 2
        assert later == count

    def test_binds_running_loop(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            fired = []
            scheduler.schedule_once(5, lambda: fired.append(scheduler.now_ms))
            await asyncio.sleep(0.03)
            return scheduler.loop is asyncio.get_running_loop(), fired

        same_loop, fired = asyncio.run(scenario())
        assert same_loop
        assert len(fired) == 1

    def test_no_running_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioScheduler().now_ms


class TestBiasController:
    def test_favorable_bias_follows_direction(self, scheduler):
        bias = BiasController(scheduler, np.random.default_rng(0), BiasConfig(win_rate=1.0))
        assert bias.on_position_opened(Direction.LONG) == pytest.approx(0.22)
        assert bias.on_position_opened(Direction.SHORT) == pytest.approx(-0.22)

    def test_unfavorable_bias_opposes_direction(self, scheduler):
        bias = BiasController(scheduler, np.random.default_rng(0), BiasConfig(win_rate=0.0))
        assert bias.on_position_opened(Direction.LONG) == pytest.approx(-0.22)

    def test_win_rate_is_statistical(self, scheduler):
        bias = BiasController(scheduler, np.random.default_rng(42), BiasConfig(win_rate=0.7))
        favorable = sum(bias.on_position_opened(Direction.LONG) > 0 for _ in range(2000))
        assert 0.65 < favorable / 2000 < 0.75

    def test_resets_after_duration(self, scheduler):
        bias = BiasController(scheduler, np.random.default_rng(0), BiasConfig(duration_ms=15000))
        bias.on_position_opened(Direction.LONG)
        scheduler.advance(14999)
        assert bias.is_active
        scheduler.advance(1)
        assert bias.value == 0.0

    def test_new_opening_restarts_window(self, scheduler):
        bias = BiasController(scheduler, np.random.default_rng(0), BiasConfig(duration_ms=15000))
        bias.on_position_opened(Direction.LONG)
        scheduler.advance(10000)
        bias.on_position_opened(Direction.LONG)
        scheduler.advance(10000)
        assert bias.is_active
        scheduler.advance(5000)
        assert not bias.is_active

    def test_reset_is_immediate(self, scheduler):
        bias = BiasController(scheduler, np.random.default_rng(0))
        bias.on_position_opened(Direction.LONG)
        bias.reset()
        assert bias.value == 0.0
        assert scheduler.pending == 0

    def test_magnitude_clamped(self, scheduler):
        bias = BiasController(scheduler, np.random.default_rng(0), BiasConfig(magnitude=1.0, win_rate=1.0))
        assert bias.on_position_opened(Direction.LONG) == pytest.approx(0.35)


class TestToastNotifier:
    def test_auto_dismiss(self, scheduler):
        toasts = ToastNotifier(scheduler)
        toasts.show("Filled", True)
        assert toasts.current.message == "Filled"
        scheduler.advance(2500)
        assert toasts.current is None

    def test_new_toast_restarts_timer(self, scheduler):
        toasts = ToastNotifier(scheduler)
        toasts.show("first", True)
        scheduler.advance(2000)
        toasts.show("second", False)
        scheduler.advance(2000)
        assert toasts.current.message == "second"
        assert toasts.current.is_positive is False
        scheduler.advance(500)
        assert toasts.current is None

    def test_keeps_recent_history(self, scheduler):
        toasts = ToastNotifier(scheduler, keep=3)
        for i in range(5):
            toasts.show(str(i))
        assert [t.message for t in toasts.shown] == ["2", "3", "4"]
