"""
Price process, candle window and order book tests.

Randomness is checked through bounds only; no test depends on an exact
trajectory.
"""

import numpy as np
import pytest

from tradesim.sim.pricing import (
    CandleWindow,
    OrderBookSynth,
    PriceProcess,
    PriceProcessConfig,
    clamp_bias,
    gen_book,
)
from tradesim.sim.types import Candle


class TestNextCandle:
    """Candle bounds: open = previous close, high/low envelope, 70% floor."""

    def test_candle_opens_at_previous_close(self, rng):
        candle = PriceProcess(rng=rng).next_candle(65000.0)
        assert candle.open == 65000.0

    def test_high_low_envelope(self, rng):
        process = PriceProcess(rng=rng)
        price = 65000.0
        for _ in range(500):
            candle = process.next_candle(price)
            assert candle.high >= max(candle.open, candle.close)
            assert candle.low <= min(candle.open, candle.close)
            assert candle.low > 0
            price = candle.close

    def test_close_never_below_floor(self, rng):
        process = PriceProcess(rng=rng)
        for _ in range(500):
            candle = process.next_candle(100.0, bias=-10.0)
            assert candle.close >= 70.0

    def test_step_size_bounded_by_volatility_band(self, rng):
        """|close - open| <= prev * (min + span) * 2 * (1 + |center|)."""
        process = PriceProcess(rng=rng)
        cfg = process.config
        limit = 1000.0 * (cfg.volatility_min + cfg.volatility_span) * 2 * (1 + abs(cfg.drift_center) + cfg.bias_limit)
        for _ in range(300):
            candle = process.next_candle(1000.0, bias=0.35)
            assert abs(candle.close - candle.open) <= limit

    def test_rejects_non_positive_close(self, rng):
        with pytest.raises(ValueError):
            PriceProcess(rng=rng).next_candle(0.0)

    def test_positive_bias_pushes_prices_up_on_average(self):
        up = PriceProcess(rng=np.random.default_rng(1))
        down = PriceProcess(rng=np.random.default_rng(1))
        up_moves = [up.next_candle(1000.0, bias=0.35).close - 1000.0 for _ in range(400)]
        down_moves = [down.next_candle(1000.0, bias=-0.35).close - 1000.0 for _ in range(400)]
        assert np.mean(up_moves) > 0 > np.mean(down_moves)

    def test_bias_is_clamped(self):
        a = PriceProcess(rng=np.random.default_rng(3)).next_candle(1000.0, bias=5.0)
        b = PriceProcess(rng=np.random.default_rng(3)).next_candle(1000.0, bias=0.35)
        assert a == b

    def test_volatility_scale_widens_steps(self):
        calm = PriceProcess(PriceProcessConfig(volatility_scale=0.1), np.random.default_rng(9))
        wild = PriceProcess(PriceProcessConfig(volatility_scale=1.0), np.random.default_rng(9))
        calm_range = max(abs(calm.next_candle(1000.0).close - 1000.0) for _ in range(200))
        wild_range = max(abs(wild.next_candle(1000.0).close - 1000.0) for _ in range(200))
        assert calm_range < wild_range


class TestScriptedCandles:
    def test_candle_to_closes_at_price(self, rng):
        candle = PriceProcess(rng=rng).candle_to(100.0, 90.0)
        assert candle == Candle(open=100.0, high=100.0, low=90.0, close=90.0)

    def test_candle_to_rejects_non_positive(self, rng):
        with pytest.raises(ValueError):
            PriceProcess(rng=rng).candle_to(100.0, -1.0)


class TestSeedCandles:
    def test_seed_builds_chained_history(self, rng):
        candles = PriceProcess(rng=rng).seed_candles(80, 65000.0)
        assert len(candles) == 80
        assert candles[0].open == 65000.0
        for previous, current in zip(candles, candles[1:]):
            assert current.open == previous.close


class TestStepPrice:
    """Single-price step used by the multi-asset simulator."""

    def test_step_stays_within_band(self, rng):
        process = PriceProcess(rng=rng)
        for _ in range(300):
            nxt = process.step_price(100.0, 0.02)
            assert 100.0 * (1 - 0.49 * 0.02) - 1e-9 <= nxt <= 100.0 * (1 + 0.51 * 0.02) + 1e-9

    def test_step_floor(self, rng):
        process = PriceProcess(rng=rng)
        assert process.step_price(0.001, 0.5) >= 0.01


class TestClampBias:
    @pytest.mark.parametrize("raw,expected", [(0.5, 0.35), (-0.5, -0.35), (0.1, 0.1)])
    def test_clamp(self, raw, expected):
        assert clamp_bias(raw) == expected


class TestCandleWindow:
    """Bounded append-only window."""

    def _candle(self, close: float) -> Candle:
        return Candle(open=close, high=close, low=close, close=close)

    def test_drops_oldest_when_full(self):
        window = CandleWindow([self._candle(float(i)) for i in range(1, 4)], maxlen=3)
        window.append(self._candle(4.0))
        assert len(window) == 3
        assert window.first.close == 2.0
        assert window.last.close == 4.0

    def test_closes_and_frame(self):
        window = CandleWindow([self._candle(1.0), self._candle(2.0)])
        assert window.closes() == [1.0, 2.0]
        frame = window.to_frame()
        assert list(frame.columns) == ["open", "high", "low", "close"]
        assert frame["close"].tolist() == [1.0, 2.0]

    def test_empty_window_has_no_last(self):
        with pytest.raises(IndexError):
            CandleWindow().last

    def test_rejects_zero_maxlen(self):
        with pytest.raises(ValueError):
            CandleWindow(maxlen=0)


class TestOrderBook:
    """Synthetic book layout around the mid price."""

    def test_layout(self, rng):
        book = OrderBookSynth(rng=rng).generate(100.0)
        assert [row.price for row in book.asks] == pytest.approx([101.0, 100.8, 100.6, 100.4, 100.2])
        assert [row.price for row in book.bids] == pytest.approx([99.8, 99.6, 99.4, 99.2, 99.0])
        assert book.best_ask == pytest.approx(100.2)
        assert book.best_bid == pytest.approx(99.8)

    def test_asks_above_bids_below(self, rng):
        book = gen_book(65000.0, rows=8, rng=rng)
        assert len(book.asks) == len(book.bids) == 8
        assert all(row.price > 65000.0 for row in book.asks)
        assert all(row.price < 65000.0 for row in book.bids)

    def test_quantities_in_range_and_rounded(self, rng):
        book = OrderBookSynth(rng=rng).generate(100.0, rows=20)
        for row in book.asks + book.bids:
            assert 0.001 <= row.quantity <= 3.001
            assert round(row.quantity, 4) == row.quantity

    def test_rejects_zero_rows(self, rng):
        with pytest.raises(ValueError):
            OrderBookSynth(rng=rng).generate(100.0, rows=0)
