"""
Synthetic price process.

Generates OHLC candles from a biased centered random walk:
- Volatility per step: a uniform draw from a fixed band of the previous close
- Close: previous close + (u + center) * vol * 2, floored at 70% of the
  previous close
- Center: a slight downward drift shifted by the (clamped) bias
- High/low: the open/close extremes pushed out by a small random wick

Randomness comes from an injectable numpy Generator so tests can seed it.
Trajectories are not part of the contract; only the candle bounds are.
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from ..types import Candle
from ...config.constants import (
    BIAS_LIMIT,
    CANDLE_WINDOW,
    CLOSE_FLOOR_RATIO,
    DRIFT_CENTER,
    INITIAL_CANDLES,
    STEP_PRICE_CENTER,
    STEP_PRICE_FLOOR,
    VOLATILITY_MIN,
    VOLATILITY_SPAN,
    WICK_EXTENSION,
)


def clamp_bias(bias: float, limit: float = BIAS_LIMIT) -> float:
    """Clamp a bias value into [-limit, limit]."""
    return max(-limit, min(limit, bias))


@dataclass
class PriceProcessConfig:
    """Configuration for the price process."""
    volatility_scale: float = 1.0
    volatility_min: float = VOLATILITY_MIN
    volatility_span: float = VOLATILITY_SPAN
    drift_center: float = DRIFT_CENTER
    bias_limit: float = BIAS_LIMIT
    close_floor_ratio: float = CLOSE_FLOOR_RATIO
    wick_extension: float = WICK_EXTENSION


class PriceProcess:
    """
    Generates the next candle from the previous close.

    Usage:
        process = PriceProcess(rng=np.random.default_rng(7))
        history = process.seed_candles(80, 65000.0)
        candle = process.next_candle(history[-1].close, bias=0.22)
    """

    def __init__(
        self,
        config: Optional[PriceProcessConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize price process.

        Args:
            config: Optional configuration
            rng: Random generator (defaults to an unseeded system generator)
        """
        self._config = config or PriceProcessConfig()
        self._rng = rng if rng is not None else np.random.default_rng()

    @property
    def config(self) -> PriceProcessConfig:
        return self._config

    def _uniform(self) -> float:
        return float(self._rng.random())

    def next_candle(self, previous_close: float, bias: float = 0.0) -> Candle:
        """
        Generate the next candle.

        Args:
            previous_close: Close of the previous candle (> 0)
            bias: Directional push; clamped to [-bias_limit, bias_limit]

        Returns:
            Candle opening at previous_close

        Raises:
            ValueError: If previous_close is not positive
        """
        if not previous_close > 0:
            raise ValueError(f"previous_close must be positive, got {previous_close}")

        cfg = self._config
        vol = previous_close * (cfg.volatility_min + self._uniform() * cfg.volatility_span)
        vol *= cfg.volatility_scale
        open_ = previous_close
        center = cfg.drift_center + clamp_bias(bias, cfg.bias_limit)
        close = max(
            previous_close * cfg.close_floor_ratio,
            previous_close + (self._uniform() + center) * vol * 2,
        )
        high = max(open_, close) * (1 + self._uniform() * cfg.wick_extension)
        low = min(open_, close) * (1 - self._uniform() * cfg.wick_extension)
        return Candle(open=open_, high=high, low=low, close=close)

    def candle_to(self, previous_close: float, price: float) -> Candle:
        """
        Build a candle that closes exactly at `price`.

        Used to feed scripted prices through the same tick path as
        generated candles.
        """
        if not price > 0:
            raise ValueError(f"price must be positive, got {price}")
        return Candle(
            open=previous_close,
            high=max(previous_close, price),
            low=min(previous_close, price),
            close=price,
        )

    def seed_candles(self, n: int = INITIAL_CANDLES, start: float = 65000.0) -> List[Candle]:
        """
        Build an initial unbiased candle history.

        Args:
            n: Number of candles
            start: Open of the first candle

        Returns:
            List of n chained candles (each opens at the previous close)
        """
        candles = []
        price = start
        for _ in range(n):
            candle = self.next_candle(price)
            candles.append(candle)
            price = candle.close
        return candles

    def step_price(self, previous: float, volatility: float) -> float:
        """
        Single-price random step used by the multi-asset simulator.

        next = max(previous * (1 + (u - 0.49) * volatility), 0.01)
        """
        return max(
            previous * (1 + (self._uniform() - STEP_PRICE_CENTER) * volatility),
            STEP_PRICE_FLOOR,
        )


class CandleWindow:
    """
    Bounded append-only candle window.

    Once full, each append drops the oldest candle.
    """

    def __init__(self, candles: Iterable[Candle] = (), maxlen: int = CANDLE_WINDOW):
        if maxlen < 1:
            raise ValueError(f"maxlen must be positive, got {maxlen}")
        self._candles = deque(candles, maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._candles.maxlen

    @property
    def last(self) -> Candle:
        if not self._candles:
            raise IndexError("CandleWindow is empty")
        return self._candles[-1]

    @property
    def first(self) -> Candle:
        if not self._candles:
            raise IndexError("CandleWindow is empty")
        return self._candles[0]

    def append(self, candle: Candle) -> None:
        self._candles.append(candle)

    def reset(self, candles: Iterable[Candle]) -> None:
        self._candles = deque(candles, maxlen=self._candles.maxlen)

    def closes(self) -> List[float]:
        return [c.close for c in self._candles]

    def to_list(self) -> List[Candle]:
        return list(self._candles)

    def to_frame(self) -> pd.DataFrame:
        """Window as a DataFrame with open/high/low/close columns."""
        return pd.DataFrame(
            [c.to_dict() for c in self._candles],
            columns=["open", "high", "low", "close"],
        )

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self):
        return iter(self._candles)

    def __getitem__(self, index: int) -> Candle:
        return self._candles[index]
