"""
Indicator engine.

Exponential moving averages over the visible close window. Recomputed in
full on every tick; the window is at most a few hundred candles.

Formula:
    k = 2 / (period + 1)
    ema[0] = close[0]
    ema[i] = close[i] * k + ema[i-1] * (1 - k)

Note the seed: the first value is the first close, not an SMA warmup.
"""

from typing import Dict, Iterable, List, Sequence

import pandas as pd

from ..config.constants import EMA_PERIODS


def ema(closes: Sequence[float], period: int) -> List[float]:
    """
    Exponential moving average, same length as the input.

    Args:
        closes: Close prices, oldest first
        period: EMA period (>= 1)

    Returns:
        List of EMA values; element 0 equals closes[0]

    Raises:
        ValueError: If period < 1
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    k = 2.0 / (period + 1)
    out: List[float] = []
    for i, value in enumerate(closes):
        if i == 0:
            out.append(float(value))
        else:
            out.append(float(value) * k + out[-1] * (1 - k))
    return out


def ema_panel(closes: Sequence[float], periods: Iterable[int] = EMA_PERIODS) -> Dict[int, float]:
    """
    Latest EMA value per period (the row shown above the chart).

    Returns an empty dict for an empty series.
    """
    if not closes:
        return {}
    return {period: ema(closes, period)[-1] for period in periods}


def ema_frame(candles: pd.DataFrame, periods: Iterable[int] = EMA_PERIODS) -> pd.DataFrame:
    """
    Add ema_<period> columns to a candle DataFrame.

    Uses pandas ewm(adjust=False), which follows the same recurrence and
    seed as ema().

    Args:
        candles: DataFrame with a 'close' column

    Returns:
        Copy of the frame with one column per period
    """
    if "close" not in candles.columns:
        raise ValueError("candles frame must have a 'close' column")
    out = candles.copy()
    for period in periods:
        out[f"ema_{period}"] = out["close"].ewm(span=period, adjust=False).mean()
    return out
