"""
Centralized constants for the simulators.

Runtime-tunable values (tick intervals, history cap, bias window) live in
config.py and can be overridden from the environment. Per-simulator market
parameters live in simulators.yml. What stays here are the fixed model
constants shared by every simulator instance.
"""

from typing import List, Tuple


# ==================== Symbols ====================

def validate_symbol(symbol: str) -> str:
    """
    Validate and normalize a symbol string.

    Args:
        symbol: The symbol to validate (e.g., "btc/usdt", "ETH/USDT ")

    Returns:
        Normalized symbol (uppercase, BASE/QUOTE)

    Raises:
        ValueError: If symbol is empty or not in BASE/QUOTE form
    """
    if not symbol:
        raise ValueError("Symbol is required - it must be explicitly provided")

    normalized = symbol.strip().upper().replace(" ", "")
    base, sep, quote = normalized.partition("/")
    if not sep or not base or not quote or "/" in quote:
        raise ValueError(f"Invalid symbol: '{symbol}' (expected BASE/QUOTE)")

    return normalized


def base_asset(symbol: str) -> str:
    """Return the base asset of a BASE/QUOTE symbol ("BTC/USDT" -> "BTC")."""
    return validate_symbol(symbol).split("/")[0]


# ==================== Price process ====================

# Per-step volatility band as a fraction of price
VOLATILITY_MIN = 0.002
VOLATILITY_SPAN = 0.009

# Center of the random walk before bias (slight downward drift)
DRIFT_CENTER = -0.48

# Bias is clamped to this range before it shifts the walk center
BIAS_LIMIT = 0.35

# A single step can never close below this fraction of the previous close
CLOSE_FLOOR_RATIO = 0.7

# Max wick extension beyond the open/close body
WICK_EXTENSION = 0.003

# Candle window
CANDLE_WINDOW = 100
INITIAL_CANDLES = 80

# Multi-asset single-price step
STEP_PRICE_CENTER = 0.49
STEP_PRICE_FLOOR = 0.01
PRICE_HISTORY_WINDOW = 40


# ==================== Order book ====================

BOOK_ROWS = 5
BOOK_TICK = 0.2
BOOK_QTY_MAX = 3.0
BOOK_QTY_MIN = 0.001


# ==================== Indicators ====================

EMA_PERIODS: Tuple[int, ...] = (5, 25, 45, 144)


# ==================== Ledger ====================

# Liquidation lands at 90% of the theoretical full-margin loss
LIQUIDATION_BUFFER = 0.9

# Default trailing take-profit callback (percent)
DEFAULT_TRAIL_CALLBACK = 5.0

MARGIN_MODES: List[str] = ["isolated", "cross"]


# ==================== Notifications ====================

TOAST_DURATION_MS = 2500


# ==================== History ====================

HISTORY_KEY_PREFIX = "sim_history_"
TRADE_TAPE_SIZE = 15
