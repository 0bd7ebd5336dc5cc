"""
Pricing models for the simulators.

Generates synthetic candles and single-price steps, the representative
order book, and the transient post-trade bias.
"""

from .price_process import (
    PriceProcess,
    PriceProcessConfig,
    CandleWindow,
    clamp_bias,
)
from .order_book import OrderBookSynth, OrderBookConfig, gen_book
from .bias import BiasController

__all__ = [
    "PriceProcess",
    "PriceProcessConfig",
    "CandleWindow",
    "clamp_bias",
    "OrderBookSynth",
    "OrderBookConfig",
    "gen_book",
    "BiasController",
]
