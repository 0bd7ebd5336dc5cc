"""
Synthetic order book.

Regenerated in full every tick around the current mid price. Purely
representative: the ledger never matches against it.

Asks: `rows` levels at mid + i * tick for i = rows..1 (furthest first).
Bids: `rows` levels at mid - i * tick for i = 1..rows (nearest first).
Quantities are independent uniform draws, rounded to 4 decimals.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..types import OrderBook, OrderBookRow
from ...config.constants import BOOK_QTY_MAX, BOOK_QTY_MIN, BOOK_ROWS, BOOK_TICK


@dataclass
class OrderBookConfig:
    """Configuration for the synthetic book."""
    rows: int = BOOK_ROWS
    tick: float = BOOK_TICK
    qty_max: float = BOOK_QTY_MAX
    qty_min: float = BOOK_QTY_MIN


class OrderBookSynth:
    """Builds OrderBook snapshots around a mid price."""

    def __init__(
        self,
        config: Optional[OrderBookConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self._config = config or OrderBookConfig()
        self._rng = rng if rng is not None else np.random.default_rng()

    def _qty(self) -> float:
        cfg = self._config
        return round(float(self._rng.random()) * cfg.qty_max + cfg.qty_min, 4)

    def generate(self, mid: float, rows: Optional[int] = None) -> OrderBook:
        """
        Generate a book snapshot.

        Args:
            mid: Mid price
            rows: Levels per side (defaults to config.rows)

        Returns:
            OrderBook with asks > mid > bids
        """
        rows = self._config.rows if rows is None else rows
        if rows < 1:
            raise ValueError(f"rows must be positive, got {rows}")
        tick = self._config.tick

        asks = [OrderBookRow(price=mid + i * tick, quantity=self._qty()) for i in range(rows, 0, -1)]
        bids = [OrderBookRow(price=mid - i * tick, quantity=self._qty()) for i in range(1, rows + 1)]
        return OrderBook(mid=mid, asks=asks, bids=bids)


def gen_book(mid: float, rows: int = BOOK_ROWS,
             rng: Optional[np.random.Generator] = None) -> OrderBook:
    """Convenience wrapper around OrderBookSynth.generate."""
    return OrderBookSynth(rng=rng).generate(mid, rows)
