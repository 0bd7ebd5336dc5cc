"""
Liquidation model.

The liquidation price is fixed when a position opens:
    long:  entry * (1 - 1/leverage * buffer)
    short: entry * (1 + 1/leverage * buffer)

With buffer = 0.9 the position is force-closed once 90% of its theoretical
full-margin loss is reached. A liquidated position forfeits its margin.
"""

from dataclasses import dataclass
from typing import Optional

from .types import Direction, Position
from ..config.constants import LIQUIDATION_BUFFER


@dataclass
class LiquidationModelConfig:
    """Configuration for liquidation model."""
    buffer: float = LIQUIDATION_BUFFER


class LiquidationModel:
    """Computes liquidation prices and checks them against the tick price."""

    def __init__(self, config: Optional[LiquidationModelConfig] = None):
        self._config = config or LiquidationModelConfig()

    def liquidation_price(self, entry_price: float, leverage: float, direction: Direction) -> float:
        """
        Liquidation price for a new position.

        Args:
            entry_price: Entry price (> 0)
            leverage: Leverage (>= 1)
            direction: Position direction

        Returns:
            Price below entry for longs, above entry for shorts
        """
        if leverage < 1:
            raise ValueError(f"leverage must be >= 1, got {leverage}")
        move = 1.0 / leverage * self._config.buffer
        if direction == Direction.LONG:
            return entry_price * (1 - move)
        return entry_price * (1 + move)

    def is_liquidated(self, position: Position, price: float) -> bool:
        """long: price <= liquidation price; short: price >= liquidation price."""
        if position.direction == Direction.LONG:
            return price <= position.liquidation_price
        return price >= position.liquidation_price
