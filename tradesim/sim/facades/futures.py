"""
Futures simulator.

Buy opens a long, sell opens a short, market or limit. Leverage tiers and
the isolated/cross label come from the preset. Liquidation, TP/SL and
trailing take-profit all apply.
"""

from typing import Any, Dict

from .base import floor_amount
from .leveraged import LeveragedSimulator
from ..types import ActionResult, InstrumentKind, OrderSide, OrderType
from ...utils.helpers import safe_ratio


class FuturesSimulator(LeveragedSimulator):
    """BTC/USDT perpetual-style futures."""

    kind = "futures"
    instrument = InstrumentKind.FUTURES

    def _place(self, side: OrderSide, order_type: OrderType, amount: Any, price: Any) -> ActionResult:
        if order_type == OrderType.LIMIT:
            return self._queue_limit(side, amount, price, self._leverage)
        return self._open_market(side, amount)

    def open_long(self, amount: Any, order_type: str = "market", price: Any = None) -> ActionResult:
        return self.place_order("buy", amount, order_type, price)

    def open_short(self, amount: Any, order_type: str = "market", price: Any = None) -> ActionResult:
        return self.place_order("sell", amount, order_type, price)

    def percent_to_amount(self, pct: float, side: OrderSide = OrderSide.BUY) -> float:
        """pct of balance * leverage, converted to base units at the current price."""
        pct = max(0.0, min(100.0, pct))
        return floor_amount(self.ledger.balance * self._leverage * pct / 100 / self._current_price)

    def account(self) -> Dict[str, float]:
        price = self._current_price
        used = self.ledger.used_margin
        unrealized = self.ledger.unrealized_pnl(price)
        equity = self.ledger.balance + used + unrealized
        return {
            "balance": self.ledger.balance,
            "used_margin": used,
            "position_value": sum(p.notional for p in self.ledger.positions),
            "unrealized_pnl": unrealized,
            "equity": equity,
            "margin_ratio": safe_ratio(equity, used) * 100,
            "leverage": self._leverage,
            "margin_mode": self._margin_mode,
        }
