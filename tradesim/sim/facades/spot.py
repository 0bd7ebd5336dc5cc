"""
Spot simulator.

Leverage fixed at 1, no liquidation, no borrowing. Buys grow holdings at a
volume-weighted average cost; sells realize PnL against that cost and are
recorded in history. sell_all() sells the exact held quantity so no dust
is left behind. A buy starts a bias window; a sell returns the market to
neutral.
"""

from typing import Any, Dict

from .base import BaseSimulator, floor_amount, parse_amount
from ..errors import InsufficientHoldings
from ..types import ActionResult, Direction, InstrumentKind, OrderSide, OrderType
from ...config.constants import base_asset
from ...utils.helpers import safe_ratio


class SpotSimulator(BaseSimulator):
    """BTC/USDT spot trading against a synthetic market."""

    kind = "spot"
    instrument = InstrumentKind.SPOT

    @property
    def holdings(self) -> float:
        return self.ledger.holdings

    @property
    def avg_cost(self) -> float:
        return self.ledger.avg_cost

    def _place(self, side: OrderSide, order_type: OrderType, amount: Any, price: Any) -> ActionResult:
        if order_type == OrderType.LIMIT:
            return self._queue_limit(side, amount, price)

        qty = parse_amount(amount)
        result = self.ledger.place_order(side, OrderType.MARKET, qty)
        asset = base_asset(self.symbol)
        decimals = self.preset.price_decimals

        if side == OrderSide.BUY:
            self.bias.on_position_opened(Direction.LONG)
            message = f"Bought {qty:.4f} {asset} @ {result.price:.{decimals}f}"
        else:
            self.bias.reset()
            message = f"Sold {qty:.4f} {asset}, PnL {result.record.pnl:+.2f}"
        return ActionResult(success=True, message=message, data=result.to_dict())

    def buy(self, amount: Any, order_type: str = "market", price: Any = None) -> ActionResult:
        return self.place_order("buy", amount, order_type, price)

    def sell(self, amount: Any, order_type: str = "market", price: Any = None) -> ActionResult:
        return self.place_order("sell", amount, order_type, price)

    def sell_all(self) -> ActionResult:
        """Sell the exact held quantity, leaving no dust behind."""
        def action():
            held = self.ledger.holdings
            if held <= 0:
                raise InsufficientHoldings(0.0, 0.0, message=f"No {base_asset(self.symbol)} to sell")
            result = self.ledger.place_order(OrderSide.SELL, OrderType.MARKET, held)
            self.bias.reset()
            return ActionResult(
                success=True,
                message=f"Sold all {base_asset(self.symbol)}, PnL {result.record.pnl:+.2f}",
                data=result.to_dict(),
            )
        return self._run("sell_all", action)

    def percent_to_amount(self, pct: float, side: OrderSide = OrderSide.BUY) -> float:
        """Buy: pct of balance at the current price, fee included. Sell: pct of holdings."""
        pct = max(0.0, min(100.0, pct))
        if OrderSide(side) == OrderSide.BUY:
            unit_cost = self._current_price * (1 + self.preset.fee_rate)
            return floor_amount(self.ledger.balance * pct / 100 / unit_cost)
        return floor_amount(self.ledger.holdings * pct / 100)

    def account(self) -> Dict[str, float]:
        price = self._current_price
        holdings = self.ledger.holdings
        avg = self.ledger.avg_cost
        unrealized = self.ledger.unrealized_pnl(price)
        return {
            "balance": self.ledger.balance,
            "holdings": holdings,
            "avg_cost": avg,
            "market_value": holdings * price,
            "unrealized_pnl": unrealized,
            "unrealized_pct": safe_ratio(price - avg, avg) * 100 if holdings > 0 else 0.0,
            "equity": self.ledger.balance + holdings * price,
            "fees_paid": self.ledger.total_fees_paid,
        }
