"""
Margin simulator.

Market buy opens a leveraged long; market sell closes the oldest long.
Limit orders open a long (buy) or short (sell) when they fill. Funds can be
borrowed up to balance * (leverage - 1) and repaid in full. The hourly
interest rate is shown but never charged.
"""

from typing import Any, Dict

from .base import floor_amount, parse_amount
from .leveraged import LeveragedSimulator
from ..errors import InsufficientHoldings
from ..types import ActionResult, Direction, InstrumentKind, OrderSide, OrderType


class MarginSimulator(LeveragedSimulator):
    """ETH/USDT margin trading with borrow/repay."""

    kind = "margin"
    instrument = InstrumentKind.MARGIN

    def _place(self, side: OrderSide, order_type: OrderType, amount: Any, price: Any) -> ActionResult:
        if order_type == OrderType.LIMIT:
            return self._queue_limit(side, amount, price, self._leverage)
        if side == OrderSide.BUY:
            return self._open_market(side, amount)
        return self._sell_oldest_long(amount)

    def _sell_oldest_long(self, amount: Any) -> ActionResult:
        parse_amount(amount)
        longs = [p for p in self.ledger.positions if p.direction == Direction.LONG]
        if not longs:
            raise InsufficientHoldings(0.0, 0.0, message="No long position to sell")
        record = self.ledger.close_position(longs[0].position_id)
        return ActionResult(
            success=True,
            message=f"Sold, PnL {record.pnl:+.2f} USDT",
            data={"record": record.to_dict(), "pnl": record.pnl},
        )

    def buy(self, amount: Any, order_type: str = "market", price: Any = None) -> ActionResult:
        return self.place_order("buy", amount, order_type, price)

    def sell(self, amount: Any, order_type: str = "market", price: Any = None) -> ActionResult:
        return self.place_order("sell", amount, order_type, price)

    # ─────────────────────────────────────────────────────────────────────────
    # Borrowing
    # ─────────────────────────────────────────────────────────────────────────

    def max_borrow(self) -> float:
        """Remaining borrow capacity at the selected leverage."""
        return self.ledger.max_borrow(self._leverage)

    def hourly_interest(self) -> float:
        """Interest per hour on the outstanding borrow (display only)."""
        return self.ledger.borrowed * self.preset.hourly_rate / 100

    def borrow(self, amount: Any) -> ActionResult:
        def action():
            qty = parse_amount(amount)
            borrowed = self.ledger.borrow(qty, self._leverage)
            return ActionResult(
                success=True,
                message=f"Borrowed {borrowed:.2f} USDT",
                data={"borrowed": self.ledger.borrowed, "balance": self.ledger.balance},
            )
        return self._run("borrow", action)

    def repay(self) -> ActionResult:
        def action():
            repaid = self.ledger.repay()
            return ActionResult(
                success=True,
                message=f"Repaid {repaid:.2f} USDT",
                data={"repaid": repaid, "balance": self.ledger.balance},
            )
        return self._run("repay", action)

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    def percent_to_amount(self, pct: float, side: OrderSide = OrderSide.BUY) -> float:
        """pct of (balance + borrowed), converted to base units at the current price."""
        pct = max(0.0, min(100.0, pct))
        buying_power = self.ledger.balance + self.ledger.borrowed
        return floor_amount(buying_power * pct / 100 / self._current_price)

    def account(self) -> Dict[str, float]:
        price = self._current_price
        used = self.ledger.used_margin
        unrealized = self.ledger.unrealized_pnl(price)
        return {
            "balance": self.ledger.balance,
            "borrowed": self.ledger.borrowed,
            "used_margin": used,
            "unrealized_pnl": unrealized,
            "equity": self.ledger.balance + used + unrealized - self.ledger.borrowed,
            "max_borrow": self.max_borrow(),
            "hourly_rate": self.preset.hourly_rate,
            "hourly_interest": self.hourly_interest(),
            "leverage": self._leverage,
        }
