"""
Position ledger: the simulator state machine.

Owns, per simulator instance:
- balance: free quote balance (borrowed funds are credited here too)
- borrowed: outstanding borrow (margin only), bounded by balance * (leverage - 1)
- holdings / avg_cost: base-asset position of the spot simulator
- open positions and pending limit orders (leveraged kinds)

Per-tick evaluation order (on_price), which is also the tie-break policy:
1. Liquidation     long: price <= liq, short: price >= liq; margin forfeited
2. Take-profit     exits at the TP level
3. Stop-loss       exits at the SL level
4. Trailing TP     arms at activation, exits on a callback% pullback
5. Limit orders    buy: price <= limit, sell: price >= limit; all-or-nothing

Closing always credits margin + pnl back to balance (liquidation credits
nothing), writes a HistoryRecord and removes exactly that position.

All validation happens before any mutation: a raised SimulatorError leaves
the ledger unchanged. The one documented exception is reverse_position,
which closes first and may then fail to reopen.
"""

import math
import time
from typing import Callable, Dict, List, Optional

from .errors import (
    ExceedsMaxBorrow,
    InsufficientBalance,
    InsufficientHoldings,
    InsufficientMargin,
    InvalidAmount,
    InvalidPrice,
    NothingToRepay,
    OrderNotFound,
    PositionNotFound,
    SimulatorError,
    ValidationError,
)
from .history import HistoryStore
from .liquidation import LiquidationModel
from .notifications import NoopNotifier, Notifier
from .types import (
    CloseReason,
    Direction,
    HistoryRecord,
    InstrumentKind,
    LimitOrder,
    OrderResult,
    OrderSide,
    OrderType,
    Position,
    TickResult,
)
from ..config.constants import DEFAULT_TRAIL_CALLBACK, validate_symbol
from ..utils.helpers import safe_ratio
from ..utils.logger import get_logger

# Tolerance for float dust when comparing quantities
_QTY_EPSILON = 1e-12


def _require_positive(value: float, error: type) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise error() from None
    if not math.isfinite(number) or number <= 0:
        raise error()
    return number


class PositionLedger:
    """
    Balances, positions and orders for one simulator instance.

    Usage:
        ledger = PositionLedger(InstrumentKind.MARGIN, "ETH/USDT", 10000.0)
        ledger.on_price(1893.0)
        result = ledger.place_order(OrderSide.BUY, OrderType.MARKET, 1.0, leverage=10)
        ledger.on_price(1700.0)  # liquidates result.position
    """

    def __init__(
        self,
        kind: InstrumentKind,
        symbol: str,
        initial_balance: float,
        history: Optional[HistoryStore] = None,
        notifier: Optional[Notifier] = None,
        now_ms: Optional[Callable[[], int]] = None,
        liquidation: Optional[LiquidationModel] = None,
        fee_rate: float = 0.0,
        default_leverage: int = 1,
    ):
        """
        Initialize ledger.

        Args:
            kind: Instrument kind (spot fixes leverage at 1, no positions)
            symbol: BASE/QUOTE symbol
            initial_balance: Starting quote balance
            history: Where closed trades are recorded (None = not recorded)
            notifier: Toast collaborator for tick-driven events
            now_ms: Clock for timestamps (defaults to wall time)
            liquidation: Liquidation model
            fee_rate: Spot taker fee as a fraction
            default_leverage: Leverage used when none is given
        """
        self.kind = InstrumentKind(kind)
        self.symbol = validate_symbol(symbol)
        self.initial_balance = float(initial_balance)
        self.fee_rate = fee_rate
        self.default_leverage = 1 if self.kind == InstrumentKind.SPOT else int(default_leverage)
        self.history = history
        self.notifier = notifier or NoopNotifier()
        self._now_ms = now_ms or (lambda: int(time.time() * 1000))
        self._liquidation = liquidation or LiquidationModel()
        self.logger = get_logger()

        self._next_position_id = 0
        self._next_order_id = 0
        self.mark_price: Optional[float] = None
        self._init_state()

    def _init_state(self) -> None:
        self.balance = self.initial_balance
        self.borrowed = 0.0
        self.holdings = 0.0
        self.avg_cost = 0.0
        self.holding_opened_at = 0
        self.total_fees_paid = 0.0
        self._positions: Dict[int, Position] = {}
        self._orders: Dict[int, LimitOrder] = {}

    def reset(self) -> None:
        """Restore initial balance and drop all positions and orders. Ids keep counting."""
        self._init_state()

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def positions(self) -> List[Position]:
        """Open positions, oldest first."""
        return list(self._positions.values())

    @property
    def orders(self) -> List[LimitOrder]:
        """Pending limit orders, oldest first."""
        return list(self._orders.values())

    def position(self, position_id: int) -> Position:
        try:
            return self._positions[position_id]
        except KeyError:
            raise PositionNotFound(position_id) from None

    @property
    def used_margin(self) -> float:
        return sum(p.margin for p in self._positions.values())

    def unrealized_pnl(self, price: Optional[float] = None) -> float:
        """Unrealized PnL of all open positions (spot: of holdings vs avg cost)."""
        price = self._price(price)
        if self.kind == InstrumentKind.SPOT:
            return (price - self.avg_cost) * self.holdings if self.holdings > 0 else 0.0
        return sum(p.unrealized_pnl(price) for p in self._positions.values())

    def max_borrow(self, leverage: int) -> float:
        """Remaining borrow capacity: balance * (leverage - 1) - borrowed."""
        return max(0.0, self.balance * (leverage - 1) - self.borrowed)

    def check_invariants(self) -> List[str]:
        """
        Check ledger invariants.

        Returns:
            List of error messages (empty if all invariants hold)
        """
        errors = []
        if self.balance < -1e-8:
            errors.append(f"Invariant violated: balance ({self.balance:.8f}) < 0")
        if self.borrowed < 0:
            errors.append(f"Invariant violated: borrowed ({self.borrowed:.8f}) < 0")
        if self.holdings < 0:
            errors.append(f"Invariant violated: holdings ({self.holdings:.8f}) < 0")
        if self.holdings == 0 and self.avg_cost != 0:
            errors.append(f"Invariant violated: avg_cost ({self.avg_cost}) with no holdings")
        for p in self._positions.values():
            if p.size <= 0 or p.entry_price <= 0 or p.margin <= 0:
                errors.append(f"Invariant violated: position {p.position_id} has non-positive size/price/margin")
            if p.direction == Direction.LONG and p.liquidation_price >= p.entry_price and p.leverage > 1:
                errors.append(f"Invariant violated: long {p.position_id} liquidates above entry")
            if p.direction == Direction.SHORT and p.liquidation_price <= p.entry_price:
                errors.append(f"Invariant violated: short {p.position_id} liquidates below entry")
        return errors

    def _price(self, price: Optional[float] = None) -> float:
        if price is not None:
            return price
        if self.mark_price is None:
            raise SimulatorError("No market price yet", code="NO_PRICE")
        return self.mark_price

    def _validate_leverage(self, leverage: Optional[int]) -> int:
        if self.kind == InstrumentKind.SPOT:
            return 1
        lev = self.default_leverage if leverage is None else leverage
        if not isinstance(lev, (int, float)) or lev < 1 or int(lev) != lev:
            raise ValidationError(f"Invalid leverage: {leverage}", code="INVALID_LEVERAGE")
        return int(lev)

    # ─────────────────────────────────────────────────────────────────────────
    # Orders
    # ─────────────────────────────────────────────────────────────────────────

    def place_order(
        self,
        side: OrderSide,
        order_type: OrderType,
        amount: float,
        price: Optional[float] = None,
        leverage: Optional[int] = None,
    ) -> OrderResult:
        """
        Place a market or limit order.

        Market orders fill immediately at the mark price. Leveraged kinds open
        a position in the side's direction; spot buys/sells adjust holdings.
        Limit orders are queued and evaluated on every tick.

        Args:
            side: buy or sell
            order_type: market or limit
            amount: Base-asset quantity (> 0)
            price: Limit price (required for limit orders)
            leverage: Leverage for leveraged kinds (defaults to default_leverage)

        Returns:
            OrderResult describing the fill or the queued order

        Raises:
            InvalidAmount: amount not a positive number
            InvalidPrice: limit order without a positive price
            InsufficientBalance: market order the balance cannot cover
            InsufficientHoldings: spot market sell beyond holdings
        """
        side = OrderSide(side)
        order_type = OrderType(order_type)
        amount = _require_positive(amount, InvalidAmount)
        lev = self._validate_leverage(leverage)

        if order_type == OrderType.LIMIT:
            limit_price = _require_positive(price, InvalidPrice)
            return self._queue_limit(side, limit_price, amount, lev)

        exec_price = self._price()
        if self.kind == InstrumentKind.SPOT:
            if side == OrderSide.BUY:
                return self._spot_buy(exec_price, amount, check=True)
            return self._spot_sell(exec_price, amount, check=True)

        margin = amount * exec_price / lev
        if margin > self.balance:
            raise InsufficientBalance(margin, self.balance)
        position = self._open(side.direction, amount, exec_price, lev)
        return OrderResult(
            order_type=order_type, side=side, price=exec_price, amount=amount, position=position,
        )

    def _queue_limit(self, side: OrderSide, price: float, amount: float, leverage: int) -> OrderResult:
        self._next_order_id += 1
        order = LimitOrder(
            order_id=self._next_order_id,
            side=side,
            price=price,
            amount=amount,
            leverage=leverage,
            placed_at=self._now_ms(),
        )
        self._orders[order.order_id] = order
        self.logger.trade(
            "ORDER_PLACED", self.symbol, side.value, amount, price,
            order_id=order.order_id, type="limit", leverage=leverage,
        )
        return OrderResult(
            order_type=OrderType.LIMIT, side=side, price=price, amount=amount, order=order,
        )

    def cancel_order(self, order_id: int) -> LimitOrder:
        """
        Remove a pending limit order.

        Raises:
            OrderNotFound: If no pending order has this id
        """
        order = self._orders.pop(order_id, None)
        if order is None:
            raise OrderNotFound(order_id)
        self.logger.trade(
            "ORDER_CANCELLED", self.symbol, order.side.value, order.amount, order.price,
            order_id=order_id,
        )
        return order

    # ─────────────────────────────────────────────────────────────────────────
    # Spot
    # ─────────────────────────────────────────────────────────────────────────

    def _spot_buy(self, price: float, amount: float, check: bool,
                  order_type: OrderType = OrderType.MARKET) -> Optional[OrderResult]:
        cost = price * amount
        fee = cost * self.fee_rate
        if cost + fee > self.balance:
            if check:
                raise InsufficientBalance(cost + fee, self.balance)
            return None

        if self.holdings > 0:
            self.avg_cost = (self.avg_cost * self.holdings + price * amount) / (self.holdings + amount)
        else:
            self.avg_cost = price
            self.holding_opened_at = self._now_ms()
        self.holdings += amount
        self.balance -= cost + fee
        self.total_fees_paid += fee

        self.logger.trade("SPOT_BUY", self.symbol, "buy", amount, price, fee=f"{fee:.4f}")
        return OrderResult(
            order_type=order_type, side=OrderSide.BUY, price=price, amount=amount, fee=fee,
        )

    def _spot_sell(self, price: float, amount: float, check: bool,
                   order_type: OrderType = OrderType.MARKET) -> Optional[OrderResult]:
        if amount > self.holdings + _QTY_EPSILON:
            if check:
                raise InsufficientHoldings(amount, self.holdings)
            return None

        amount = min(amount, self.holdings)
        proceeds = price * amount
        fee = proceeds * self.fee_rate
        pnl = (price - self.avg_cost) * amount
        pnl_pct = safe_ratio(pnl, self.avg_cost * amount) * 100
        entry = self.avg_cost
        opened_at = self.holding_opened_at or self._now_ms()

        self.balance += proceeds - fee
        self.total_fees_paid += fee
        self.holdings = max(0.0, self.holdings - amount)
        if self.holdings <= _QTY_EPSILON:
            self.holdings = 0.0
            self.avg_cost = 0.0
            self.holding_opened_at = 0

        record = self._record(
            direction=Direction.LONG, entry=entry, exit_price=price, size=amount,
            leverage=1, pnl=pnl, pnl_pct=pnl_pct, reason=CloseReason.MANUAL, opened_at=opened_at,
        )
        self.logger.trade("SPOT_SELL", self.symbol, "sell", amount, price, pnl=pnl, fee=f"{fee:.4f}")
        return OrderResult(
            order_type=order_type, side=OrderSide.SELL, price=price, amount=amount,
            record=record, fee=fee,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Positions
    # ─────────────────────────────────────────────────────────────────────────

    def _open(self, direction: Direction, size: float, price: float, leverage: int) -> Position:
        margin = size * price / leverage
        self._next_position_id += 1
        position = Position(
            position_id=self._next_position_id,
            symbol=self.symbol,
            kind=self.kind,
            direction=direction,
            size=size,
            entry_price=price,
            leverage=leverage,
            margin=margin,
            liquidation_price=self._liquidation.liquidation_price(price, leverage, direction),
            opened_at=self._now_ms(),
        )
        self.balance -= margin
        self._positions[position.position_id] = position
        self.logger.trade(
            "POSITION_OPENED", self.symbol, direction.value, size, price,
            id=position.position_id, leverage=leverage, margin=f"{margin:.2f}",
            liq=f"{position.liquidation_price:.2f}",
        )
        return position

    def _record(self, direction: Direction, entry: float, exit_price: float, size: float,
                leverage: int, pnl: float, pnl_pct: float, reason: CloseReason,
                opened_at: int) -> HistoryRecord:
        record = HistoryRecord(
            id=0,
            symbol=self.symbol,
            direction=direction,
            entry_price=entry,
            exit_price=exit_price,
            size=size,
            leverage=leverage,
            pnl=pnl,
            pnl_pct=pnl_pct,
            reason=reason,
            opened_at=opened_at,
            closed_at=self._now_ms(),
        )
        if self.history is not None:
            record = self.history.append(record)
        return record

    def _close(self, position: Position, exit_price: float, reason: CloseReason) -> HistoryRecord:
        pnl = position.unrealized_pnl(exit_price)
        self.balance += position.margin + pnl
        del self._positions[position.position_id]
        record = self._record(
            direction=position.direction,
            entry=position.entry_price,
            exit_price=exit_price,
            size=position.size,
            leverage=position.leverage,
            pnl=pnl,
            pnl_pct=position.pnl_pct(exit_price),
            reason=reason,
            opened_at=position.opened_at,
        )
        self.logger.trade(
            "POSITION_CLOSED", self.symbol, position.direction.value, position.size, exit_price,
            pnl=pnl, id=position.position_id, reason=reason.value,
        )
        return record

    def close_position(self, position_id: int, reason: CloseReason = CloseReason.MANUAL,
                       price: Optional[float] = None) -> HistoryRecord:
        """
        Close an open position at the mark price (or an explicit price).

        Credits margin + pnl to balance and records the trade.

        Returns:
            The HistoryRecord; its pnl is the realized PnL

        Raises:
            PositionNotFound: If the id is not open
        """
        position = self.position(position_id)
        return self._close(position, self._price(price), CloseReason(reason))

    def reverse_position(self, position_id: int) -> Position:
        """
        Close a position and reopen the same size in the opposite direction.

        The reopen uses the mark price and the same leverage. Not atomic: if
        the new margin exceeds the balance after the close, the close stands
        and InsufficientMargin is raised carrying the closed record.

        Returns:
            The new opposite position

        Raises:
            PositionNotFound: If the id is not open
            InsufficientMargin: If the reopen cannot be funded
        """
        position = self.position(position_id)
        price = self._price()
        record = self._close(position, price, CloseReason.REVERSED)

        new_margin = position.size * price / position.leverage
        if new_margin > self.balance:
            raise InsufficientMargin(new_margin, self.balance, closed_record=record)
        return self._open(position.direction.opposite(), position.size, price, position.leverage)

    def set_tp_sl(self, position_id: int, take_profit: Optional[float] = None,
                  stop_loss: Optional[float] = None) -> Position:
        """
        Set both TP and SL on an open position. None clears a level.

        Raises:
            PositionNotFound: If the id is not open
            InvalidPrice: If a given level is not a positive number
        """
        position = self.position(position_id)
        tp = None if take_profit is None else _require_positive(take_profit, InvalidPrice)
        sl = None if stop_loss is None else _require_positive(stop_loss, InvalidPrice)
        position.take_profit = tp
        position.stop_loss = sl
        self.logger.debug(f"Position {position_id} TP={tp} SL={sl}")
        return position

    def set_trailing(self, position_id: int, activation: Optional[float],
                     callback: float = DEFAULT_TRAIL_CALLBACK) -> Position:
        """
        Set (or clear, with activation=None) a trailing take-profit.

        Args:
            activation: Price that arms the trail
            callback: Pullback percent from the best price that closes it (0-100)
        """
        position = self.position(position_id)
        if activation is None:
            position.trail_activate = None
            position.trail_callback = None
        else:
            position.trail_activate = _require_positive(activation, InvalidPrice)
            cb = _require_positive(callback, InvalidAmount)
            if cb >= 100:
                raise InvalidAmount("Trailing callback must be below 100%")
            position.trail_callback = cb
        position.trail_armed = False
        position.trail_extreme = None
        return position

    # ─────────────────────────────────────────────────────────────────────────
    # Borrowing (margin)
    # ─────────────────────────────────────────────────────────────────────────

    def borrow(self, amount: float, leverage: Optional[int] = None) -> float:
        """
        Borrow quote currency against the balance.

        Raises:
            InvalidAmount: amount not positive
            ExceedsMaxBorrow: amount > balance * (leverage - 1) - borrowed
        """
        if self.kind != InstrumentKind.MARGIN:
            raise SimulatorError("Borrowing is only available on margin", code="UNSUPPORTED")
        amount = _require_positive(amount, InvalidAmount)
        lev = self._validate_leverage(leverage)
        ceiling = self.balance * (lev - 1) - self.borrowed
        if amount > ceiling:
            raise ExceedsMaxBorrow(amount, max(0.0, ceiling))
        self.borrowed += amount
        self.balance += amount
        self.logger.trade("BORROW", self.symbol, "borrow", amount, borrowed=f"{self.borrowed:.2f}")
        return amount

    def repay(self) -> float:
        """
        Repay the full outstanding borrow.

        Returns:
            Amount repaid

        Raises:
            NothingToRepay: nothing borrowed
            InsufficientBalance: balance < borrowed
        """
        if self.borrowed <= 0:
            raise NothingToRepay()
        if self.balance < self.borrowed:
            raise InsufficientBalance(self.borrowed, self.balance)
        repaid = self.borrowed
        self.balance -= repaid
        self.borrowed = 0.0
        self.logger.trade("REPAY", self.symbol, "repay", repaid)
        return repaid

    # ─────────────────────────────────────────────────────────────────────────
    # Tick evaluation
    # ─────────────────────────────────────────────────────────────────────────

    def on_price(self, price: float) -> TickResult:
        """
        Apply a new market price: liquidation, TP, SL, trailing, then limit orders.

        Args:
            price: New mark price (> 0)

        Returns:
            TickResult listing every close and fill this tick produced
        """
        if not price > 0:
            raise ValueError(f"price must be positive, got {price}")
        self.mark_price = price
        result = TickResult(price=price)

        for position in list(self._positions.values()):
            self._evaluate_position(position, price, result)

        for order in list(self._orders.values()):
            self._evaluate_order(order, price, result)

        return result

    def _evaluate_position(self, position: Position, price: float, result: TickResult) -> None:
        if self._liquidation.is_liquidated(position, price):
            result.liquidated.append(self._liquidate(position, price))
            return

        long = position.direction == Direction.LONG
        tp, sl = position.take_profit, position.stop_loss

        if tp is not None and (price >= tp if long else price <= tp):
            record = self._close(position, tp, CloseReason.TAKE_PROFIT)
            self.notifier.show(f"Take-profit hit {record.pnl:+.2f} USDT", True)
            result.closed.append(record)
            return

        if sl is not None and (price <= sl if long else price >= sl):
            record = self._close(position, sl, CloseReason.STOP_LOSS)
            self.notifier.show(f"Stop-loss hit {record.pnl:+.2f} USDT", False)
            result.closed.append(record)
            return

        if position.trail_activate is not None and self._trail_triggered(position, price):
            record = self._close(position, price, CloseReason.TRAILING)
            self.notifier.show(f"Trailing take-profit hit {record.pnl:+.2f} USDT", record.pnl >= 0)
            result.closed.append(record)

    def _trail_triggered(self, position: Position, price: float) -> bool:
        long = position.direction == Direction.LONG
        if not position.trail_armed:
            reached = price >= position.trail_activate if long else price <= position.trail_activate
            if reached:
                position.trail_armed = True
                position.trail_extreme = price
            return False

        extreme = position.trail_extreme if position.trail_extreme is not None else price
        position.trail_extreme = max(extreme, price) if long else min(extreme, price)
        callback = (position.trail_callback or DEFAULT_TRAIL_CALLBACK) / 100.0
        if long:
            return price <= position.trail_extreme * (1 - callback)
        return price >= position.trail_extreme * (1 + callback)

    def _liquidate(self, position: Position, price: float) -> HistoryRecord:
        del self._positions[position.position_id]
        record = self._record(
            direction=position.direction,
            entry=position.entry_price,
            exit_price=price,
            size=position.size,
            leverage=position.leverage,
            pnl=-position.margin,
            pnl_pct=-100.0,
            reason=CloseReason.LIQUIDATED,
            opened_at=position.opened_at,
        )
        self.logger.risk(
            "WARNING", "Position liquidated",
            symbol=self.symbol, id=position.position_id, direction=position.direction.value,
            price=f"{price:.4f}", liq=f"{position.liquidation_price:.4f}",
            margin_lost=f"{position.margin:.2f}",
        )
        self.notifier.show("Position liquidated", False)
        return record

    def _evaluate_order(self, order: LimitOrder, price: float, result: TickResult) -> None:
        if not order.is_triggered(price):
            return

        if self.kind == InstrumentKind.SPOT:
            if order.side == OrderSide.BUY:
                filled = self._spot_buy(order.price, order.amount, check=False, order_type=OrderType.LIMIT)
            else:
                filled = self._spot_sell(order.price, order.amount, check=False, order_type=OrderType.LIMIT)
            if filled is None:
                return
            if filled.record is not None:
                result.closed.append(filled.record)
        else:
            margin = order.amount * order.price / order.leverage
            if margin > self.balance:
                # Stays pending until the balance can cover it
                self.logger.debug(
                    f"Limit order {order.order_id} triggered but margin {margin:.2f} "
                    f"exceeds balance {self.balance:.2f}"
                )
                return
            result.opened.append(
                self._open(order.side.direction, order.amount, order.price, order.leverage)
            )

        del self._orders[order.order_id]
        result.filled.append(order)
        self.logger.trade(
            "ORDER_FILLED", self.symbol, order.side.value, order.amount, order.price,
            order_id=order.order_id,
        )
        self.notifier.show(f"Limit order filled @ {order.price:.2f}", True)
