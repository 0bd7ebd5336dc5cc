"""
Core types for the trading simulators.

Provides all shared types, enums and result objects:
- Candle, OrderBookRow, OrderBook: synthetic market data
- Position, LimitOrder: trade lifecycle types (mutable, owned by the ledger)
- HistoryRecord: immutable snapshot of a closed trade
- OrderResult, TickResult, ActionResult: results returned to callers

Type design principles:
- Monetary values are in the quote currency of the simulator's symbol
- Sizes are base-asset quantities
- Timestamps are integer milliseconds
- Serializable (to_dict methods)
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.helpers import safe_ratio


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────

class InstrumentKind(str, Enum):
    """Instrument kind of a ledger."""
    SPOT = "spot"
    MARGIN = "margin"
    FUTURES = "futures"

    @property
    def is_leveraged(self) -> bool:
        return self is not InstrumentKind.SPOT


class Direction(str, Enum):
    """Position direction."""
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.LONG else -1

    def opposite(self) -> "Direction":
        return Direction.SHORT if self is Direction.LONG else Direction.LONG


class OrderSide(str, Enum):
    """Order side."""
    BUY = "buy"
    SELL = "sell"

    @property
    def direction(self) -> Direction:
        return Direction.LONG if self is OrderSide.BUY else Direction.SHORT


class OrderType(str, Enum):
    """Order type."""
    MARKET = "market"
    LIMIT = "limit"


class CloseReason(str, Enum):
    """Reason a position was closed."""
    MANUAL = "manual"
    TAKE_PROFIT = "tp"
    STOP_LOSS = "sl"
    LIQUIDATED = "liquidated"
    REVERSED = "reversed"
    TRAILING = "trailing"


# ─────────────────────────────────────────────────────────────────────────────
# Market data
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Candle:
    """One OHLC sample. high >= max(open, close), low <= min(open, close)."""
    open: float
    high: float
    low: float
    close: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class OrderBookRow:
    price: float
    quantity: float


@dataclass(frozen=True)
class OrderBook:
    """
    Synthetic ladder around a mid price.

    asks are sorted furthest first (descending), bids nearest first
    (descending), so both render top-to-bottom as on an exchange.
    """
    mid: float
    asks: List[OrderBookRow]
    bids: List[OrderBookRow]

    @property
    def best_ask(self) -> float:
        return self.asks[-1].price

    @property
    def best_bid(self) -> float:
        return self.bids[0].price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mid": self.mid,
            "asks": [asdict(r) for r in self.asks],
            "bids": [asdict(r) for r in self.bids],
        }


# ─────────────────────────────────────────────────────────────────────────────
# Position
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Position:
    """
    Currently open position.

    liquidation_price is fixed at open time. TP/SL/trailing fields are
    annotations the ledger evaluates on every price tick.
    """
    position_id: int
    symbol: str
    kind: InstrumentKind
    direction: Direction
    size: float  # Base currency units
    entry_price: float
    leverage: int
    margin: float
    liquidation_price: float
    opened_at: int = 0
    take_profit: Optional[float] = None
    stop_loss: Optional[float] = None
    # Trailing take-profit
    trail_activate: Optional[float] = None
    trail_callback: Optional[float] = None  # Percent
    trail_armed: bool = False
    trail_extreme: Optional[float] = None

    @property
    def notional(self) -> float:
        return self.entry_price * self.size

    def unrealized_pnl(self, mark_price: float) -> float:
        """Calculate unrealized PnL at given mark price."""
        if self.direction == Direction.LONG:
            return (mark_price - self.entry_price) * self.size
        else:
            return (self.entry_price - mark_price) * self.size

    def pnl_pct(self, mark_price: float) -> float:
        """PnL as a percent of committed margin (0 when margin is zero)."""
        return safe_ratio(self.unrealized_pnl(mark_price), self.margin) * 100

    def return_at(self, price: float) -> float:
        """Leveraged return percent if the position exits at price."""
        move = safe_ratio(price - self.entry_price, self.entry_price)
        return move * self.direction.sign * self.leverage * 100

    def price_for_return(self, pct: float) -> float:
        """Exit price that yields a leveraged return of pct percent (TP/SL entry helper)."""
        return self.entry_price * (1 + self.direction.sign * pct / 100 / self.leverage)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position_id": self.position_id,
            "symbol": self.symbol,
            "kind": self.kind.value,
            "direction": self.direction.value,
            "size": self.size,
            "entry_price": self.entry_price,
            "leverage": self.leverage,
            "margin": self.margin,
            "liquidation_price": self.liquidation_price,
            "opened_at": self.opened_at,
            "take_profit": self.take_profit,
            "stop_loss": self.stop_loss,
            "trail_activate": self.trail_activate,
            "trail_callback": self.trail_callback,
            "trail_armed": self.trail_armed,
            "trail_extreme": self.trail_extreme,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Limit order
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class LimitOrder:
    """
    Pending limit order. Fills all-or-nothing.

    Buy fills when price <= limit, sell when price >= limit.
    """
    order_id: int
    side: OrderSide
    price: float
    amount: float  # Base currency units
    leverage: int = 1
    placed_at: int = 0

    def is_triggered(self, price: float) -> bool:
        if self.side == OrderSide.BUY:
            return price <= self.price
        return price >= self.price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "side": self.side.value,
            "price": self.price,
            "amount": self.amount,
            "leverage": self.leverage,
            "placed_at": self.placed_at,
        }


# ─────────────────────────────────────────────────────────────────────────────
# History
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class HistoryRecord:
    """
    Immutable snapshot of a closed trade.

    Spot sells are recorded as long trades with entry = average cost.
    """
    id: int
    symbol: str
    direction: Direction
    entry_price: float
    exit_price: float
    size: float
    leverage: int
    pnl: float
    pnl_pct: float
    reason: CloseReason
    opened_at: int
    closed_at: int

    @property
    def is_win(self) -> bool:
        return self.pnl > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "size": self.size,
            "leverage": self.leverage,
            "pnl": self.pnl,
            "pnl_pct": self.pnl_pct,
            "reason": self.reason.value,
            "opened_at": self.opened_at,
            "closed_at": self.closed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        return cls(
            id=int(data["id"]),
            symbol=str(data["symbol"]),
            direction=Direction(data["direction"]),
            entry_price=float(data["entry_price"]),
            exit_price=float(data["exit_price"]),
            size=float(data["size"]),
            leverage=int(data.get("leverage", 1)),
            pnl=float(data["pnl"]),
            pnl_pct=float(data.get("pnl_pct", 0.0)),
            reason=CloseReason(data.get("reason", CloseReason.MANUAL.value)),
            opened_at=int(data.get("opened_at", 0)),
            closed_at=int(data.get("closed_at", 0)),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class OrderResult:
    """
    Outcome of PositionLedger.place_order.

    Exactly one of position/order/record is typically set:
    - position: a leveraged market order opened a position
    - order: a limit order was queued
    - record: a spot sell (or margin close-by-sell) realized a trade
    """
    order_type: OrderType
    side: OrderSide
    price: float
    amount: float
    position: Optional[Position] = None
    order: Optional[LimitOrder] = None
    record: Optional[HistoryRecord] = None
    fee: float = 0.0

    @property
    def filled(self) -> bool:
        return self.order is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_type": self.order_type.value,
            "side": self.side.value,
            "price": self.price,
            "amount": self.amount,
            "filled": self.filled,
            "fee": self.fee,
            "position": self.position.to_dict() if self.position else None,
            "order": self.order.to_dict() if self.order else None,
            "record": self.record.to_dict() if self.record else None,
        }


@dataclass
class TickResult:
    """Everything that happened while evaluating one price tick."""
    price: float
    candle: Optional[Candle] = None
    liquidated: List[HistoryRecord] = field(default_factory=list)
    closed: List[HistoryRecord] = field(default_factory=list)  # tp / sl / trailing
    filled: List[LimitOrder] = field(default_factory=list)
    opened: List[Position] = field(default_factory=list)

    @property
    def has_events(self) -> bool:
        return bool(self.liquidated or self.closed or self.filled)


@dataclass
class ActionResult:
    """
    Standard return type for all facade actions.

    Attributes:
        success: Whether the action succeeded
        message: Human-readable message (also shown as a toast)
        data: Structured payload (position, order, record, account)
        error: Error message if success=False
        code: Stable error code if success=False
    """
    success: bool
    message: str = ""
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
