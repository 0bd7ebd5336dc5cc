"""
Trading simulator core.

Synthetic market (candles, order book, EMA panel, transient bias), the
position/order ledger with liquidation, TP/SL and trailing exits, bounded
trade history, and the per-mode facades that tie them to a market clock.

Usage:
    from tradesim.sim import ManualScheduler, create_simulator

    scheduler = ManualScheduler()
    sim = create_simulator("futures", scheduler=scheduler)
    sim.start()
    sim.place_order("buy", "0.1")
    scheduler.advance(5000)
    print(sim.account())
"""

from .errors import (
    SimulatorError,
    ValidationError,
    InvalidAmount,
    InvalidPrice,
    InsufficiencyError,
    InsufficientBalance,
    InsufficientMargin,
    InsufficientHoldings,
    ExceedsMaxBorrow,
    NothingToRepay,
    PositionNotFound,
    OrderNotFound,
)
from .types import (
    InstrumentKind,
    Direction,
    OrderSide,
    OrderType,
    CloseReason,
    Candle,
    OrderBook,
    OrderBookRow,
    Position,
    LimitOrder,
    HistoryRecord,
    OrderResult,
    TickResult,
    ActionResult,
)
from .clock import Scheduler, ManualScheduler, AsyncioScheduler, MarketClock
from .storage import KeyValueStore, MemoryStore, JsonFileStore
from .history import HistoryBus, HistoryStore, HistorySummary, summarize
from .notifications import Notifier, NoopNotifier, ToastNotifier, Toast
from .indicators import ema, ema_panel, ema_frame
from .liquidation import LiquidationModel, LiquidationModelConfig
from .ledger import PositionLedger
from .facades import (
    BaseSimulator,
    SpotSimulator,
    MarginSimulator,
    FuturesSimulator,
    MultiAssetSimulator,
)
from .factory import create_simulator, available_simulators

__all__ = [
    # Errors
    "SimulatorError",
    "ValidationError",
    "InvalidAmount",
    "InvalidPrice",
    "InsufficiencyError",
    "InsufficientBalance",
    "InsufficientMargin",
    "InsufficientHoldings",
    "ExceedsMaxBorrow",
    "NothingToRepay",
    "PositionNotFound",
    "OrderNotFound",
    # Types
    "InstrumentKind",
    "Direction",
    "OrderSide",
    "OrderType",
    "CloseReason",
    "Candle",
    "OrderBook",
    "OrderBookRow",
    "Position",
    "LimitOrder",
    "HistoryRecord",
    "OrderResult",
    "TickResult",
    "ActionResult",
    # Collaborators
    "Scheduler",
    "ManualScheduler",
    "AsyncioScheduler",
    "MarketClock",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "HistoryBus",
    "HistoryStore",
    "HistorySummary",
    "summarize",
    "Notifier",
    "NoopNotifier",
    "ToastNotifier",
    "Toast",
    # Engine
    "ema",
    "ema_panel",
    "ema_frame",
    "LiquidationModel",
    "LiquidationModelConfig",
    "PositionLedger",
    # Facades
    "BaseSimulator",
    "SpotSimulator",
    "MarginSimulator",
    "FuturesSimulator",
    "MultiAssetSimulator",
    "create_simulator",
    "available_simulators",
]
