"""
Shared simulator facade.

A facade composes one simulator instance: candle window, price process,
order book, bias, market clock, ledger, history and notifier. It owns the
user-facing operations and turns raw input into ledger calls.

User actions never raise for user mistakes. Each returns an ActionResult;
failures are shown as a negative toast and logged as BLOCKED risk events.
Listeners registered with subscribe() run after every tick and every
successful action.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from ..clock import ManualScheduler, MarketClock, Scheduler
from ..errors import InvalidAmount, InvalidPrice, SimulatorError
from ..history import HistoryBus, HistoryStore
from ..indicators import ema_panel
from ..ledger import PositionLedger
from ..notifications import Notifier, ToastNotifier
from ..pricing import BiasController, CandleWindow, OrderBookSynth, PriceProcess, PriceProcessConfig
from ..storage import JsonFileStore, KeyValueStore, MemoryStore
from ..types import (
    ActionResult,
    Candle,
    HistoryRecord,
    InstrumentKind,
    LimitOrder,
    OrderBook,
    OrderSide,
    OrderType,
    Position,
    TickResult,
)
from ...config.config import SimConfig, get_config
from ...config.constants import CANDLE_WINDOW, INITIAL_CANDLES
from ...config.presets import SimulatorPreset, load_preset
from ...utils.helpers import safe_float, safe_ratio
from ...utils.logger import get_logger

Listener = Callable[[], None]


def floor_amount(value: float, decimals: int = 4) -> float:
    """Round an amount down so a slider never asks for more than is available."""
    factor = 10 ** decimals
    return math.floor(value * factor) / factor


def parse_amount(value: Any) -> float:
    """
    Parse a user-entered amount.

    Raises:
        InvalidAmount: empty, unparseable or non-positive input
    """
    amount = safe_float(value)
    if amount <= 0:
        raise InvalidAmount()
    return amount


def parse_price(value: Any, fallback: Optional[float] = None) -> float:
    """
    Parse a user-entered price. Empty input uses fallback when given.

    Raises:
        InvalidPrice: unparseable or non-positive input
    """
    if (value is None or (isinstance(value, str) and not value.strip())) and fallback is not None:
        return fallback
    price = safe_float(value)
    if price <= 0:
        raise InvalidPrice()
    return price


def default_store(config: SimConfig) -> KeyValueStore:
    """JsonFileStore when SIM_HISTORY_DIR is set, otherwise in-memory."""
    if config.history.storage_dir:
        return JsonFileStore(config.history.storage_dir)
    return MemoryStore()


class SimulatorActions:
    """
    Clock controls, subscriptions and action plumbing shared by every facade.

    Hosts provide clock, notifier, logger, kind and a _listeners list.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def pause(self) -> None:
        self.clock.pause()

    def resume(self) -> None:
        self.clock.resume()

    def toggle_pause(self) -> bool:
        return self.clock.toggle_pause()

    def set_speed(self, speed: int) -> ActionResult:
        try:
            self.clock.set_speed(speed)
        except ValueError as e:
            return self._fail(SimulatorError(str(e), code="INVALID_SPEED"), "set_speed")
        return ActionResult(success=True, message=f"Speed x{speed}", data={"speed": speed})

    def stop(self) -> None:
        self.clock.stop()

    @property
    def is_paused(self) -> bool:
        return self.clock.is_paused

    @property
    def speed(self) -> int:
        return self.clock.speed

    # ─────────────────────────────────────────────────────────────────────────
    # Subscriptions and action plumbing
    # ─────────────────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener after every tick and successful action. Returns unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _ok(self, message: str, data: Optional[Dict[str, Any]] = None,
            positive: bool = True) -> ActionResult:
        self.notifier.show(message, positive)
        self._emit()
        return ActionResult(success=True, message=message, data=data)

    def _fail(self, error: SimulatorError, action: str) -> ActionResult:
        self.notifier.show(error.message, False)
        self.logger.risk("BLOCKED", error.message, sim=self.kind, op=action, code=error.code)
        return ActionResult(success=False, message=error.message, error=error.message, code=error.code)

    def _run(self, action: str, fn: Callable[[], ActionResult]) -> ActionResult:
        """Run a user action, converting SimulatorError into a failed result."""
        try:
            result = fn()
        except SimulatorError as e:
            return self._fail(e, action)
        self.notifier.show(result.message, _is_positive(result.data))
        self._emit()
        return result


class BaseSimulator(SimulatorActions, ABC):
    """Common lifecycle, market data and history for every candle simulator."""

    kind: str = ""
    instrument: InstrumentKind = InstrumentKind.SPOT

    def __init__(
        self,
        preset: Optional[SimulatorPreset] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[np.random.Generator] = None,
        store: Optional[KeyValueStore] = None,
        bus: Optional[HistoryBus] = None,
        notifier: Optional[Notifier] = None,
        config: Optional[SimConfig] = None,
    ):
        """
        Initialize simulator.

        Args:
            preset: Market parameters (defaults to the bundled preset for `kind`)
            scheduler: Timer collaborator (defaults to a ManualScheduler)
            rng: Random generator shared by price, book and bias
            store: History persistence (defaults per SIM_HISTORY_DIR)
            bus: History pub-sub shared with other views of the same type
            notifier: Toast collaborator (defaults to a ToastNotifier)
            config: Settings (defaults to the environment-loaded Config)
        """
        self.preset = preset or load_preset(self.kind)
        self.config = config or get_config().as_sim_config()
        self.scheduler = scheduler or ManualScheduler()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.logger = get_logger()

        self.price_process = PriceProcess(
            PriceProcessConfig(volatility_scale=self.preset.volatility_scale), self.rng,
        )
        self.book_synth = OrderBookSynth(rng=self.rng)
        self.bias = BiasController(self.scheduler, self.rng, self.config.bias)
        self.notifier = notifier or ToastNotifier(self.scheduler)
        self.history = HistoryStore(
            self.kind,
            store if store is not None else default_store(self.config),
            bus,
            max_records=self.config.history.max_records,
            now_ms=lambda: self.scheduler.now_ms,
        )
        self.ledger = PositionLedger(
            self.instrument,
            self.preset.symbol,
            self.preset.initial_balance,
            history=self.history,
            notifier=self.notifier,
            now_ms=lambda: self.scheduler.now_ms,
            fee_rate=self.preset.fee_rate,
            default_leverage=self.preset.default_leverage,
        )
        self.clock = MarketClock(self.scheduler, self._on_clock_tick, self.config.clock)
        self._listeners: List[Listener] = []
        self._init_market()

    def _init_market(self) -> None:
        start = self.preset.initial_price
        self.candle_window = CandleWindow(
            self.price_process.seed_candles(INITIAL_CANDLES, start), maxlen=CANDLE_WINDOW,
        )
        self._current_price = start
        self._open_price = start
        self._book = self.book_synth.generate(start)
        self.ledger.on_price(start)

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        self.clock.start()
        self.logger.info(
            f"{self.kind} simulator started: {self.symbol} @ {self._current_price:.{self.preset.price_decimals}f}"
        )

    def stop(self) -> None:
        super().stop()
        self.bias.reset()

    def _on_clock_tick(self) -> None:
        self.tick()

    def tick(self, price: Optional[float] = None) -> TickResult:
        """
        Advance the market one step.

        Args:
            price: Force the new close (scripted feeds); None draws a candle

        Returns:
            TickResult with the new candle and every close/fill it caused
        """
        previous = self.candle_window.last.close
        if price is None:
            candle = self.price_process.next_candle(previous, self.bias.value)
        else:
            candle = self.price_process.candle_to(previous, price)
        self.candle_window.append(candle)
        self._current_price = candle.close
        self._book = self.book_synth.generate(candle.close)

        result = self.ledger.on_price(candle.close)
        result.candle = candle
        self._emit()
        return result

    def reset(self) -> None:
        """Restore the starting balance and market. History is kept."""
        self.ledger.reset()
        self.bias.reset()
        self._init_market()
        self._emit()

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def symbol(self) -> str:
        return self.preset.symbol

    @property
    def current_price(self) -> float:
        return self._current_price

    @property
    def open_price(self) -> float:
        return self._open_price

    @property
    def price_change_pct(self) -> float:
        return safe_ratio(self._current_price - self._open_price, self._open_price) * 100

    @property
    def candles(self) -> List[Candle]:
        return self.candle_window.to_list()

    @property
    def book(self) -> OrderBook:
        return self._book

    def emas(self) -> Dict[int, float]:
        return ema_panel(self.candle_window.closes())

    @property
    def positions(self) -> List[Position]:
        return self.ledger.positions

    @property
    def orders(self) -> List[LimitOrder]:
        return self.ledger.orders

    @property
    def balance(self) -> float:
        return self.ledger.balance

    @abstractmethod
    def account(self) -> Dict[str, float]:
        """Display aggregates for the account panel."""
        ...

    @abstractmethod
    def percent_to_amount(self, pct: float, side: OrderSide = OrderSide.BUY) -> float:
        """Order amount for a slider percentage."""
        ...

    def history_records(self) -> List[HistoryRecord]:
        return self.history.list_all()

    def history_summary(self) -> Dict[str, float]:
        return self.history.summary().to_dict()

    def reset_history(self) -> ActionResult:
        self.history.reset()
        return self._ok("History cleared")

    # ─────────────────────────────────────────────────────────────────────────
    # Orders
    # ─────────────────────────────────────────────────────────────────────────

    def place_order(self, side: str, amount: Any, order_type: str = "market",
                    price: Any = None) -> ActionResult:
        """
        Place an order from raw form input.

        Args:
            side: "buy" or "sell"
            amount: Base-asset quantity (string or number)
            order_type: "market" or "limit"
            price: Limit price; empty uses the current price
        """
        try:
            side = OrderSide(side)
            order_type = OrderType(order_type)
        except ValueError as e:
            return self._fail(SimulatorError(str(e), code="INVALID_ORDER"), "place_order")
        return self._run("place_order", lambda: self._place(side, order_type, amount, price))

    def cancel_order(self, order_id: int) -> ActionResult:
        def action():
            order = self.ledger.cancel_order(order_id)
            return ActionResult(
                success=True, message=f"Order {order_id} cancelled", data={"order": order.to_dict()},
            )
        return self._run("cancel_order", action)

    def _queue_limit(self, side: OrderSide, amount: Any, price: Any,
                     leverage: Optional[int] = None) -> ActionResult:
        qty = parse_amount(amount)
        limit_price = parse_price(price, fallback=self._current_price)
        result = self.ledger.place_order(side, OrderType.LIMIT, qty, limit_price, leverage)
        return ActionResult(
            success=True,
            message=f"Limit {side.value} placed @ {limit_price:.{self.preset.price_decimals}f}",
            data=result.to_dict(),
        )

    @abstractmethod
    def _place(self, side: OrderSide, order_type: OrderType, amount: Any, price: Any) -> ActionResult:
        ...


def _is_positive(data: Optional[Dict[str, Any]]) -> bool:
    """Toast sentiment: negative only for a realized loss."""
    if not data:
        return True
    pnl = data.get("pnl")
    if pnl is None and data.get("record"):
        pnl = data["record"].get("pnl")
    return pnl is None or pnl >= 0
