"""
Multi-asset (TradFi) simulator.

Six assets across crypto, stocks, a commodity and a bond, each following a
simple single-price random walk at its own volatility. Trades are by share
count against a cash balance, with a higher fee on non-crypto assets.
There is no leverage, no order book and no candle chart: each asset keeps a
short price history for its sparkline.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np

from .base import SimulatorActions, parse_amount
from ..clock import ManualScheduler, MarketClock, Scheduler
from ..errors import InsufficientBalance, InsufficientHoldings, SimulatorError
from ..notifications import Notifier, ToastNotifier
from ..pricing import PriceProcess
from ..types import ActionResult, OrderSide
from ...config.config import SimConfig, get_config
from ...config.constants import PRICE_HISTORY_WINDOW, TRADE_TAPE_SIZE
from ...config.presets import AssetPreset, SimulatorPreset, load_preset
from ...utils.helpers import safe_ratio
from ...utils.logger import get_logger


@dataclass
class Holding:
    """Shares held in one asset at a volume-weighted buy price."""
    asset_id: str
    shares: float
    buy_price: float
    opened_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "shares": self.shares,
            "buy_price": self.buy_price,
            "opened_at": self.opened_at,
        }


@dataclass
class TapeEntry:
    """One executed trade on the recent-trades tape."""
    asset_id: str
    asset_name: str
    side: OrderSide
    price: float
    shares: float
    fee: float
    pnl: Optional[float] = None
    time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "asset_name": self.asset_name,
            "side": self.side.value,
            "price": self.price,
            "shares": self.shares,
            "fee": self.fee,
            "pnl": self.pnl,
            "time_ms": self.time_ms,
        }


class MultiAssetSimulator(SimulatorActions):
    """Cash account trading a basket of traditional and crypto assets."""

    kind = "tradfi"

    def __init__(
        self,
        preset: Optional[SimulatorPreset] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[np.random.Generator] = None,
        notifier: Optional[Notifier] = None,
        config: Optional[SimConfig] = None,
    ):
        """
        Initialize simulator.

        Args:
            preset: Asset list and balance (defaults to the bundled tradfi preset)
            scheduler: Timer collaborator (defaults to a ManualScheduler)
            rng: Random generator for every asset's price walk
            notifier: Toast collaborator (defaults to a ToastNotifier)
            config: Settings (defaults to the environment-loaded Config)
        """
        self.preset = preset or load_preset(self.kind)
        if not self.preset.assets:
            raise ValueError(f"[{self.preset.kind}] multi-asset preset defines no assets")
        self.config = config or get_config().as_sim_config()
        self.scheduler = scheduler or ManualScheduler()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.logger = get_logger()
        self.price_process = PriceProcess(rng=self.rng)
        self.notifier = notifier or ToastNotifier(self.scheduler)
        self.clock = MarketClock(self.scheduler, self.tick, self.config.clock)
        self._listeners: List[Callable[[], None]] = []
        self._init_state()

    def _init_state(self) -> None:
        self.balance = self.preset.initial_balance
        self.prices: Dict[str, float] = {a.id: a.start_price for a in self.preset.assets}
        self.price_history: Dict[str, Deque[float]] = {
            a.id: deque([a.start_price], maxlen=PRICE_HISTORY_WINDOW) for a in self.preset.assets
        }
        self.holdings: Dict[str, Holding] = {}
        self.trades: Deque[TapeEntry] = deque(maxlen=TRADE_TAPE_SIZE)
        self.selected = self.preset.assets[0].id
        self.elapsed = 0

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        self.clock.start()
        self.logger.info(f"tradfi simulator started: {len(self.preset.assets)} assets")

    def tick(self) -> Dict[str, float]:
        """Step every asset once. Returns the new prices."""
        for asset in self.preset.assets:
            price = self.price_process.step_price(self.prices[asset.id], asset.volatility)
            self.prices[asset.id] = price
            self.price_history[asset.id].append(price)
        self.elapsed += 1
        self._emit()
        return dict(self.prices)

    def reset(self) -> None:
        """Restore starting cash and prices, drop holdings and the tape."""
        self._init_state()
        self._emit()

    # ─────────────────────────────────────────────────────────────────────────
    # Assets
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def assets(self) -> List[AssetPreset]:
        return list(self.preset.assets)

    @property
    def selected_asset(self) -> AssetPreset:
        return self.preset.asset(self.selected)

    def _asset(self, asset_id: str) -> AssetPreset:
        try:
            return self.preset.asset(asset_id)
        except KeyError:
            raise SimulatorError(f"Unknown asset '{asset_id}'", code="UNKNOWN_ASSET") from None

    def select(self, asset_id: str) -> ActionResult:
        try:
            asset = self._asset(asset_id)
        except SimulatorError as e:
            return self._fail(e, "select")
        self.selected = asset.id
        self._emit()
        return ActionResult(success=True, message=f"Selected {asset.name}", data={"asset_id": asset.id})

    def price_change_pct(self, asset_id: str) -> float:
        """Change across the visible price history."""
        history = self.price_history[asset_id]
        if len(history) < 2:
            return 0.0
        return safe_ratio(self.prices[asset_id] - history[0], history[0]) * 100

    def fee_rate(self, asset: AssetPreset) -> float:
        if asset.is_crypto:
            return self.preset.crypto_fee_rate
        return self.preset.traditional_fee_rate

    # ─────────────────────────────────────────────────────────────────────────
    # Trading
    # ─────────────────────────────────────────────────────────────────────────

    def buy(self, shares: Any, asset_id: Optional[str] = None) -> ActionResult:
        return self._run("buy", lambda: self._buy(parse_amount(shares), asset_id or self.selected))

    def sell(self, shares: Any, asset_id: Optional[str] = None) -> ActionResult:
        return self._run("sell", lambda: self._sell(parse_amount(shares), asset_id or self.selected))

    def _buy(self, shares: float, asset_id: str) -> ActionResult:
        asset = self._asset(asset_id)
        price = self.prices[asset_id]
        cost = price * shares
        fee = cost * self.fee_rate(asset)
        if cost + fee > self.balance:
            raise InsufficientBalance(cost + fee, self.balance)

        self.balance -= cost + fee
        holding = self.holdings.get(asset_id)
        if holding is None:
            self.holdings[asset_id] = Holding(asset_id, shares, price, self.scheduler.now_ms)
        else:
            total = holding.shares + shares
            holding.buy_price = (holding.buy_price * holding.shares + price * shares) / total
            holding.shares = total

        self._tape(asset, OrderSide.BUY, price, shares, fee)
        self.logger.trade("SPOT_BUY", asset.symbol, "buy", shares, price, fee=fee)
        return ActionResult(
            success=True,
            message=f"Bought {shares:g} {asset.name} @ {price:.2f}, fee {fee:.2f}",
            data={"asset_id": asset_id, "price": price, "shares": shares, "fee": fee},
        )

    def _sell(self, shares: float, asset_id: str) -> ActionResult:
        asset = self._asset(asset_id)
        holding = self.holdings.get(asset_id)
        held = holding.shares if holding else 0.0
        if holding is None or shares > held:
            raise InsufficientHoldings(shares, held, message=f"Insufficient holdings: you hold {held:g}")

        price = self.prices[asset_id]
        proceeds = price * shares
        fee = proceeds * self.fee_rate(asset)
        pnl = (price - holding.buy_price) * shares - fee
        self.balance += proceeds - fee

        holding.shares -= shares
        if holding.shares <= 0:
            del self.holdings[asset_id]

        self._tape(asset, OrderSide.SELL, price, shares, fee, pnl)
        self.logger.trade("SPOT_SELL", asset.symbol, "sell", shares, price, pnl=pnl, fee=fee)
        return ActionResult(
            success=True,
            message=f"Sold {shares:g} {asset.name}, PnL {pnl:+.2f}",
            data={"asset_id": asset_id, "price": price, "shares": shares, "fee": fee, "pnl": pnl},
        )

    def _tape(self, asset: AssetPreset, side: OrderSide, price: float, shares: float,
              fee: float, pnl: Optional[float] = None) -> None:
        self.trades.appendleft(
            TapeEntry(asset.id, asset.name, side, price, shares, fee, pnl, self.scheduler.now_ms)
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Totals
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def portfolio_value(self) -> float:
        return sum(self.prices[h.asset_id] * h.shares for h in self.holdings.values())

    @property
    def total_assets(self) -> float:
        return self.balance + self.portfolio_value

    @property
    def total_return_pct(self) -> float:
        initial = self.preset.initial_balance
        return safe_ratio(self.total_assets - initial, initial) * 100

    def account(self) -> Dict[str, float]:
        return {
            "cash": self.balance,
            "portfolio_value": self.portfolio_value,
            "total_assets": self.total_assets,
            "total_return_pct": self.total_return_pct,
        }
