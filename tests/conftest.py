"""
Shared fixtures for the simulator test suite.

Every simulator built here runs on virtual time (ManualScheduler), an
in-memory history store, a private HistoryBus and a seeded generator, and
ignores environment variables by taking an explicit SimConfig.
"""

from typing import List, Tuple

import numpy as np
import pytest

from tradesim.config.config import SimConfig
from tradesim.sim.clock import ManualScheduler
from tradesim.sim.facades import FuturesSimulator, MarginSimulator, MultiAssetSimulator, SpotSimulator
from tradesim.sim.history import HistoryBus, HistoryStore
from tradesim.sim.ledger import PositionLedger
from tradesim.sim.notifications import Notifier
from tradesim.sim.storage import MemoryStore
from tradesim.sim.types import InstrumentKind


class RecordingNotifier(Notifier):
    """Notifier that keeps every (message, is_positive) pair."""

    def __init__(self):
        self.messages: List[Tuple[str, bool]] = []

    def show(self, message: str, is_positive: bool = True) -> None:
        self.messages.append((message, is_positive))

    @property
    def last(self) -> Tuple[str, bool]:
        return self.messages[-1]


# ─────────────────────────────────────────────────────────────────────────────
# Collaborators
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(12345)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def bus() -> HistoryBus:
    return HistoryBus()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sim_config() -> SimConfig:
    return SimConfig()


@pytest.fixture
def history(store, bus, scheduler) -> HistoryStore:
    return HistoryStore("test", store, bus, max_records=200, now_ms=lambda: scheduler.now_ms)


# ─────────────────────────────────────────────────────────────────────────────
# Ledgers
# ─────────────────────────────────────────────────────────────────────────────

def make_ledger(kind, symbol, balance, history=None, notifier=None, scheduler=None,
                fee_rate=0.0, default_leverage=1) -> PositionLedger:
    clock = scheduler or ManualScheduler()
    return PositionLedger(
        kind, symbol, balance,
        history=history,
        notifier=notifier,
        now_ms=lambda: clock.now_ms,
        fee_rate=fee_rate,
        default_leverage=default_leverage,
    )


@pytest.fixture
def margin_ledger(history, notifier, scheduler) -> PositionLedger:
    """ETH/USDT margin ledger, 10000 USDT, marked at 1893."""
    ledger = make_ledger(InstrumentKind.MARGIN, "ETH/USDT", 10000.0, history, notifier, scheduler,
                         default_leverage=10)
    ledger.on_price(1893.0)
    return ledger


@pytest.fixture
def futures_ledger(history, notifier, scheduler) -> PositionLedger:
    """BTC/USDT futures ledger, 10000 USDT, marked at 65000."""
    ledger = make_ledger(InstrumentKind.FUTURES, "BTC/USDT", 10000.0, history, notifier, scheduler,
                         default_leverage=20)
    ledger.on_price(65000.0)
    return ledger


@pytest.fixture
def spot_ledger(history, notifier, scheduler) -> PositionLedger:
    """BTC/USDT spot ledger, 10000 USDT, no fee, marked at 65000."""
    ledger = make_ledger(InstrumentKind.SPOT, "BTC/USDT", 10000.0, history, notifier, scheduler)
    ledger.on_price(65000.0)
    return ledger


# ─────────────────────────────────────────────────────────────────────────────
# Simulators
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def sim_kwargs(scheduler, rng, store, bus, notifier, sim_config) -> dict:
    return dict(scheduler=scheduler, rng=rng, store=store, bus=bus, notifier=notifier, config=sim_config)


@pytest.fixture
def spot_sim(sim_kwargs) -> SpotSimulator:
    return SpotSimulator(**sim_kwargs)


@pytest.fixture
def margin_sim(sim_kwargs) -> MarginSimulator:
    return MarginSimulator(**sim_kwargs)


@pytest.fixture
def futures_sim(sim_kwargs) -> FuturesSimulator:
    return FuturesSimulator(**sim_kwargs)


@pytest.fixture
def tradfi_sim(scheduler, rng, notifier, sim_config) -> MultiAssetSimulator:
    return MultiAssetSimulator(scheduler=scheduler, rng=rng, notifier=notifier, config=sim_config)
