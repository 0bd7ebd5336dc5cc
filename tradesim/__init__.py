"""
tradesim - Trading Simulator

Synthetic-market trading simulators for spot, margin, futures and a
multi-asset TradFi basket. Prices, fills, liquidations and PnL are all
simulated locally; no exchange connection is involved.
"""

__version__ = "1.0.0"
__author__ = "tradesim"

from .config import get_config, load_preset
from .sim import create_simulator, ManualScheduler, ActionResult

__all__ = [
    "__version__",
    "get_config",
    "load_preset",
    "create_simulator",
    "ManualScheduler",
    "ActionResult",
]
