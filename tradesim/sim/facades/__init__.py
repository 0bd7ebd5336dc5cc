"""
Simulator facades: the user-facing surface of each trading mode.
"""

from .base import BaseSimulator, SimulatorActions, floor_amount, parse_amount, parse_price
from .spot import SpotSimulator
from .leveraged import LeveragedSimulator
from .margin import MarginSimulator
from .futures import FuturesSimulator
from .tradfi import MultiAssetSimulator, Holding, TapeEntry

__all__ = [
    "BaseSimulator",
    "SimulatorActions",
    "floor_amount",
    "parse_amount",
    "parse_price",
    "SpotSimulator",
    "LeveragedSimulator",
    "MarginSimulator",
    "FuturesSimulator",
    "MultiAssetSimulator",
    "Holding",
    "TapeEntry",
]
