"""
Configuration: environment-driven settings, fixed constants and YAML presets.
"""

from .config import (
    Config,
    get_config,
    ClockConfig,
    HistoryConfig,
    BiasConfig,
    LogConfig,
    SimConfig,
)
from .constants import validate_symbol, base_asset
from .presets import (
    AssetPreset,
    SimulatorPreset,
    load_preset,
    load_presets,
    list_presets,
)

__all__ = [
    "Config",
    "get_config",
    "ClockConfig",
    "HistoryConfig",
    "BiasConfig",
    "LogConfig",
    "SimConfig",
    "validate_symbol",
    "base_asset",
    "AssetPreset",
    "SimulatorPreset",
    "load_preset",
    "load_presets",
    "list_presets",
]
