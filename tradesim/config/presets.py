"""
Per-simulator presets loaded from simulators.yml.

Each simulator kind (spot, margin, futures, tradfi) gets a frozen
SimulatorPreset describing its market: symbol, starting price, starting
balance, the leverage tiers it offers and its fee/interest rates.

Usage:
    from tradesim.config.presets import load_preset

    preset = load_preset("margin")
    preset.default_leverage  # 10
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .constants import MARGIN_MODES, validate_symbol


PRESETS_PATH = Path(__file__).parent / "simulators.yml"

_REQUIRED_KEYS = ("symbol", "initial_price", "initial_balance")


@dataclass(frozen=True)
class AssetPreset:
    """One tradable asset in the multi-asset simulator."""
    id: str
    name: str
    symbol: str
    start_price: float
    volatility: float
    type: str  # crypto | stock | commodity | bond

    @property
    def is_crypto(self) -> bool:
        return self.type == "crypto"


@dataclass(frozen=True)
class SimulatorPreset:
    """
    Market parameters for one simulator kind.

    Attributes:
        kind: spot | margin | futures | tradfi
        symbol: Normalized BASE/QUOTE symbol
        initial_price: First candle open
        initial_balance: Starting quote balance
        leverages: Selectable leverage tiers (spot/tradfi: (1,))
        default_leverage: Leverage selected on start
        volatility_scale: Multiplier on the per-step volatility band
        fee_rate: Taker fee as a fraction
        hourly_rate: Displayed borrow interest in percent per hour
        margin_modes: Margin mode labels offered by the UI
        price_decimals: Display precision
    """
    kind: str
    symbol: str
    initial_price: float
    initial_balance: float
    leverages: Tuple[int, ...] = (1,)
    default_leverage: int = 1
    volatility_scale: float = 1.0
    fee_rate: float = 0.0
    hourly_rate: float = 0.0
    margin_modes: Tuple[str, ...] = ("isolated",)
    price_decimals: int = 2
    assets: Tuple[AssetPreset, ...] = field(default_factory=tuple)
    crypto_fee_rate: float = 0.001
    traditional_fee_rate: float = 0.003

    def __post_init__(self) -> None:
        """Validate preset fields at load time."""
        if self.initial_price <= 0:
            raise ValueError(f"[{self.kind}] initial_price must be positive, got {self.initial_price}")
        if self.initial_balance <= 0:
            raise ValueError(f"[{self.kind}] initial_balance must be positive, got {self.initial_balance}")
        if any(lev < 1 for lev in self.leverages):
            raise ValueError(f"[{self.kind}] leverages must all be >= 1, got {self.leverages}")
        if self.default_leverage not in self.leverages:
            raise ValueError(
                f"[{self.kind}] default_leverage={self.default_leverage} "
                f"is not one of {self.leverages}"
            )
        for mode in self.margin_modes:
            if mode not in MARGIN_MODES:
                raise ValueError(f"[{self.kind}] unknown margin mode '{mode}'. Valid: {MARGIN_MODES}")

    def asset(self, asset_id: str) -> AssetPreset:
        """Look up an asset of a multi-asset preset by id."""
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        raise KeyError(f"Unknown asset '{asset_id}'. Available: {[a.id for a in self.assets]}")


def _parse_preset(kind: str, raw: Dict[str, Any]) -> SimulatorPreset:
    missing = [key for key in _REQUIRED_KEYS if key not in raw]
    if missing:
        raise ValueError(f"Preset '{kind}' is missing required keys: {missing}")

    leverages = tuple(int(lev) for lev in raw.get("leverages", [1]))
    default_leverage = int(raw.get("default_leverage", leverages[0]))

    assets = tuple(
        AssetPreset(
            id=str(a["id"]),
            name=str(a.get("name", a["id"])),
            symbol=str(a.get("symbol", a["id"])).upper(),
            start_price=float(a["start_price"]),
            volatility=float(a["volatility"]),
            type=str(a.get("type", "stock")),
        )
        for a in raw.get("assets", [])
    )

    return SimulatorPreset(
        kind=kind,
        symbol=validate_symbol(str(raw["symbol"])),
        initial_price=float(raw["initial_price"]),
        initial_balance=float(raw["initial_balance"]),
        leverages=leverages,
        default_leverage=default_leverage,
        volatility_scale=float(raw.get("volatility_scale", 1.0)),
        fee_rate=float(raw.get("fee_rate", 0.0)),
        hourly_rate=float(raw.get("hourly_rate", 0.0)),
        margin_modes=tuple(raw.get("margin_modes", ["isolated"])),
        price_decimals=int(raw.get("price_decimals", 2)),
        assets=assets,
        crypto_fee_rate=float(raw.get("crypto_fee_rate", 0.001)),
        traditional_fee_rate=float(raw.get("traditional_fee_rate", 0.003)),
    )


def load_presets(path: Optional[Path] = None) -> Dict[str, SimulatorPreset]:
    """
    Load all presets from YAML.

    Args:
        path: Alternate YAML file (defaults to the bundled simulators.yml)

    Returns:
        Dict of kind -> SimulatorPreset

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty or a preset is invalid
    """
    config_path = Path(path) if path else PRESETS_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Simulator presets not found at {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f)

    if not raw or not isinstance(raw, dict):
        raise ValueError(f"Empty or invalid YAML in {config_path}")

    return {kind: _parse_preset(kind, body or {}) for kind, body in raw.items()}


def load_preset(kind: str, path: Optional[Path] = None) -> SimulatorPreset:
    """
    Load the preset for one simulator kind.

    Raises:
        KeyError: If no preset exists for the kind
    """
    presets = load_presets(path)
    if kind not in presets:
        raise KeyError(f"No simulator preset '{kind}'. Available: {sorted(presets)}")
    return presets[kind]


def list_presets(path: Optional[Path] = None) -> List[str]:
    """List available simulator kinds."""
    return sorted(load_presets(path))
