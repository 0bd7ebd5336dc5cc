"""
Configuration management for the simulators.
Loads settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv


@dataclass
class ClockConfig:
    """
    Tick timing for the market clock.

    Speed changes only the timer interval, never the size of a price step.
    Speed 1 ticks every `tick_ms`; the fast speed ticks every `fast_tick_ms`.
    """
    tick_ms: int = 1000
    fast_tick_ms: int = 350
    fast_speed: int = 3

    @property
    def speed_intervals(self) -> Dict[int, int]:
        return {1: self.tick_ms, self.fast_speed: self.fast_tick_ms}

    def interval_for(self, speed: int) -> int:
        """
        Get the tick interval for a speed setting.

        Raises:
            ValueError: If the speed is not one of the configured settings
        """
        try:
            return self.speed_intervals[speed]
        except KeyError:
            raise ValueError(
                f"Unsupported speed {speed}; choose one of {sorted(self.speed_intervals)}"
            ) from None


@dataclass
class HistoryConfig:
    """Trade history persistence."""
    max_records: int = 200
    storage_dir: str = ""  # Empty = in-memory store

    def __post_init__(self):
        if self.max_records < 1:
            raise ValueError(f"SIM_HISTORY_MAX must be positive, got {self.max_records}")


@dataclass
class BiasConfig:
    """
    Post-trade price bias.

    After the user opens a position the walk is pushed toward the position's
    direction with probability `win_rate` (against it otherwise) for
    `duration_ms`, then returns to neutral.
    """
    magnitude: float = 0.22
    win_rate: float = 0.7
    duration_ms: int = 15000

    def __post_init__(self):
        if not 0.0 <= self.win_rate <= 1.0:
            raise ValueError(f"SIM_BIAS_WIN_RATE must be within [0, 1], got {self.win_rate}")


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_dir: str = ""  # Empty = console only


@dataclass
class SimConfig:
    """Aggregate of all simulator settings."""
    clock: ClockConfig = field(default_factory=ClockConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    bias: BiasConfig = field(default_factory=BiasConfig)
    log: LogConfig = field(default_factory=LogConfig)


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables and provides
    typed access to all settings.
    """

    _instance: Optional['Config'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        for env_name in {".env", env_file}:
            env_path = Path(env_name)
            if env_path.exists():
                load_dotenv(env_path, override=True)

        self.clock = self._load_clock_config()
        self.history = self._load_history_config()
        self.bias = self._load_bias_config()
        self.log = self._load_log_config()

        self._initialized = True

    def _load_clock_config(self) -> ClockConfig:
        """Load clock configuration from environment."""
        return ClockConfig(
            tick_ms=int(os.getenv("SIM_TICK_MS", "1000")),
            fast_tick_ms=int(os.getenv("SIM_FAST_TICK_MS", "350")),
            fast_speed=int(os.getenv("SIM_FAST_SPEED", "3")),
        )

    def _load_history_config(self) -> HistoryConfig:
        """Load history configuration from environment."""
        return HistoryConfig(
            max_records=int(os.getenv("SIM_HISTORY_MAX", "200")),
            storage_dir=os.getenv("SIM_HISTORY_DIR", ""),
        )

    def _load_bias_config(self) -> BiasConfig:
        """Load bias configuration from environment."""
        return BiasConfig(
            magnitude=float(os.getenv("SIM_BIAS_MAGNITUDE", "0.22")),
            win_rate=float(os.getenv("SIM_BIAS_WIN_RATE", "0.7")),
            duration_ms=int(os.getenv("SIM_BIAS_DURATION_MS", "15000")),
        )

    def _load_log_config(self) -> LogConfig:
        """Load logging configuration from environment."""
        return LogConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", ""),
        )

    def as_sim_config(self) -> SimConfig:
        """Snapshot the loaded settings as a plain SimConfig."""
        return SimConfig(
            clock=self.clock,
            history=self.history,
            bias=self.bias,
            log=self.log,
        )

    def reload(self, env_file: str = ".env") -> 'Config':
        """Reload configuration from environment."""
        self._initialized = False
        Config._instance = None
        return Config(env_file)


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
