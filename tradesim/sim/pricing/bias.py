"""
Post-trade price bias.

When the user opens a position, the walk is pushed toward the position's
direction with probability win_rate (against it otherwise) for a fixed
window, then returns to neutral. This is what makes the simulator feel
rewarding; it is product behavior and is reproduced as-is.
"""

from typing import Optional

import numpy as np

from ..clock import Scheduler, TimerHandle
from ..types import Direction
from ...config.config import BiasConfig
from ...config.constants import BIAS_LIMIT
from ...utils.logger import get_logger
from .price_process import clamp_bias


class BiasController:
    """
    Holds the current bias value and its reset timer.

    A new opening cancels any pending reset and starts a fresh window.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        rng: Optional[np.random.Generator] = None,
        config: Optional[BiasConfig] = None,
    ):
        self._scheduler = scheduler
        self._rng = rng if rng is not None else np.random.default_rng()
        self._config = config or BiasConfig()
        self._value = 0.0
        self._reset_handle: Optional[TimerHandle] = None
        self.logger = get_logger()

    @property
    def value(self) -> float:
        return self._value

    @property
    def is_active(self) -> bool:
        return self._value != 0.0

    def on_position_opened(self, direction: Direction = Direction.LONG) -> float:
        """
        Start a bias window after an opening trade.

        Args:
            direction: Direction of the opened position

        Returns:
            The new bias value
        """
        cfg = self._config
        favorable = float(self._rng.random()) < cfg.win_rate
        sign = direction.sign if favorable else -direction.sign
        self._value = clamp_bias(sign * cfg.magnitude, BIAS_LIMIT)

        self._cancel_pending()
        self._reset_handle = self._scheduler.schedule_once(cfg.duration_ms, self._expire)
        self.logger.debug(
            f"Bias set to {self._value:+.2f} for {cfg.duration_ms}ms "
            f"(direction={direction.value}, favorable={favorable})"
        )
        return self._value

    def reset(self) -> None:
        """Zero the bias immediately and drop any pending reset."""
        self._cancel_pending()
        self._value = 0.0

    def _expire(self) -> None:
        self._reset_handle = None
        self._value = 0.0

    def _cancel_pending(self) -> None:
        if self._reset_handle is not None:
            self._scheduler.cancel(self._reset_handle)
            self._reset_handle = None
