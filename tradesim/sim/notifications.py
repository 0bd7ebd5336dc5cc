"""
Toast notification collaborators.

The simulator core only decides a message and its sentiment. Rendering and
auto-dismiss belong to the notifier.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from .clock import Scheduler, TimerHandle
from ..config.constants import TOAST_DURATION_MS
from ..utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class Toast:
    message: str
    is_positive: bool
    shown_at: int = 0


class Notifier(ABC):
    """Base class for notifiers."""

    @abstractmethod
    def show(self, message: str, is_positive: bool = True) -> None:
        """Show a message. Fire-and-forget."""
        ...


class NoopNotifier(Notifier):
    """Notifier that drops every message."""

    def show(self, message: str, is_positive: bool = True) -> None:
        return None


class ToastNotifier(Notifier):
    """
    Keeps the current toast and dismisses it after a fixed duration.

    A new toast replaces the current one and restarts the dismiss timer.
    """

    def __init__(self, scheduler: Scheduler, duration_ms: int = TOAST_DURATION_MS,
                 keep: int = 50):
        self._scheduler = scheduler
        self._duration_ms = duration_ms
        self._keep = keep
        self._current: Optional[Toast] = None
        self._dismiss: Optional[TimerHandle] = None
        self.shown: List[Toast] = []

    @property
    def current(self) -> Optional[Toast]:
        return self._current

    def show(self, message: str, is_positive: bool = True) -> None:
        toast = Toast(message, is_positive, self._scheduler.now_ms)
        self._current = toast
        self.shown.append(toast)
        del self.shown[:-self._keep]

        if is_positive:
            logger.info(f"[TOAST] {message}")
        else:
            logger.warning(f"[TOAST] {message}")

        if self._dismiss is not None:
            self._scheduler.cancel(self._dismiss)
        self._dismiss = self._scheduler.schedule_once(self._duration_ms, self.dismiss)

    def dismiss(self) -> None:
        self._current = None
        if self._dismiss is not None:
            self._scheduler.cancel(self._dismiss)
            self._dismiss = None
