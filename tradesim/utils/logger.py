"""
Logging system for the trading simulators.
Provides human-readable console logs with colors and optional file output.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        record.msg = f"{color}{record.msg}{Colors.RESET}"
        return super().format(record)


class SimLogger:
    """
    Central logging system for the simulators.

    Features:
    - Console output with colors
    - Optional dated log files (main + trades) when a log directory is given
    - Structured one-line trade and risk records
    """

    def __init__(self, log_dir: Optional[str] = None, log_level: str = "INFO"):
        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._create_logger("tradesim", log_level)
        self.trade_logger = self._create_logger("tradesim.trades", log_level, "trades")

    def _create_logger(self, name: str, level: str, file_prefix: str = None) -> logging.Logger:
        """Create a configured logger instance."""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        logger.handlers.clear()
        logger.propagate = False

        # Trade records are mirrored to the main logger, so only it gets a console
        if file_prefix is None:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(ColoredFormatter(
                "%(asctime)s | %(levelname)s | %(message)s",
                datefmt="%H:%M:%S"
            ))
            logger.addHandler(console_handler)

        if self.log_dir is not None:
            prefix = file_prefix or "sim"
            log_file = self.log_dir / f"{prefix}_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            logger.addHandler(file_handler)

        return logger

    def info(self, msg: str, *args, **kwargs):
        """Log info message."""
        self.main_logger.info(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message."""
        self.main_logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message."""
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message."""
        self.main_logger.error(msg, *args, **kwargs)

    def trade(self, action: str, symbol: str, side: str, size: float,
              price: float = None, pnl: float = None, **kwargs):
        """
        Log a trade action with structured format.

        Args:
            action: POSITION_OPENED, POSITION_CLOSED, ORDER_PLACED, ORDER_FILLED,
                ORDER_CANCELLED, SPOT_BUY, SPOT_SELL, BORROW, REPAY
            symbol: Trading symbol (e.g., BTC/USDT)
            side: long/short or buy/sell
            size: Base-asset quantity (or quote amount for BORROW/REPAY)
            price: Execution price (optional)
            pnl: Realized PnL (optional, for closes)
            **kwargs: Additional fields
        """
        parts = [
            f"[{action}]",
            f"symbol={symbol}",
            f"side={side}",
            f"size={size:.6f}",
        ]

        if price:
            parts.append(f"price={price:.4f}")
        if pnl is not None:
            parts.append(f"pnl={pnl:+.2f}")

        for key, value in kwargs.items():
            parts.append(f"{key}={value}")

        msg = " | ".join(parts)
        self.trade_logger.info(msg)
        self.main_logger.info(msg)

    def risk(self, action: str, reason: str, **kwargs):
        """
        Log risk decisions (rejected actions, liquidations).

        Args:
            action: ALLOWED, BLOCKED, WARNING
            reason: Reason for the action
            **kwargs: Additional context
        """
        parts = [f"[RISK:{action}]", reason]
        for key, value in kwargs.items():
            parts.append(f"{key}={value}")

        msg = " | ".join(parts)

        if action in ("BLOCKED", "WARNING"):
            self.main_logger.warning(msg)
        else:
            self.main_logger.info(msg)


# Global logger instance
_logger: Optional[SimLogger] = None


def get_logger(log_dir: Optional[str] = None, log_level: str = "INFO") -> SimLogger:
    """Get or create the global logger instance."""
    global _logger
    if _logger is None:
        _logger = SimLogger(log_dir, log_level)
    return _logger


def setup_logger(log_dir: Optional[str] = None, log_level: str = "INFO") -> SimLogger:
    """Initialize the logger with custom settings."""
    global _logger
    _logger = SimLogger(log_dir, log_level)
    return _logger
