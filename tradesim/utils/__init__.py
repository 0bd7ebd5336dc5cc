"""
Utility modules.
"""

from .logger import get_logger, setup_logger, SimLogger
from .helpers import safe_float, safe_ratio

__all__ = [
    # Logger
    "get_logger",
    "setup_logger",
    "SimLogger",
    # Input helpers
    "safe_float",
    "safe_ratio",
]
