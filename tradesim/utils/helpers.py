"""
Common utility functions used across the simulators.

These helpers handle edge cases from raw user input (form fields, CLI args).
"""

from typing import Any


def safe_float(value: Any, default: float = 0.0) -> float:
    """
    Safely convert value to float, handling edge cases from user input.

    Input fields can hold:
    - Empty strings "" while the user has typed nothing
    - String numbers "123.45"
    - None for optional fields

    Args:
        value: Value to convert (str, int, float, None, etc.)
        default: Default value if conversion fails

    Returns:
        Float value or default

    Examples:
        >>> safe_float("123.45")
        123.45
        >>> safe_float("")
        0.0
        >>> safe_float(None)
        0.0
        >>> safe_float("invalid", default=-1.0)
        -1.0
    """
    if value is None or value == "" or value == " ":
        return default
    try:
        result = float(value)
    except (ValueError, TypeError):
        return default
    # NaN and infinities are never valid amounts or prices
    if result != result or result in (float("inf"), float("-inf")):
        return default
    return result


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Divide, falling back to default when the denominator is zero.

    Used for PnL percentages against a margin or cost basis that may be zero.
    """
    if not denominator:
        return default
    return numerator / denominator
