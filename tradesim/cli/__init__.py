"""
Console display for the headless simulator runner (sim_cli.py).
"""

from .display import (
    console,
    print_header,
    print_result,
    print_account,
    print_positions,
    print_orders,
    print_history,
    print_assets,
)

__all__ = [
    "console",
    "print_header",
    "print_result",
    "print_account",
    "print_positions",
    "print_orders",
    "print_history",
    "print_assets",
]
