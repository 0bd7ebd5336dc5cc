"""
Simulator exceptions.

Every user-facing failure raised by the ledger is a SimulatorError carrying a
short display message and a stable machine code. Facades catch SimulatorError,
surface the message as a negative toast, and return a failed ActionResult.

Hierarchy:
    SimulatorError
    ├── ValidationError        bad input, rejected before any mutation
    │   ├── InvalidAmount
    │   └── InvalidPrice
    ├── InsufficiencyError     balance/margin/holdings too low
    │   ├── InsufficientBalance
    │   ├── InsufficientMargin
    │   ├── InsufficientHoldings
    │   ├── ExceedsMaxBorrow
    │   └── NothingToRepay
    ├── PositionNotFound
    └── OrderNotFound
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .types import HistoryRecord


class SimulatorError(Exception):
    """Base class for all simulator failures."""

    code = "SIMULATOR_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

class ValidationError(SimulatorError):
    """Invalid user input."""
    code = "VALIDATION_ERROR"


class InvalidAmount(ValidationError):
    code = "INVALID_AMOUNT"

    def __init__(self, message: str = "Please enter a valid amount"):
        super().__init__(message)


class InvalidPrice(ValidationError):
    code = "INVALID_PRICE"

    def __init__(self, message: str = "Please enter a valid price"):
        super().__init__(message)


# ─────────────────────────────────────────────────────────────────────────────
# Insufficiency
# ─────────────────────────────────────────────────────────────────────────────

class InsufficiencyError(SimulatorError):
    """Balance, margin or holdings too low for the requested action."""
    code = "INSUFFICIENT"


class InsufficientBalance(InsufficiencyError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, required: float, available: float, message: Optional[str] = None):
        self.required = required
        self.available = available
        super().__init__(
            message or f"Insufficient balance: need {required:.2f}, have {available:.2f}"
        )


class InsufficientMargin(InsufficiencyError):
    """
    Not enough free balance to post margin.

    When raised by a reversal, the original position has already been closed;
    `closed_record` holds its history record.
    """
    code = "INSUFFICIENT_MARGIN"

    def __init__(self, required: float, available: float,
                 closed_record: Optional["HistoryRecord"] = None):
        self.required = required
        self.available = available
        self.closed_record = closed_record
        message = f"Insufficient margin: need {required:.2f}, have {available:.2f}"
        if closed_record is not None:
            message += " (position closed, reversal not reopened)"
        super().__init__(message)


class InsufficientHoldings(InsufficiencyError):
    code = "INSUFFICIENT_HOLDINGS"

    def __init__(self, required: float, available: float, message: Optional[str] = None):
        self.required = required
        self.available = available
        super().__init__(
            message or f"Insufficient holdings: need {required:.6f}, have {available:.6f}"
        )


class ExceedsMaxBorrow(InsufficiencyError):
    code = "EXCEEDS_MAX_BORROW"

    def __init__(self, requested: float, max_borrow: float):
        self.requested = requested
        self.max_borrow = max_borrow
        super().__init__(f"Exceeds max borrow: requested {requested:.2f}, max {max_borrow:.2f}")


class NothingToRepay(InsufficiencyError):
    code = "NOTHING_TO_REPAY"

    def __init__(self):
        super().__init__("Nothing to repay")


# ─────────────────────────────────────────────────────────────────────────────
# Lookups
# ─────────────────────────────────────────────────────────────────────────────

class PositionNotFound(SimulatorError):
    code = "POSITION_NOT_FOUND"

    def __init__(self, position_id: int):
        self.position_id = position_id
        super().__init__(f"Position {position_id} not found")


class OrderNotFound(SimulatorError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")
