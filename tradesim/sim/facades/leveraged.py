"""
Shared behavior of the leveraged simulators (margin and futures).

Adds leverage tiers, the margin-mode label, and position management:
close, reverse, TP/SL and trailing take-profit.
"""

from typing import Any, Optional

from .base import BaseSimulator, parse_amount, parse_price
from ..errors import InsufficientMargin, SimulatorError, ValidationError
from ..types import ActionResult, OrderSide, OrderType, Position
from ...config.constants import DEFAULT_TRAIL_CALLBACK
from ...utils.helpers import safe_float


def _optional_price(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_price(value)


def _optional_pct(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    pct = safe_float(value)
    if pct == 0:
        raise ValidationError("Please enter a valid percent", code="INVALID_PERCENT")
    return pct


class LeveragedSimulator(BaseSimulator):
    """Base for simulators that hold leveraged positions."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._leverage = self.preset.default_leverage
        self._margin_mode = self.preset.margin_modes[0]

    # ─────────────────────────────────────────────────────────────────────────
    # Settings
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def leverage(self) -> int:
        return self._leverage

    @property
    def margin_mode(self) -> str:
        return self._margin_mode

    def set_leverage(self, leverage: int) -> ActionResult:
        if leverage not in self.preset.leverages:
            return self._fail(
                ValidationError(
                    f"Leverage {leverage}x not offered; choose one of {list(self.preset.leverages)}",
                    code="INVALID_LEVERAGE",
                ),
                "set_leverage",
            )
        self._leverage = int(leverage)
        self._emit()
        return ActionResult(success=True, message=f"Leverage {leverage}x", data={"leverage": leverage})

    def set_margin_mode(self, mode: str) -> ActionResult:
        """Switch the margin-mode label (isolated/cross). Display only."""
        if mode not in self.preset.margin_modes:
            return self._fail(
                ValidationError(
                    f"Unknown margin mode '{mode}'; choose one of {list(self.preset.margin_modes)}",
                    code="INVALID_MARGIN_MODE",
                ),
                "set_margin_mode",
            )
        self._margin_mode = mode
        self._emit()
        return ActionResult(success=True, message=f"Margin mode: {mode}", data={"margin_mode": mode})

    # ─────────────────────────────────────────────────────────────────────────
    # Orders
    # ─────────────────────────────────────────────────────────────────────────

    def _open_market(self, side: OrderSide, amount: Any) -> ActionResult:
        qty = parse_amount(amount)
        result = self.ledger.place_order(side, OrderType.MARKET, qty, leverage=self._leverage)
        position = result.position
        self.bias.on_position_opened(position.direction)
        decimals = self.preset.price_decimals
        return ActionResult(
            success=True,
            message=(
                f"Opened {position.direction.value} {qty:.4f} @ "
                f"{position.entry_price:.{decimals}f} ({self._leverage}x)"
            ),
            data=result.to_dict(),
        )

    def close_position(self, position_id: int) -> ActionResult:
        def action():
            record = self.ledger.close_position(position_id)
            return ActionResult(
                success=True,
                message=f"Closed {record.pnl:+.2f} USDT",
                data={"record": record.to_dict(), "pnl": record.pnl},
            )
        return self._run("close_position", action)

    def reverse_position(self, position_id: int) -> ActionResult:
        """
        Close and reopen opposite. If the reopen is unaffordable the close
        stands and the failed result carries the closed record.
        """
        try:
            position = self.ledger.reverse_position(position_id)
        except InsufficientMargin as e:
            result = self._fail(e, "reverse_position")
            if e.closed_record is not None:
                result.data = {"closed_record": e.closed_record.to_dict()}
                self._emit()
            return result
        except SimulatorError as e:
            return self._fail(e, "reverse_position")

        decimals = self.preset.price_decimals
        message = f"Reversed to {position.direction.value} @ {position.entry_price:.{decimals}f}"
        self.notifier.show(message, True)
        self._emit()
        return ActionResult(success=True, message=message, data={"position": position.to_dict()})

    def set_tp_sl(self, position_id: int, take_profit: Any = None, stop_loss: Any = None) -> ActionResult:
        """Set TP and SL together; empty input clears a level."""
        def action():
            position = self.ledger.set_tp_sl(
                position_id, _optional_price(take_profit), _optional_price(stop_loss),
            )
            return ActionResult(success=True, message="TP/SL set", data={"position": position.to_dict()})
        return self._run("set_tp_sl", action)

    def set_tp_sl_pct(self, position_id: int, tp_pct: Any = None, sl_pct: Any = None) -> ActionResult:
        """
        Set TP and SL as leveraged return percents; empty input clears a level.

        The stop-loss percent is a loss size: 10 and -10 both mean a 10% loss.
        """
        def action():
            position = self.ledger.position(position_id)
            tp, sl = _optional_pct(tp_pct), _optional_pct(sl_pct)
            tp_price = None if tp is None else position.price_for_return(abs(tp))
            sl_price = None if sl is None else position.price_for_return(-abs(sl))
            position = self.ledger.set_tp_sl(position_id, tp_price, sl_price)

            data = {"position": position.to_dict()}
            decimals = self.preset.price_decimals
            parts = []
            if tp_price is not None:
                data["tp_return"] = position.return_at(tp_price)
                parts.append(f"TP {tp_price:.{decimals}f} ({data['tp_return']:+.1f}%)")
            if sl_price is not None:
                data["sl_return"] = position.return_at(sl_price)
                parts.append(f"SL {sl_price:.{decimals}f} ({data['sl_return']:+.1f}%)")
            return ActionResult(success=True, message=", ".join(parts) or "TP/SL cleared", data=data)
        return self._run("set_tp_sl_pct", action)

    def set_trailing(self, position_id: int, activation: Any,
                     callback: Any = DEFAULT_TRAIL_CALLBACK) -> ActionResult:
        """Set a trailing take-profit; an empty callback falls back to 5%."""
        def action():
            position = self.ledger.set_trailing(
                position_id,
                _optional_price(activation),
                safe_float(callback, DEFAULT_TRAIL_CALLBACK) or DEFAULT_TRAIL_CALLBACK,
            )
            return ActionResult(success=True, message="Trailing take-profit set", data={"position": position.to_dict()})
        return self._run("set_trailing", action)

    def position(self, position_id: int) -> Position:
        return self.ledger.position(position_id)
