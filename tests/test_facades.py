"""
Rejected user actions across every facade.

A rejected action must come back as a failed ActionResult with a stable
code, a negative toast and a BLOCKED risk line; it must never raise.
"""

import pytest


REJECTIONS = [
    ("spot_sim", lambda s: s.buy("1"), "INSUFFICIENT_BALANCE"),
    ("spot_sim", lambda s: s.buy("abc"), "INVALID_AMOUNT"),
    ("spot_sim", lambda s: s.sell_all(), "INSUFFICIENT_HOLDINGS"),
    ("margin_sim", lambda s: s.borrow("1000000"), "EXCEEDS_MAX_BORROW"),
    ("margin_sim", lambda s: s.repay(), "NOTHING_TO_REPAY"),
    ("margin_sim", lambda s: s.set_leverage(7), "INVALID_LEVERAGE"),
    ("futures_sim", lambda s: s.cancel_order(42), "ORDER_NOT_FOUND"),
    ("futures_sim", lambda s: s.close_position(42), "POSITION_NOT_FOUND"),
    ("futures_sim", lambda s: s.set_margin_mode("portfolio"), "INVALID_MARGIN_MODE"),
    ("futures_sim", lambda s: s.set_speed(5), "INVALID_SPEED"),
    ("tradfi_sim", lambda s: s.select("doge"), "UNKNOWN_ASSET"),
    ("tradfi_sim", lambda s: s.sell("1", "gold"), "INSUFFICIENT_HOLDINGS"),
    ("tradfi_sim", lambda s: s.set_speed(5), "INVALID_SPEED"),
]


class TestRejectedActions:
    @pytest.mark.parametrize("fixture, call, code", REJECTIONS)
    def test_returns_failed_result(self, request, notifier, fixture, call, code):
        sim = request.getfixturevalue(fixture)
        result = call(sim)
        assert not result.success
        assert result.code == code
        assert result.error == result.message
        assert notifier.last == (result.message, False)

    @pytest.mark.parametrize("fixture", ["spot_sim", "futures_sim", "tradfi_sim"])
    def test_rejection_skips_listeners(self, request, fixture):
        sim = request.getfixturevalue(fixture)
        calls = []
        sim.subscribe(lambda: calls.append(1))
        sim.set_speed(5)
        assert calls == []

    def test_unaffordable_reverse_reports_close(self, futures_sim):
        futures_sim.open_long("3")
        futures_sim.tick(price=64000.0)
        result = futures_sim.reverse_position(futures_sim.positions[0].position_id)
        assert result.code == "INSUFFICIENT_MARGIN"
        assert result.data["closed_record"]["reason"] == "reversed"


class TestBlockedRiskLog:
    @pytest.mark.parametrize("fixture", ["spot_sim", "tradfi_sim"])
    def test_blocked_line_names_operation(self, request, monkeypatch, fixture):
        sim = request.getfixturevalue(fixture)
        lines = []
        monkeypatch.setattr(sim.logger.main_logger, "warning", lambda msg, *a, **k: lines.append(msg))

        sim.buy("abc")

        assert len(lines) == 1
        assert lines[0].startswith("[RISK:BLOCKED] Please enter a valid amount")
        assert f"sim={sim.kind}" in lines[0]
        assert "code=INVALID_AMOUNT" in lines[0]
        assert "op=" in lines[0]
