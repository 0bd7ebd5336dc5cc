"""
SpotSimulator facade tests.

Scripted prices go through sim.tick(price=...), which feeds the same tick
path as generated candles.
"""

import pytest

from tradesim.sim.types import OrderSide


class TestLifecycle:
    def test_starts_at_preset_price(self, spot_sim):
        assert spot_sim.symbol == "BTC/USDT"
        assert spot_sim.current_price == 65000.0
        assert spot_sim.open_price == 65000.0
        assert len(spot_sim.candles) == 80
        assert spot_sim.balance == 10000.0

    def test_clock_drives_candles(self, spot_sim, scheduler):
        spot_sim.start()
        scheduler.advance(3000)
        assert len(spot_sim.candles) == 83
        assert spot_sim.current_price == spot_sim.candles[-1].close

    def test_window_is_bounded(self, spot_sim):
        for _ in range(30):
            spot_sim.tick()
        assert len(spot_sim.candles) == 100

    def test_pause_stops_ticks(self, spot_sim, scheduler):
        spot_sim.start()
        assert spot_sim.toggle_pause() is True
        scheduler.advance(5000)
        assert len(spot_sim.candles) == 80
        assert spot_sim.is_paused

    def test_fast_speed(self, spot_sim, scheduler):
        assert spot_sim.set_speed(3).success
        spot_sim.start()
        scheduler.advance(1050)
        assert len(spot_sim.candles) == 83

    def test_unsupported_speed(self, spot_sim, notifier):
        result = spot_sim.set_speed(2)
        assert not result.success
        assert result.code == "INVALID_SPEED"
        assert notifier.last[1] is False

    def test_scripted_tick_updates_views(self, spot_sim):
        result = spot_sim.tick(price=66300.0)
        assert result.candle.close == 66300.0
        assert spot_sim.current_price == 66300.0
        assert spot_sim.price_change_pct == pytest.approx(2.0)
        assert spot_sim.book.mid == 66300.0
        assert spot_sim.book.best_ask > 66300.0 > spot_sim.book.best_bid

    def test_emas(self, spot_sim):
        emas = spot_sim.emas()
        assert sorted(emas) == [5, 25, 45, 144]
        assert all(value > 0 for value in emas.values())

    def test_reset_keeps_history(self, spot_sim):
        spot_sim.buy("0.01")
        spot_sim.sell("0.01")
        spot_sim.reset()
        assert spot_sim.balance == 10000.0
        assert spot_sim.holdings == 0.0
        assert spot_sim.current_price == 65000.0
        assert len(spot_sim.history_records()) == 1


class TestOrders:
    def test_market_buy(self, spot_sim, notifier):
        result = spot_sim.buy("0.01")
        assert result.success
        assert spot_sim.holdings == pytest.approx(0.01)
        assert spot_sim.balance == pytest.approx(10000.0 - 650.0 - 0.65)
        assert result.data["fee"] == pytest.approx(0.65)
        assert notifier.last == (result.message, True)

    def test_buy_starts_bias_sell_resets_it(self, spot_sim):
        spot_sim.buy("0.01")
        assert spot_sim.bias.is_active
        spot_sim.sell("0.01")
        assert not spot_sim.bias.is_active

    def test_sell_records_history(self, spot_sim):
        spot_sim.buy("0.02")
        spot_sim.tick(price=66000.0)
        result = spot_sim.sell("0.02")
        assert result.success
        record = spot_sim.history_records()[0]
        assert record.entry_price == 65000.0
        assert record.exit_price == 66000.0
        assert record.pnl == pytest.approx(20.0)
        summary = spot_sim.history_summary()
        assert summary["count"] == 1
        assert summary["win_rate"] == 100.0

    def test_losing_sell_is_negative_toast(self, spot_sim, notifier):
        spot_sim.buy("0.02")
        spot_sim.tick(price=64000.0)
        spot_sim.sell("0.02")
        assert notifier.last[1] is False

    @pytest.mark.parametrize("amount", ["", "abc", "0", "-1"])
    def test_invalid_amount(self, spot_sim, notifier, amount):
        result = spot_sim.buy(amount)
        assert not result.success
        assert result.code == "INVALID_AMOUNT"
        assert result.error == "Please enter a valid amount"
        assert notifier.last == ("Please enter a valid amount", False)
        assert spot_sim.balance == 10000.0

    def test_insufficient_balance(self, spot_sim):
        result = spot_sim.buy("1")
        assert not result.success
        assert result.code == "INSUFFICIENT_BALANCE"

    def test_sell_without_holdings(self, spot_sim):
        result = spot_sim.sell("0.1")
        assert result.code == "INSUFFICIENT_HOLDINGS"

    def test_unknown_order_type(self, spot_sim):
        result = spot_sim.place_order("buy", "0.01", order_type="stop")
        assert not result.success
        assert result.code == "INVALID_ORDER"


class TestLimitOrders:
    def test_empty_price_uses_current(self, spot_sim):
        result = spot_sim.buy("0.01", order_type="limit", price="")
        assert result.success
        assert spot_sim.orders[0].price == 65000.0

    def test_limit_buy_fills_on_tick(self, spot_sim):
        spot_sim.buy("0.01", order_type="limit", price="64000")
        tick = spot_sim.tick(price=63900.0)
        assert len(tick.filled) == 1
        assert spot_sim.avg_cost == 64000.0
        assert spot_sim.balance == pytest.approx(10000.0 - 640.0 - 0.64)

    def test_bad_limit_price(self, spot_sim):
        result = spot_sim.buy("0.01", order_type="limit", price="abc")
        assert result.code == "INVALID_PRICE"
        assert spot_sim.orders == []

    def test_cancel(self, spot_sim):
        spot_sim.buy("0.01", order_type="limit", price="60000")
        order_id = spot_sim.orders[0].order_id
        assert spot_sim.cancel_order(order_id).success
        assert spot_sim.cancel_order(order_id).code == "ORDER_NOT_FOUND"


class TestSellAll:
    def test_sells_exact_holdings(self, spot_sim):
        spot_sim.buy("0.12345")
        spot_sim.tick(price=66000.0)
        assert spot_sim.percent_to_amount(100, OrderSide.SELL) < spot_sim.holdings

        result = spot_sim.sell_all()
        assert result.success
        assert spot_sim.holdings == 0.0
        assert spot_sim.avg_cost == 0.0
        assert not spot_sim.bias.is_active
        record = spot_sim.history_records()[0]
        assert record.size == pytest.approx(0.12345)
        assert record.pnl == pytest.approx(123.45)

    def test_nothing_held(self, spot_sim, notifier):
        result = spot_sim.sell_all()
        assert result.code == "INSUFFICIENT_HOLDINGS"
        assert result.message == "No BTC to sell"
        assert notifier.last[1] is False


class TestViews:
    def test_percent_to_amount(self, spot_sim):
        assert spot_sim.percent_to_amount(50, OrderSide.BUY) == pytest.approx(0.0768)
        spot_sim.buy("0.05")
        assert spot_sim.percent_to_amount(50, OrderSide.SELL) == pytest.approx(0.025)

    def test_full_buy_slider_covers_fee(self, spot_sim):
        amount = spot_sim.percent_to_amount(100, OrderSide.BUY)
        assert amount == pytest.approx(0.1536)
        result = spot_sim.buy(amount)
        assert result.success
        assert 0 <= spot_sim.balance < 65.0

    def test_account(self, spot_sim):
        spot_sim.buy("0.01")
        spot_sim.tick(price=66000.0)
        account = spot_sim.account()
        assert account["holdings"] == pytest.approx(0.01)
        assert account["avg_cost"] == 65000.0
        assert account["market_value"] == pytest.approx(660.0)
        assert account["unrealized_pnl"] == pytest.approx(10.0)
        assert account["unrealized_pct"] == pytest.approx(100 * 1000.0 / 65000.0)
        assert account["equity"] == pytest.approx(account["balance"] + 660.0)


class TestSubscriptions:
    def test_listeners_run_after_ticks_and_actions(self, spot_sim):
        calls = []
        unsubscribe = spot_sim.subscribe(lambda: calls.append(1))
        spot_sim.tick()
        spot_sim.buy("0.01")
        spot_sim.buy("bad")
        assert len(calls) == 2
        unsubscribe()
        spot_sim.tick()
        assert len(calls) == 2

    def test_reset_history(self, spot_sim):
        spot_sim.buy("0.01")
        spot_sim.sell("0.01")
        assert spot_sim.reset_history().success
        assert spot_sim.history_records() == []
