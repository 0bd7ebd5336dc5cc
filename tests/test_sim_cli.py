"""
Smoke tests for the headless runner.
"""

import json

import pytest

from sim_cli import parse_cli_args, run


class TestParseArgs:
    def test_defaults(self):
        args = parse_cli_args([])
        assert args.sim == "futures"
        assert args.ticks == 30
        assert args.buy is None and args.sell is None

    def test_buy_and_sell_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_cli_args(["--buy", "1", "--sell", "1"])


class TestRun:
    @pytest.mark.parametrize("argv", [
        ["--sim", "futures", "--buy", "0.1", "--tp", "70000", "--sl", "60000"],
        ["--sim", "margin", "--sell", "1", "--price", "1950", "--leverage", "5"],
        ["--sim", "spot", "--buy", "0.01"],
        ["--sim", "tradfi", "--asset", "gold", "--buy", "3"],
    ])
    def test_runs_each_simulator(self, argv):
        assert run(parse_cli_args(argv + ["--ticks", "5", "--seed", "7"])) == 0

    def test_json_output(self, capsys):
        assert run(parse_cli_args(["--sim", "spot", "--ticks", "3", "--seed", "1", "--json"])) == 0
        account = json.loads(capsys.readouterr().out)
        assert account["balance"] == 10000.0

    def test_unknown_asset(self):
        assert run(parse_cli_args(["--sim", "tradfi", "--asset", "doge", "--ticks", "1"])) == 1
