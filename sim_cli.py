#!/usr/bin/env python3
"""
tradesim - headless simulator runner

Runs one simulator on virtual time for a fixed number of ticks, optionally
opening a position first, then prints the account, open positions and
trade history.

Examples:
  python sim_cli.py --sim futures --buy 0.1 --leverage 50 --ticks 60
  python sim_cli.py --sim margin --buy 1 --tp 2000 --sl 1800 --seed 7
  python sim_cli.py --sim spot --buy 0.05 --ticks 20 --json
  python sim_cli.py --sim tradfi --asset gold --buy 3 --ticks 40
"""

import argparse
import json
import sys

import numpy as np

from tradesim.cli.display import (
    console,
    print_account,
    print_assets,
    print_header,
    print_history,
    print_orders,
    print_positions,
    print_result,
)
from tradesim.config.config import get_config
from tradesim.sim import ManualScheduler, MultiAssetSimulator, create_simulator
from tradesim.sim.factory import available_simulators
from tradesim.utils.logger import setup_logger


def parse_cli_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments for sim_cli."""
    parser = argparse.ArgumentParser(
        description="tradesim - run a trading simulator headless",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument("--sim", choices=available_simulators(), default="futures",
                        help="Simulator to run (default: futures)")
    parser.add_argument("--ticks", type=int, default=30, help="Number of market ticks to run (default: 30)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the price generator")

    side = parser.add_mutually_exclusive_group()
    side.add_argument("--buy", metavar="AMOUNT", help="Open with a buy of AMOUNT")
    side.add_argument("--sell", metavar="AMOUNT", help="Open with a sell of AMOUNT")

    parser.add_argument("--price", help="Limit price for the opening order (default: market)")
    parser.add_argument("--leverage", type=int, help="Leverage tier (margin/futures)")
    parser.add_argument("--tp", help="Take-profit price for the opened position")
    parser.add_argument("--sl", help="Stop-loss price for the opened position")
    parser.add_argument("--asset", help="Asset id to trade (tradfi only)")
    parser.add_argument("--json", action="store_true", dest="json_output",
                        help="Print the final account as JSON")
    return parser.parse_args(argv)


def _open(sim, args) -> None:
    """Apply the opening order and any TP/SL from the arguments."""
    amount = args.buy if args.buy is not None else args.sell
    if amount is None:
        return
    side = "buy" if args.buy is not None else "sell"

    if isinstance(sim, MultiAssetSimulator):
        result = sim.buy(amount, args.asset) if side == "buy" else sim.sell(amount, args.asset)
        if not args.json_output:
            print_result(result)
        return

    if args.leverage is not None and hasattr(sim, "set_leverage"):
        result = sim.set_leverage(args.leverage)
        if not result.success and not args.json_output:
            print_result(result)

    order_type = "limit" if args.price else "market"
    result = sim.place_order(side, amount, order_type, args.price)
    if not args.json_output:
        print_result(result)

    if result.success and (args.tp or args.sl) and hasattr(sim, "set_tp_sl") and sim.positions:
        tp_result = sim.set_tp_sl(sim.positions[-1].position_id, args.tp, args.sl)
        if not args.json_output:
            print_result(tp_result)


def run(args: argparse.Namespace) -> int:
    scheduler = ManualScheduler()
    rng = np.random.default_rng(args.seed)
    sim = create_simulator(args.sim, scheduler=scheduler, rng=rng)

    if args.asset and isinstance(sim, MultiAssetSimulator):
        selected = sim.select(args.asset)
        if not selected.success:
            print_result(selected)
            return 1

    if not args.json_output:
        if isinstance(sim, MultiAssetSimulator):
            asset = sim.selected_asset
            print_header(sim.kind, asset.symbol, sim.prices[asset.id])
        else:
            print_header(sim.kind, sim.symbol, sim.current_price, sim.preset.price_decimals)

    _open(sim, args)

    sim.start()
    for _ in range(max(args.ticks, 0)):
        scheduler.advance(sim.clock.interval_ms)
    sim.stop()

    if args.json_output:
        console.print_json(json.dumps(sim.account()))
        return 0

    if isinstance(sim, MultiAssetSimulator):
        print_assets(sim)
        print_account(sim.account())
        return 0

    decimals = sim.preset.price_decimals
    console.print(f"[dim]After {args.ticks} ticks:[/] {sim.symbol} @ [bold]{sim.current_price:,.{decimals}f}[/] "
                  f"({sim.price_change_pct:+.2f}%)")
    print_account(sim.account())
    print_positions(sim.positions, sim.current_price, decimals)
    print_orders(sim.orders, decimals)
    print_history(sim.history_records(), sim.history_summary(), decimals=decimals)
    return 0


def main(argv=None) -> None:
    args = parse_cli_args(argv)
    log = get_config().log
    setup_logger(log.log_dir or None, "WARNING" if args.json_output else log.level)

    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/]")
        sys.exit(130)


if __name__ == "__main__":
    main()
