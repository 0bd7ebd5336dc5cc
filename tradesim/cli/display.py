"""
Rich display helpers for simulator state.

Contains:
- Header panel (print_header)
- Action results (print_result)
- Account, positions, orders and history tables
- Multi-asset price board (print_assets)
"""

from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..sim.facades import MultiAssetSimulator
from ..sim.types import ActionResult, HistoryRecord, LimitOrder, Position


# Global Console
console = Console()


def _pnl_style(value: float) -> str:
    return "green" if value >= 0 else "red"


def _fmt(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:,.{decimals}f}"


def print_header(kind: str, symbol: str, price: float, decimals: int = 2) -> None:
    """Print the simulator banner."""
    grid = Table.grid(expand=True)
    grid.add_column(justify="center", ratio=1)
    grid.add_column(justify="center", ratio=1)
    grid.add_row(f"[bold cyan]{kind.upper()}[/]", f"{symbol} @ [bold]{price:,.{decimals}f}[/]")
    console.print(Panel(grid, title="[bold cyan]tradesim[/]", border_style="cyan",
                        subtitle="[dim]Simulated market | no real funds[/]"))


def print_result(result: ActionResult) -> None:
    """Print an ActionResult in a formatted way."""
    if not result.success:
        console.print(Panel(f"[bold red]✗ {result.message}[/]", border_style="red",
                            subtitle=f"[dim]{result.code}[/]" if result.code else None))
        return

    console.print(Panel(f"[bold green]✓ {result.message}[/]", border_style="green"))
    if not result.data:
        return

    tree = Tree("[bold cyan]Result Data[/]")

    def add_dict_to_tree(d, parent):
        for k, v in d.items():
            if v is None:
                continue
            if isinstance(v, dict):
                branch = parent.add(f"[yellow]{k}[/]")
                add_dict_to_tree(v, branch)
            else:
                parent.add(f"[cyan]{k}:[/] {v}")

    add_dict_to_tree(result.data, tree)
    console.print(tree)


def print_account(account: Dict[str, float], title: str = "Account") -> None:
    table = Table(title=title, show_header=False, title_style="bold cyan")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in account.items():
        label = key.replace("_", " ")
        if isinstance(value, float):
            style = _pnl_style(value) if "pnl" in key or "return" in key else ""
            text = f"{value:,.6f}" if key == "hourly_rate" else f"{value:,.4f}"
            table.add_row(label, f"[{style}]{text}[/]" if style else text)
        else:
            table.add_row(label, str(value))
    console.print(table)


def print_positions(positions: List[Position], mark_price: float, decimals: int = 2) -> None:
    if not positions:
        console.print("[dim]No open positions[/]")
        return

    table = Table(title="Open Positions", show_header=True, header_style="bold magenta")
    for column in ("ID", "Side", "Size", "Entry", "Lev", "Margin", "Liq", "TP", "SL", "uPnL", "ROE%"):
        table.add_column(column, justify="right")

    for p in positions:
        pnl = p.unrealized_pnl(mark_price)
        style = _pnl_style(pnl)
        side_style = "green" if p.direction.value == "long" else "red"
        table.add_row(
            str(p.position_id),
            f"[{side_style}]{p.direction.value.upper()}[/]",
            f"{p.size:.4f}",
            _fmt(p.entry_price, decimals),
            f"{p.leverage}x",
            _fmt(p.margin),
            _fmt(p.liquidation_price, decimals),
            _fmt(p.take_profit, decimals),
            _fmt(p.stop_loss, decimals),
            f"[{style}]{pnl:+,.2f}[/]",
            f"[{style}]{p.pnl_pct(mark_price):+.2f}[/]",
        )
    console.print(table)


def print_orders(orders: List[LimitOrder], decimals: int = 2) -> None:
    if not orders:
        return

    table = Table(title="Pending Limit Orders", show_header=True, header_style="bold magenta")
    for column in ("ID", "Side", "Price", "Amount", "Lev"):
        table.add_column(column, justify="right")
    for o in orders:
        table.add_row(str(o.order_id), o.side.value.upper(), _fmt(o.price, decimals),
                      f"{o.amount:.4f}", f"{o.leverage}x")
    console.print(table)


def print_history(records: List[HistoryRecord], summary: Dict[str, float],
                  limit: int = 20, decimals: int = 2) -> None:
    if not records:
        console.print("[dim]No closed trades[/]")
        return

    table = Table(title="Trade History", show_header=True, header_style="bold magenta")
    for column in ("Side", "Entry", "Exit", "Size", "Lev", "PnL", "PnL%", "Reason"):
        table.add_column(column, justify="right")
    for r in records[:limit]:
        style = _pnl_style(r.pnl)
        table.add_row(
            r.direction.value.upper(),
            _fmt(r.entry_price, decimals),
            _fmt(r.exit_price, decimals),
            f"{r.size:.4f}",
            f"{r.leverage}x",
            f"[{style}]{r.pnl:+,.2f}[/]",
            f"[{style}]{r.pnl_pct:+.2f}[/]",
            r.reason.value,
        )
    console.print(table)
    if len(records) > limit:
        console.print(f"[dim]... and {len(records) - limit} more[/]")

    total = summary.get("total_pnl", 0.0)
    console.print(
        f"Trades: {int(summary.get('count', 0))} | "
        f"Win rate: {summary.get('win_rate', 0.0):.1f}% | "
        f"Total PnL: [{_pnl_style(total)}]{total:+,.2f}[/]"
    )


def print_assets(sim: MultiAssetSimulator) -> None:
    """Price board with holdings for the multi-asset simulator."""
    table = Table(title="Assets", show_header=True, header_style="bold magenta")
    for column in ("Asset", "Type", "Price", "Change%", "Shares", "Buy Price"):
        table.add_column(column, justify="right")
    for asset in sim.assets:
        change = sim.price_change_pct(asset.id)
        holding = sim.holdings.get(asset.id)
        marker = "▶ " if asset.id == sim.selected else ""
        table.add_row(
            f"{marker}{asset.name}",
            asset.type,
            _fmt(sim.prices[asset.id]),
            f"[{_pnl_style(change)}]{change:+.2f}[/]",
            f"{holding.shares:g}" if holding else "-",
            _fmt(holding.buy_price) if holding else "-",
        )
    console.print(table)
