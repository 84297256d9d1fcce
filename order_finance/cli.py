from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from .calculators.breakdown import cost_breakdown
from .calculators.profit import order_profit
from .calculators.revenue import invoice_totals
from .config import load_configs
from .importers.orders_file import load_order, load_orders, save_order
from .logic.allocation import (
    AllocationError,
    ManualAllocation,
    allocation_document,
    allocation_status,
    apply_allocation,
    time_based_allocation,
    with_amounts,
)
from .logic.periods import filter_months, process_orders, year_to_date
from .normalize.orders import normalize_order
from .render import allocation_lines, breakdown_lines, format_furniture_details, invoice_lines, profit_lines
from .utils import money, percent


app = typer.Typer(help="Order financials: totals, month allocation and P&L", no_args_is_help=True)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def totals(
    order_file: str = typer.Argument(..., help="Order document (.json or .yaml)"),
    configs: str = typer.Option("configs", help="Config folder (policy, material tax rates)"),
):
    """Show the cost breakdown, invoice totals and profit of one order."""
    policy, tax_rates = load_configs(Path(configs))
    order = normalize_order(load_order(Path(order_file)), policy)
    sym = policy.currency_symbol

    typer.echo(f"Order {order.order_details.bill_invoice or order.id}")
    for g in order.furniture_groups:
        typer.echo(f"  - {format_furniture_details(g, sym)}")
    typer.echo("")
    for line in breakdown_lines(cost_breakdown(order, policy), sym):
        typer.echo(line)
    typer.echo("")
    for line in invoice_lines(invoice_totals(order, tax_rates, policy), sym):
        typer.echo(line)
    typer.echo("")
    for line in profit_lines(order_profit(order, tax_rates, policy), sym):
        typer.echo(line)


def _parse_manual(values: List[str]) -> List[tuple]:
    out = []
    for v in values:
        key, sep, pct = v.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected YYYY-MM=PERCENT, got {v!r}")
        out.append((key.strip(), pct.strip()))
    return out


@app.command()
def allocate(
    order_file: str = typer.Argument(..., help="Order document (.json or .yaml)"),
    start: Optional[str] = typer.Option(None, help="Period start (YYYY-MM-DD); defaults to the order's start date"),
    end: Optional[str] = typer.Option(None, help="Period end (YYYY-MM-DD); defaults to the order's end date"),
    manual: List[str] = typer.Option([], "--manual", "-m", help="Manual split, repeatable: YYYY-MM=PERCENT"),
    apply: bool = typer.Option(False, "--apply", help="Write the allocation into the order file when it totals 100%"),
    configs: str = typer.Option("configs", help="Config folder (policy, material tax rates)"),
):
    """Split an order's revenue, cost and profit across the months it spans."""
    policy, tax_rates = load_configs(Path(configs))
    path = Path(order_file)
    doc = load_order(path)
    order = normalize_order(doc, policy)
    profit = order_profit(order, tax_rates, policy)
    start_d = start or order.period_start
    end_d = end or order.period_end
    sym = policy.currency_symbol

    try:
        if manual:
            alloc = ManualAllocation([], profit, tolerance=policy.allocation_tolerance)
            for key, pct in _parse_manual(manual):
                alloc.add_month(key, pct)
            entries, method = alloc.entries, "manual"
        else:
            entries = with_amounts(time_based_allocation(start_d, end_d), profit)
            method = "time-based"
    except AllocationError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(code=2)

    status = allocation_status(entries, policy.allocation_tolerance)
    for line in allocation_lines(entries, status, sym):
        typer.echo(line)

    if not apply:
        return
    try:
        apply_allocation(
            entries,
            profit,
            method=method,
            write=lambda a: doc.__setitem__("allocation", allocation_document(a)),
            tolerance=policy.allocation_tolerance,
            start=start_d,
            end=end_d,
        )
    except AllocationError as e:
        typer.echo(f"Not applied: {e}")
        raise typer.Exit(code=2)
    save_order(path, doc)
    typer.echo(f"Allocation written to {path}")


@app.command()
def pl(
    orders_path: str = typer.Argument(..., help="Order export file or folder"),
    period: str = typer.Option("monthly", help="monthly, quarterly or yearly"),
    year: Optional[int] = typer.Option(None, help="Only months of this year"),
    month: Optional[int] = typer.Option(None, min=1, max=12, help="Only this month (1-12, needs --year)"),
    html: Optional[str] = typer.Option(None, help="Write an HTML report here"),
    xlsx: Optional[str] = typer.Option(None, help="Write an Excel workbook here"),
    configs: str = typer.Option("configs", help="Config folder (policy, material tax rates)"),
):
    """Profit & loss by period, with allocated orders split across months."""
    if period not in ("monthly", "quarterly", "yearly"):
        raise typer.BadParameter("period must be monthly, quarterly or yearly")
    if month is not None and year is None:
        raise typer.BadParameter("--month needs --year")
    policy, tax_rates = load_configs(Path(configs))
    months = filter_months(year, month) if year is not None else None
    report = process_orders(load_orders(Path(orders_path)), tax_rates, policy, months)
    sym = policy.currency_symbol

    rows = report[period]
    if not rows:
        typer.echo("No orders in the selected period.")
    for key, t in rows.items():
        typer.echo(
            f"{key:<8} {t.order_count:>4}  rev {money(t.revenue, sym):>12}  "
            f"cost {money(t.costs, sym):>12}  profit {money(t.profit, sym):>12}  {percent(t.profit_margin):>7}"
        )
    ytd = year_to_date(report["monthly"], year) if year is not None else None
    if ytd is not None:
        typer.echo(f"YTD {year}: rev {money(ytd.revenue, sym)}  profit {money(ytd.profit, sym)}  {percent(ytd.profit_margin)}")
    if report["cross_month_orders"]:
        unallocated = [o for o in report["cross_month_orders"] if not o.allocation]
        if unallocated:
            typer.echo(f"[warn] {len(unallocated)} order(s) span months without an allocation")

    if html:
        from .output.exporters.html import render_pl_report

        out = Path(html)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(
            render_pl_report(
                report,
                period_type=period,
                currency_symbol=sym,
                ytd=ytd,
                meta={"generated_at": datetime.now().strftime("%Y-%m-%d %H:%M")},
            ),
            encoding="utf-8",
        )
        typer.echo(f"Wrote {out}")
    if xlsx:
        from .output.exporters.xlsx import write_pl_workbook

        typer.echo(f"Wrote {write_pl_workbook(report, Path(xlsx))}")


if __name__ == "__main__":  # pragma: no cover
    app()
