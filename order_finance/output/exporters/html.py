from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ...calculators.profit import profit_margin
from ...models import PeriodTotals
from ...utils import money, percent


def render_pl_report(
    report: Mapping[str, Any],
    period_type: str = "monthly",
    title: str = "Profit & Loss",
    currency_symbol: str = "$",
    ytd: Optional[PeriodTotals] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> str:
    """Render one P&L table (monthly, quarterly or yearly) as a standalone HTML page."""
    rows: Mapping[str, PeriodTotals] = report.get(period_type, {})
    totals = PeriodTotals()
    for t in rows.values():
        totals.revenue += t.revenue
        totals.costs += t.costs
        totals.profit += t.profit
        totals.order_count += t.order_count
    totals.profit_margin = profit_margin(totals.revenue, totals.profit)

    tmpl_dir = Path(__file__).resolve().parent.parent / "templates"
    env = Environment(loader=FileSystemLoader(str(tmpl_dir)), autoescape=select_autoescape(["html", "xml"]))
    template = env.get_template("pl_report.html.j2")
    return template.render(
        title=title,
        period_type=period_type,
        rows=rows,
        totals=totals,
        ytd=ytd,
        cross_month_orders=report.get("cross_month_orders", []),
        meta=meta or {},
        money=lambda x: money(x, currency_symbol),
        percent=percent,
    )
