from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..calculators.profit import order_profit, profit_margin
from ..models import Change, FinancePolicy, Order, PeriodTotals, ProfitSummary, Trend
from ..normalize.orders import as_order
from ..utils import month_key, quarter_key


logger = logging.getLogger(__name__)

PERIOD_TYPES = ("monthly", "quarterly", "yearly")


def attribute_order(
    order: Order,
    profit: ProfitSummary,
    months: Optional[Iterable[str]] = None,
) -> List[Tuple[str, ProfitSummary]]:
    """Month slices of an order's totals, limited to `months` when given.

    An allocated order contributes its percentage-weighted slice to each
    allocated month. An unallocated order contributes everything to the month
    it started in (creation month when no start date is recorded).
    """
    wanted = set(months) if months is not None else None
    out: List[Tuple[str, ProfitSummary]] = []
    if order.allocation and order.allocation.allocations:
        for e in order.allocation.allocations:
            if e.percentage <= 0:
                continue
            if wanted is not None and e.month_key not in wanted:
                continue
            out.append((e.month_key, profit.share(e.percentage)))
        return out
    start = order.period_start
    if start is None:
        logger.warning("Order %s has no start or creation date; left out of P&L", order.id or "?")
        return out
    key = month_key(start.year, start.month)
    if wanted is None or key in wanted:
        out.append((key, profit))
    return out


def add_to_period(data: Dict[str, PeriodTotals], key: str, p: ProfitSummary) -> None:
    t = data.setdefault(key, PeriodTotals())
    t.revenue += p.revenue
    t.costs += p.cost
    t.profit += p.profit
    t.order_count += 1
    t.profit_margin = profit_margin(t.revenue, t.profit)


def _is_cross_month(order: Order) -> bool:
    s, e = order.period_start, order.period_end
    if s is None or e is None:
        return False
    return (s.year, s.month) != (e.year, e.month)


def process_orders(
    orders: Iterable[Union[Order, Mapping[str, Any]]],
    tax_rates: Optional[Mapping[str, Any]] = None,
    policy: Optional[FinancePolicy] = None,
    months: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Aggregate orders into monthly, quarterly and yearly P&L tables."""
    monthly: Dict[str, PeriodTotals] = {}
    quarterly: Dict[str, PeriodTotals] = {}
    yearly: Dict[str, PeriodTotals] = {}
    cross_month: List[Order] = []
    months = list(months) if months is not None else None

    for raw in orders:
        o = as_order(raw, policy)
        profit = order_profit(o, tax_rates, policy)
        if _is_cross_month(o) or (o.allocation and o.allocation.method == "manual"):
            cross_month.append(o)
        slices = attribute_order(o, profit, months)
        logger.debug("Order %s -> %s", o.id, [k for k, _ in slices])
        for key, p in slices:
            year, month = int(key[:4]), int(key[5:])
            add_to_period(monthly, key, p)
            add_to_period(quarterly, quarter_key(year, month), p)
            add_to_period(yearly, str(year), p)

    return {
        "monthly": dict(sorted(monthly.items())),
        "quarterly": dict(sorted(quarterly.items())),
        "yearly": dict(sorted(yearly.items())),
        "cross_month_orders": cross_month,
    }


def _change(current: Decimal, previous: Decimal, signed_base: bool) -> Change:
    base = abs(previous) if signed_base else previous
    if signed_base:
        pct = (current - previous) / base * 100 if previous != 0 else Decimal(0)
    else:
        pct = (current - previous) / base * 100 if previous > 0 else Decimal(0)
    return Change(change=current - previous, percentage=pct)


def calculate_trends(period_data: Mapping[str, PeriodTotals], current_period: str) -> Optional[Trend]:
    periods = sorted(period_data)
    if current_period not in periods:
        return None
    idx = periods.index(current_period)
    if idx <= 0:
        return None
    cur = period_data[current_period]
    prev = period_data[periods[idx - 1]]
    return Trend(
        revenue=_change(cur.revenue, prev.revenue, signed_base=False),
        profit=_change(cur.profit, prev.profit, signed_base=True),
        margin=_change(cur.profit_margin, prev.profit_margin, signed_base=True),
    )


def period_key(period_type: str, year: int, month: Optional[int] = None) -> str:
    """month is 1-12; required for monthly and quarterly keys."""
    if period_type == "monthly":
        return month_key(year, month or 1)
    if period_type == "quarterly":
        return quarter_key(year, month or 1)
    return str(year)


def previous_period_key(period_type: str, year: int, month: Optional[int] = None) -> str:
    month = month or 1
    if period_type == "monthly":
        return month_key(year - 1, 12) if month == 1 else month_key(year, month - 1)
    if period_type == "quarterly":
        q = (month - 1) // 3 + 1
        return f"{year - 1}-Q4" if q == 1 else f"{year}-Q{q - 1}"
    return str(year - 1)


def period_comparison(
    report: Mapping[str, Mapping[str, PeriodTotals]],
    period_type: str,
    year: int,
    month: Optional[int] = None,
) -> Optional[Dict[str, Any]]:
    table = report.get(period_type, {})
    current = table.get(period_key(period_type, year, month))
    if current is None:
        return None
    previous = table.get(previous_period_key(period_type, year, month))
    return {
        "current": current,
        "previous": previous,
        "trends": calculate_trends(table, period_key(period_type, year, month)) if previous else None,
    }


def year_to_date(monthly: Mapping[str, PeriodTotals], year: int) -> PeriodTotals:
    ytd = PeriodTotals()
    prefix = f"{year}-"
    for key, t in monthly.items():
        if key.startswith(prefix):
            ytd.revenue += t.revenue
            ytd.costs += t.costs
            ytd.profit += t.profit
            ytd.order_count += t.order_count
    ytd.profit_margin = profit_margin(ytd.revenue, ytd.profit)
    return ytd


def trend_indicator(current: Decimal, previous: Optional[Decimal]) -> str:
    if not previous:
        return "neutral"
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "neutral"


def filter_months(year: int, month: Optional[int] = None) -> List[str]:
    if month is not None:
        return [month_key(year, month)]
    return [month_key(year, m) for m in range(1, 13)]
