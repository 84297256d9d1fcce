from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from ..models import FinancePolicy, Order, ProfitSummary
from ..normalize.orders import as_order
from .internal_cost import internal_cost
from .revenue import order_total


def profit_margin(revenue: Decimal, profit: Decimal) -> Decimal:
    if revenue > 0:
        return profit / revenue * Decimal(100)
    return Decimal(0)


def order_profit(
    order: Union[Order, Mapping[str, Any]],
    tax_rates: Optional[Mapping[str, Any]] = None,
    policy: Optional[FinancePolicy] = None,
) -> ProfitSummary:
    o = as_order(order, policy)
    revenue = order_total(o, policy)
    cost = internal_cost(o, tax_rates, policy)
    profit = revenue - cost
    return ProfitSummary(
        revenue=revenue,
        cost=cost,
        profit=profit,
        profit_percentage=profit_margin(revenue, profit),
    )
