from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from ..models import FinancePolicy, FurnitureGroup, Order
from ..normalize.orders import as_order
from .breakdown import group_painting
from .tax_rates import tax_rate_for


def _jl_foam(g: FurnitureGroup) -> Decimal:
    return g.foam_jl_price * (g.foam_qnty or Decimal(1))


def group_jl_material(g: FurnitureGroup) -> Decimal:
    return g.material_jl_price * g.material_jl_qnty


def extra_expenses_total(order: Order) -> Decimal:
    return sum((e.effective_total for e in order.extra_expenses), Decimal(0))


def internal_cost_before_tax(
    order: Union[Order, Mapping[str, Any]],
    policy: Optional[FinancePolicy] = None,
) -> Decimal:
    policy = policy or FinancePolicy()
    o = as_order(order, policy)
    total = Decimal(0)
    for g in o.furniture_groups:
        total += group_jl_material(g) + _jl_foam(g) + g.other_expenses + g.shipping
        if policy.include_painting_in_internal_cost:
            total += group_painting(g)
    return total + extra_expenses_total(o)


def internal_cost(
    order: Union[Order, Mapping[str, Any]],
    tax_rates: Optional[Mapping[str, Any]] = None,
    policy: Optional[FinancePolicy] = None,
) -> Decimal:
    """JL's own cost for an order.

    JL material is taxed at the supplier's purchase rate; foam, other
    expenses, shipping and extra expenses are taken as-is.
    """
    policy = policy or FinancePolicy()
    o = as_order(order, policy)
    total = Decimal(0)
    for g in o.furniture_groups:
        subtotal = group_jl_material(g)
        rate = tax_rate_for(g.material_company, tax_rates, policy.default_material_tax_rate)
        total += subtotal + subtotal * rate
        total += _jl_foam(g)
        total += g.other_expenses
        total += g.shipping
        if policy.include_painting_in_internal_cost:
            total += group_painting(g)
    return total + extra_expenses_total(o)
