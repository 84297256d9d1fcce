from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from ..models import CostBreakdown, FinancePolicy, FurnitureGroup, Order, PaymentData
from ..normalize.orders import as_order
from ..utils import parse_money


def pickup_delivery_cost(base: Any, service_type: Optional[str]) -> Decimal:
    cost = parse_money(base)
    if service_type == "both":
        return cost * 2
    return cost


def payment_pickup_delivery(payment: PaymentData) -> Decimal:
    if not payment.pickup_delivery_enabled:
        return Decimal(0)
    return pickup_delivery_cost(payment.pickup_delivery_cost, payment.pickup_delivery_service_type)


def group_labour(g: FurnitureGroup) -> Decimal:
    labour = g.labour_price * g.labour_qnty
    # Legacy pieces carry a flat labourWork and piece count instead of a price.
    if g.labour_work and not g.labour_price:
        labour += g.labour_work * (g.quantity or Decimal(1))
    return labour


def group_foam(g: FurnitureGroup) -> Decimal:
    return g.foam_price * g.foam_qnty if g.has_foam else Decimal(0)


def group_painting(g: FurnitureGroup) -> Decimal:
    return g.painting_labour * g.painting_qnty if g.has_painting else Decimal(0)


def cost_breakdown(
    order: Union[Order, Mapping[str, Any]],
    policy: Optional[FinancePolicy] = None,
) -> CostBreakdown:
    """Customer-facing category totals for an order.

    Nothing here raises: unreadable amounts were already coerced to 0 when the
    order was normalized.
    """
    o = as_order(order, policy)
    bd = CostBreakdown()
    for g in o.furniture_groups:
        bd.material += g.material_price * g.material_qnty
        bd.labour += group_labour(g)
        bd.foam += group_foam(g)
        bd.painting += group_painting(g)
    bd.pickup_delivery = payment_pickup_delivery(o.payment_data)
    bd.total = bd.items_subtotal + bd.pickup_delivery
    return bd
