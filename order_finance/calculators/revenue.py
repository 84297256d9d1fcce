from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from ..models import DepositStatus, FinancePolicy, InvoiceTotals, Order
from ..normalize.orders import as_order
from .breakdown import cost_breakdown
from .internal_cost import extra_expenses_total, internal_cost, internal_cost_before_tax


def items_subtotal(order: Union[Order, Mapping[str, Any]], policy: Optional[FinancePolicy] = None) -> Decimal:
    """Material + labour + foam + painting, summed straight from the pieces."""
    o = as_order(order, policy)
    total = Decimal(0)
    for g in o.furniture_groups:
        total += g.material_price * g.material_qnty
        total += g.labour_price * g.labour_qnty
        if g.labour_work and not g.labour_price:
            total += g.labour_work * (g.quantity or Decimal(1))
        if g.has_foam:
            total += g.foam_price * g.foam_qnty
        if g.has_painting:
            total += g.painting_labour * g.painting_qnty
    return total


def taxable_amount(order: Union[Order, Mapping[str, Any]], policy: Optional[FinancePolicy] = None) -> Decimal:
    # labour and painting are services and carry no tax
    bd = cost_breakdown(order, policy)
    return bd.taxable_amount


def order_tax(order: Union[Order, Mapping[str, Any]], policy: Optional[FinancePolicy] = None) -> Decimal:
    policy = policy or FinancePolicy()
    return taxable_amount(order, policy) * policy.customer_tax_rate


def order_total(order: Union[Order, Mapping[str, Any]], policy: Optional[FinancePolicy] = None) -> Decimal:
    """Tax-inclusive amount billed to the customer.

    Pickup/delivery is added after tax and is never taxed.
    """
    policy = policy or FinancePolicy()
    o = as_order(order, policy)
    bd = cost_breakdown(o, policy)
    return items_subtotal(o, policy) + order_tax(o, policy) + bd.pickup_delivery


def invoice_totals(
    order: Union[Order, Mapping[str, Any], None],
    tax_rates: Optional[Mapping[str, Any]] = None,
    policy: Optional[FinancePolicy] = None,
) -> InvoiceTotals:
    if order is None:
        return InvoiceTotals()
    policy = policy or FinancePolicy()
    o = as_order(order, policy)
    bd = cost_breakdown(o, policy)
    tax = bd.taxable_amount * policy.customer_tax_rate
    grand_total = bd.items_subtotal + tax + bd.pickup_delivery
    paid = o.payment_data.amount_paid
    return InvoiceTotals(
        items_subtotal=bd.items_subtotal,
        tax_amount=tax,
        pickup_delivery_cost=bd.pickup_delivery,
        grand_total=grand_total,
        amount_paid=paid,
        balance_due=grand_total - paid,
        jl_subtotal_before_tax=internal_cost_before_tax(o, policy),
        jl_grand_total=internal_cost(o, tax_rates, policy),
        extra_expenses_total=extra_expenses_total(o),
    )


def deposit_status(order: Union[Order, Mapping[str, Any]], policy: Optional[FinancePolicy] = None) -> DepositStatus:
    o = as_order(order, policy)
    total = order_total(o, policy)
    deposit = o.payment_data.deposit
    paid = o.payment_data.amount_paid
    return DepositStatus(
        total=total,
        deposit=deposit,
        amount_paid=paid,
        remaining=total - paid,
        is_deposit_paid=paid >= deposit,
        is_fully_paid=paid >= total,
    )
