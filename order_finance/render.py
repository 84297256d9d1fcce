from __future__ import annotations

from typing import List

from .models import (
    AllocationEntry,
    AllocationStatus,
    CostBreakdown,
    FurnitureGroup,
    InvoiceTotals,
    ProfitSummary,
)
from .utils import money, percent


def _num(d) -> str:
    return format(d.normalize(), "f") if d == d.to_integral() else str(d)


def format_furniture_details(g: FurnitureGroup, symbol: str = "$") -> str:
    """One-line summary of a furniture piece for lists and emails."""
    details: List[str] = []
    if g.furniture_type:
        details.append(f"Type: {g.furniture_type}")
    if g.material_company:
        details.append(f"Material: {g.material_company}")
    if g.material_code:
        details.append(f"Code: {g.material_code}")
    if g.material_qnty and g.material_price:
        details.append(f"Material: {_num(g.material_qnty)} × {money(g.material_price, symbol)}")
    if g.labour_qnty and g.labour_price:
        details.append(f"Labour: {_num(g.labour_qnty)} × {money(g.labour_price, symbol)}")
    if g.foam_qnty and g.foam_price:
        details.append(f"Foam: {_num(g.foam_qnty)} × {money(g.foam_price, symbol)}")
    if g.painting_qnty and g.painting_labour:
        details.append(f"Painting: {_num(g.painting_qnty)} × {money(g.painting_labour, symbol)}")
    if g.quantity and g.labour_work and not g.labour_price:
        details.append(f"Qty: {_num(g.quantity)}, Labour: {money(g.labour_work, symbol)}")
    if g.labour_note:
        details.append(f"Note: {g.labour_note}")
    return " | ".join(details) if details else "No details available"


def breakdown_lines(bd: CostBreakdown, symbol: str = "$") -> List[str]:
    return [
        f"Material         {money(bd.material, symbol):>14}",
        f"Labour           {money(bd.labour, symbol):>14}",
        f"Foam             {money(bd.foam, symbol):>14}",
        f"Painting         {money(bd.painting, symbol):>14}",
        f"Pickup/Delivery  {money(bd.pickup_delivery, symbol):>14}",
    ]


def invoice_lines(t: InvoiceTotals, symbol: str = "$") -> List[str]:
    return [
        f"Items subtotal   {money(t.items_subtotal, symbol):>14}",
        f"Tax              {money(t.tax_amount, symbol):>14}",
        f"Pickup/Delivery  {money(t.pickup_delivery_cost, symbol):>14}",
        f"Grand total      {money(t.grand_total, symbol):>14}",
        f"Amount paid      {money(t.amount_paid, symbol):>14}",
        f"Balance due      {money(t.balance_due, symbol):>14}",
        f"JL before tax    {money(t.jl_subtotal_before_tax, symbol):>14}",
        f"JL total         {money(t.jl_grand_total, symbol):>14}",
    ]


def profit_lines(p: ProfitSummary, symbol: str = "$") -> List[str]:
    return [
        f"Revenue          {money(p.revenue, symbol):>14}",
        f"Cost             {money(p.cost, symbol):>14}",
        f"Profit           {money(p.profit, symbol):>14}",
        f"Margin           {percent(p.profit_percentage):>14}",
    ]


def allocation_lines(entries: List[AllocationEntry], status: AllocationStatus, symbol: str = "$") -> List[str]:
    lines = []
    for e in entries:
        days = f"{e.days:>3}d" if e.days is not None else "    "
        lines.append(
            f"{e.month_key}  {days}  {percent(e.percentage):>7}  "
            f"rev {money(e.revenue or 0, symbol):>12}  cost {money(e.cost or 0, symbol):>12}  "
            f"profit {money(e.profit or 0, symbol):>12}"
        )
    lines.append(f"Total {percent(status.total_percentage)}: {status.message}")
    return lines
