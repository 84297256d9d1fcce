from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from ..models import (
    ExtraExpense,
    FinancePolicy,
    FurnitureGroup,
    Order,
    OrderDetails,
    PaymentData,
)
from ..utils import parse_date, parse_money
from .allocations import normalize_allocation


logger = logging.getLogger(__name__)

SERVICE_TYPES = ("pickup", "delivery", "both")

# camelCase document field -> FurnitureGroup attribute
_GROUP_MONEY_FIELDS = {
    "materialPrice": "material_price",
    "materialQnty": "material_qnty",
    "materialJLPrice": "material_jl_price",
    "materialJLQnty": "material_jl_qnty",
    "labourPrice": "labour_price",
    "labourQnty": "labour_qnty",
    "labourWork": "labour_work",
    "quantity": "quantity",
    "foamPrice": "foam_price",
    "foamJLPrice": "foam_jl_price",
    "foamQnty": "foam_qnty",
    "paintingLabour": "painting_labour",
    "paintingQnty": "painting_qnty",
    "otherExpenses": "other_expenses",
    "shipping": "shipping",
}
_GROUP_TEXT_FIELDS = {
    "furnitureType": "furniture_type",
    "materialCompany": "material_company",
    "materialCode": "material_code",
    "labourNote": "labour_note",
    "paintingNote": "painting_note",
    "customerNote": "customer_note",
}


def _text(v: Any) -> str:
    if v is None:
        return ""
    return str(v)


def _flag(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("true", "yes", "1", "on")
    return bool(v)


def _mapping(v: Any) -> Mapping[str, Any]:
    return v if isinstance(v, Mapping) else {}


def _list(v: Any) -> List[Any]:
    return v if isinstance(v, list) else []


def _first_present(raw: Mapping[str, Any], *keys: str, kind: type = Mapping) -> Any:
    """First non-empty value of the expected kind; wrong-typed values count as missing."""
    for k in keys:
        v = raw.get(k)
        if v and isinstance(v, kind):
            return v
    return None


def normalize_group(raw: Mapping[str, Any]) -> FurnitureGroup:
    data: Dict[str, Any] = {}
    for src, dst in _GROUP_MONEY_FIELDS.items():
        data[dst] = parse_money(raw.get(src))
    for src, dst in _GROUP_TEXT_FIELDS.items():
        data[dst] = _text(raw.get(src))
    data["foam_enabled"] = _flag(raw.get("foamEnabled"))
    data["painting_enabled"] = _flag(raw.get("paintingEnabled"))
    return FurnitureGroup(**data)


def _service_type(value: Any, default: str) -> str:
    st = _text(value).strip().lower()
    if not st:
        return default
    if st not in SERVICE_TYPES:
        logger.warning("Unknown pickup/delivery service type %r; charging a single trip", value)
        return "pickup"
    return st


def normalize_payment(raw: Optional[Mapping[str, Any]], policy: Optional[FinancePolicy] = None) -> PaymentData:
    raw = _mapping(raw)
    default = (policy or FinancePolicy()).default_service_type
    return PaymentData(
        deposit=parse_money(raw.get("deposit")),
        amount_paid=parse_money(raw.get("amountPaid")),
        pickup_delivery_enabled=_flag(raw.get("pickupDeliveryEnabled")),
        pickup_delivery_cost=parse_money(raw.get("pickupDeliveryCost")),
        pickup_delivery_service_type=_service_type(raw.get("pickupDeliveryServiceType"), default),
        notes=_text(raw.get("notes")),
    )


def normalize_expense(raw: Mapping[str, Any]) -> ExtraExpense:
    tax_type = _text(raw.get("taxType")).strip().lower()
    total = raw.get("total")
    return ExtraExpense(
        description=_text(raw.get("description")),
        price=parse_money(raw.get("price")),
        unit=_text(raw.get("unit")) or "1",
        tax=parse_money(raw.get("tax")),
        tax_type="percent" if tax_type == "percent" else "fixed",
        total=None if total in (None, "") else parse_money(total),
    )


def normalize_details(raw: Optional[Mapping[str, Any]]) -> OrderDetails:
    raw = _mapping(raw)
    return OrderDetails(
        bill_invoice=_text(raw.get("billInvoice")),
        start_date=parse_date(raw.get("startDate")),
        end_date=parse_date(raw.get("endDate")),
        platform=_text(raw.get("platform")),
        timeline=_text(raw.get("timeline")),
    )


def normalize_order(raw: Mapping[str, Any], policy: Optional[FinancePolicy] = None) -> Order:
    """Fold a stored order document into the canonical Order model.

    Regular orders keep their pieces under furnitureData.groups and payment
    under paymentData; corporate orders use furnitureGroups and
    paymentDetails. Both shapes end up in the same fields here.
    """
    furniture_data = _mapping(raw.get("furnitureData"))
    groups_raw: List[Any] = (
        _first_present(furniture_data, "groups", kind=list) or _list(raw.get("furnitureGroups"))
    )
    payment_raw = _first_present(raw, "paymentData", "paymentDetails")
    expenses_raw = _list(raw.get("extraExpenses"))

    order = Order(
        id=_text(raw.get("id")),
        personal_info=dict(_mapping(raw.get("personalInfo"))),
        corporate_customer=dict(_mapping(raw.get("corporateCustomer"))),
        order_details=normalize_details(raw.get("orderDetails")),
        furniture_groups=[normalize_group(g) for g in groups_raw if isinstance(g, Mapping)],
        payment_data=normalize_payment(payment_raw, policy),
        extra_expenses=[normalize_expense(e) for e in expenses_raw if isinstance(e, Mapping)],
        invoice_status=_text(raw.get("invoiceStatus")),
        status=_text(raw.get("status")) or "pending",
        is_rapid_order=raw.get("isRapidOrder") is True,
        created_at=parse_date(raw.get("createdAt")),
    )
    allocation = raw.get("allocation")
    if allocation and isinstance(allocation, Mapping):
        order.allocation = normalize_allocation(allocation)
    return order


def as_order(order: Union[Order, Mapping[str, Any]], policy: Optional[FinancePolicy] = None) -> Order:
    if isinstance(order, Order):
        return order
    return normalize_order(order, policy)
