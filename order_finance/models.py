from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .utils import parse_money


ServiceType = Literal["pickup", "delivery", "both"]
TaxType = Literal["fixed", "percent"]
AllocationMethod = Literal["time-based", "manual"]
StatusName = Literal["valid", "over", "under"]


class FurnitureGroup(BaseModel):
    furniture_type: str = ""
    material_company: str = ""
    material_code: str = ""
    material_price: Decimal = Decimal(0)
    material_qnty: Decimal = Decimal(0)
    material_jl_price: Decimal = Decimal(0)
    material_jl_qnty: Decimal = Decimal(0)
    labour_price: Decimal = Decimal(0)
    labour_qnty: Decimal = Decimal(0)
    labour_note: str = ""
    # legacy schema: flat labour charge times piece count
    labour_work: Decimal = Decimal(0)
    quantity: Decimal = Decimal(0)
    foam_enabled: bool = False
    foam_price: Decimal = Decimal(0)
    foam_jl_price: Decimal = Decimal(0)
    foam_qnty: Decimal = Decimal(0)
    painting_enabled: bool = False
    painting_labour: Decimal = Decimal(0)
    painting_qnty: Decimal = Decimal(0)
    painting_note: str = ""
    other_expenses: Decimal = Decimal(0)
    shipping: Decimal = Decimal(0)
    customer_note: str = ""

    @property
    def has_foam(self) -> bool:
        return self.foam_enabled or self.foam_price > 0

    @property
    def has_painting(self) -> bool:
        return self.painting_enabled or self.painting_labour > 0


class PaymentData(BaseModel):
    deposit: Decimal = Decimal(0)
    amount_paid: Decimal = Decimal(0)
    pickup_delivery_enabled: bool = False
    pickup_delivery_cost: Decimal = Decimal(0)
    pickup_delivery_service_type: ServiceType = "both"
    notes: str = ""


class ExtraExpense(BaseModel):
    description: str = ""
    price: Decimal = Decimal(0)
    unit: str = "1"
    tax: Decimal = Decimal(0)
    tax_type: TaxType = "fixed"
    total: Optional[Decimal] = None

    def computed_total(self) -> Decimal:
        """price x unit plus tax, where tax is either a fixed amount or a percent."""
        unit = parse_money(self.unit) or Decimal(1)
        base = self.price * unit
        if self.tax_type == "percent":
            return base + base * self.tax / Decimal(100)
        return base + self.tax

    @property
    def effective_total(self) -> Decimal:
        return self.total if self.total is not None else self.computed_total()


class OrderDetails(BaseModel):
    bill_invoice: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    platform: str = ""
    timeline: str = ""


class AllocationEntry(BaseModel):
    month_key: str
    percentage: Decimal = Decimal(0)
    days: Optional[int] = None
    revenue: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    profit: Optional[Decimal] = None

    @property
    def year(self) -> int:
        return int(self.month_key.split("-")[0])

    @property
    def month(self) -> int:
        return int(self.month_key.split("-")[1])


class Allocation(BaseModel):
    method: AllocationMethod = "manual"
    allocations: List[AllocationEntry] = Field(default_factory=list)
    applied_at: Optional[str] = None  # ISO timestamp
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def total_percentage(self) -> Decimal:
        return sum((a.percentage for a in self.allocations), Decimal(0))


class Order(BaseModel):
    id: str = ""
    personal_info: Dict = Field(default_factory=dict)
    corporate_customer: Dict = Field(default_factory=dict)
    order_details: OrderDetails = Field(default_factory=OrderDetails)
    furniture_groups: List[FurnitureGroup] = Field(default_factory=list)
    payment_data: PaymentData = Field(default_factory=PaymentData)
    extra_expenses: List[ExtraExpense] = Field(default_factory=list)
    invoice_status: str = ""
    status: str = "pending"
    is_rapid_order: bool = False
    created_at: Optional[date] = None
    allocation: Optional[Allocation] = None

    def with_extra_expenses(self, expenses: List[ExtraExpense]) -> "Order":
        """Copy of the order with `expenses` appended; saved expenses are never dropped."""
        return self.model_copy(update={"extra_expenses": [*self.extra_expenses, *expenses]})

    @property
    def is_corporate(self) -> bool:
        return bool(self.corporate_customer)

    @property
    def period_start(self) -> Optional[date]:
        return self.order_details.start_date or self.created_at

    @property
    def period_end(self) -> Optional[date]:
        return self.order_details.end_date or self.period_start


class FinancePolicy(BaseModel):
    currency_symbol: str = "$"
    customer_tax_rate: Decimal = Decimal("0.13")
    default_material_tax_rate: Decimal = Decimal("0.13")
    # Shipped code paths disagree on whether painting labour is a JL cost.
    include_painting_in_internal_cost: bool = False
    allocation_tolerance: Decimal = Decimal("0.01")
    default_service_type: ServiceType = "both"


class CostBreakdown(BaseModel):
    material: Decimal = Decimal(0)
    labour: Decimal = Decimal(0)
    foam: Decimal = Decimal(0)
    painting: Decimal = Decimal(0)
    pickup_delivery: Decimal = Decimal(0)
    total: Decimal = Decimal(0)

    @property
    def items_subtotal(self) -> Decimal:
        return self.material + self.labour + self.foam + self.painting

    @property
    def taxable_amount(self) -> Decimal:
        return self.material + self.foam


class InvoiceTotals(BaseModel):
    items_subtotal: Decimal = Decimal(0)
    tax_amount: Decimal = Decimal(0)
    pickup_delivery_cost: Decimal = Decimal(0)
    grand_total: Decimal = Decimal(0)
    amount_paid: Decimal = Decimal(0)
    balance_due: Decimal = Decimal(0)
    jl_subtotal_before_tax: Decimal = Decimal(0)
    jl_grand_total: Decimal = Decimal(0)
    extra_expenses_total: Decimal = Decimal(0)


class ProfitSummary(BaseModel):
    revenue: Decimal = Decimal(0)
    cost: Decimal = Decimal(0)
    profit: Decimal = Decimal(0)
    profit_percentage: Decimal = Decimal(0)

    def share(self, percentage: Decimal) -> "ProfitSummary":
        frac = percentage / Decimal(100)
        return ProfitSummary(
            revenue=self.revenue * frac,
            cost=self.cost * frac,
            profit=self.profit * frac,
            profit_percentage=self.profit_percentage,
        )


class DepositStatus(BaseModel):
    total: Decimal = Decimal(0)
    deposit: Decimal = Decimal(0)
    amount_paid: Decimal = Decimal(0)
    remaining: Decimal = Decimal(0)
    is_deposit_paid: bool = False
    is_fully_paid: bool = False


class AllocationStatus(BaseModel):
    status: StatusName
    total_percentage: Decimal
    remaining: Decimal  # 100 - total; negative when over
    message: str

    @property
    def is_valid(self) -> bool:
        return self.status == "valid"


class PeriodTotals(BaseModel):
    revenue: Decimal = Decimal(0)
    costs: Decimal = Decimal(0)
    profit: Decimal = Decimal(0)
    order_count: int = 0
    profit_margin: Decimal = Decimal(0)


class Change(BaseModel):
    change: Decimal = Decimal(0)
    percentage: Decimal = Decimal(0)


class Trend(BaseModel):
    revenue: Change = Field(default_factory=Change)
    profit: Change = Field(default_factory=Change)
    margin: Change = Field(default_factory=Change)
