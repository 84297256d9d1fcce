from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..models import (
    Allocation,
    AllocationEntry,
    AllocationStatus,
    Order,
    ProfitSummary,
)
from ..utils import month_key, parse_date, parse_money


logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)
DEFAULT_TOLERANCE = Decimal("0.01")
_MONTH_KEY = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class AllocationError(ValueError):
    """Raised when an allocation cannot be generated or applied."""


class InvalidDateRange(AllocationError):
    pass


class AllocationNotBalanced(AllocationError):
    def __init__(self, status: AllocationStatus):
        super().__init__(status.message)
        self.status = status


def _check_range(start: Any, end: Any) -> tuple[date, date]:
    s, e = parse_date(start), parse_date(end)
    if s is None or e is None:
        raise InvalidDateRange("Please enter valid start and end dates")
    if s > e:
        raise InvalidDateRange("Start date cannot be after end date")
    return s, e


def months_between(start: Any, end: Any) -> List[str]:
    s, e = _check_range(start, end)
    keys: List[str] = []
    y, m = s.year, s.month
    while (y, m) <= (e.year, e.month):
        keys.append(month_key(y, m))
        y, m = (y + 1, 1) if m == 12 else (y, m + 1)
    return keys


def time_based_allocation(start: Any, end: Any) -> List[AllocationEntry]:
    """Split an order period across calendar months by day count.

    Both ends are inclusive, so a single-day period is one day in one month
    and gets 100%.
    """
    s, e = _check_range(start, end)
    total_days = (e - s).days + 1
    entries: List[AllocationEntry] = []
    for key in months_between(s, e):
        y, m = int(key[:4]), int(key[5:])
        month_start = date(y, m, 1)
        month_end = date(y, m, calendar.monthrange(y, m)[1])
        days = (min(e, month_end) - max(s, month_start)).days + 1
        entries.append(
            AllocationEntry(
                month_key=key,
                percentage=Decimal(days) / Decimal(total_days) * HUNDRED,
                days=days,
            )
        )
    if len(entries) == 1:
        entries[0].percentage = HUNDRED
    return entries


def manual_allocation_table(start: Any, end: Any) -> List[AllocationEntry]:
    """One row per month in the period; the first month starts at 100%."""
    return [
        AllocationEntry(month_key=k, percentage=HUNDRED if i == 0 else Decimal(0))
        for i, k in enumerate(months_between(start, end))
    ]


def allocation_status(
    entries: Iterable[AllocationEntry],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> AllocationStatus:
    total = sum((e.percentage for e in entries), Decimal(0))
    remaining = HUNDRED - total
    shown = f"{abs(remaining).quantize(Decimal('0.1'))}%"
    if abs(remaining) <= tolerance:
        return AllocationStatus(
            status="valid",
            total_percentage=total,
            remaining=remaining,
            message="Allocation is complete and ready to apply",
        )
    if total > HUNDRED:
        return AllocationStatus(
            status="over",
            total_percentage=total,
            remaining=remaining,
            message=f"Total exceeds 100% by {shown}",
        )
    return AllocationStatus(
        status="under",
        total_percentage=total,
        remaining=remaining,
        message=f"{shown} remaining to reach 100%",
    )


def with_amounts(entries: Iterable[AllocationEntry], totals: ProfitSummary) -> List[AllocationEntry]:
    out: List[AllocationEntry] = []
    for e in entries:
        frac = e.percentage / HUNDRED
        revenue = totals.revenue * frac
        cost = totals.cost * frac
        out.append(e.model_copy(update={"revenue": revenue, "cost": cost, "profit": revenue - cost}))
    return out


class ManualAllocation:
    """Editable per-month percentages for one order.

    Every percentage change recomputes the month's revenue, cost and profit
    from the order totals.
    """

    def __init__(
        self,
        entries: Sequence[AllocationEntry],
        totals: ProfitSummary,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ):
        self.totals = totals
        self.tolerance = tolerance
        self.entries: List[AllocationEntry] = with_amounts(entries, totals)

    @classmethod
    def for_period(cls, start: Any, end: Any, totals: ProfitSummary, **kw) -> "ManualAllocation":
        return cls(manual_allocation_table(start, end), totals, **kw)

    def _index(self, key: str) -> int:
        for i, e in enumerate(self.entries):
            if e.month_key == key:
                return i
        raise KeyError(key)

    def set_percentage(self, key: str, percentage: Any) -> AllocationEntry:
        i = self._index(key)
        updated = self.entries[i].model_copy(update={"percentage": parse_money(percentage)})
        self.entries[i] = with_amounts([updated], self.totals)[0]
        st = self.status()
        if not st.is_valid:
            logger.debug(
                "Allocation updated. Total: %s%%, Remaining: %s%%",
                st.total_percentage.quantize(Decimal("0.1")),
                st.remaining.quantize(Decimal("0.1")),
            )
        return self.entries[i]

    def add_month(self, key: str, percentage: Any = 0) -> AllocationEntry:
        if not _MONTH_KEY.match(key or ""):
            raise AllocationError(f"Invalid month {key!r}; expected YYYY-MM")
        if any(e.month_key == key for e in self.entries):
            return self.set_percentage(key, percentage)
        self.entries.append(AllocationEntry(month_key=key))
        self.entries.sort(key=lambda e: e.month_key)
        return self.set_percentage(key, percentage)

    def status(self) -> AllocationStatus:
        return allocation_status(self.entries, self.tolerance)

    def totals_allocated(self) -> Dict[str, Decimal]:
        revenue = sum((e.revenue or Decimal(0) for e in self.entries), Decimal(0))
        cost = sum((e.cost or Decimal(0) for e in self.entries), Decimal(0))
        return {
            "percentage": sum((e.percentage for e in self.entries), Decimal(0)),
            "revenue": revenue,
            "cost": cost,
            "profit": revenue - cost,
        }

    def apply(self, write: Optional[Callable[[Allocation], Any]] = None, **kw) -> Allocation:
        return apply_allocation(self.entries, self.totals, method="manual", write=write, tolerance=self.tolerance, **kw)


def apply_allocation(
    entries: Sequence[AllocationEntry],
    totals: ProfitSummary,
    method: str = "manual",
    write: Optional[Callable[[Allocation], Any]] = None,
    tolerance: Decimal = DEFAULT_TOLERANCE,
    start: Any = None,
    end: Any = None,
    now: Optional[datetime] = None,
) -> Allocation:
    """Build the allocation to store on an order and hand it to `write`.

    Nothing is written unless the percentages total 100 within tolerance;
    otherwise AllocationNotBalanced carries the status with the exact
    remaining or excess amount. The result replaces any earlier allocation.
    """
    st = allocation_status(entries, tolerance)
    if not st.is_valid:
        raise AllocationNotBalanced(st)
    applied = (now or datetime.now(timezone.utc)).isoformat()
    allocation = Allocation(
        method=method,
        allocations=with_amounts(entries, totals),
        applied_at=applied,
        start_date=parse_date(start),
        end_date=parse_date(end),
    )
    if write is not None:
        write(allocation)
    logger.info("Applied %s allocation over %d month(s)", method, len(allocation.allocations))
    return allocation


def reset_allocation(order: Order, totals: ProfitSummary) -> List[AllocationEntry]:
    """Regenerate a time-based split from the order's current dates."""
    start = order.period_start
    end = order.period_end
    return with_amounts(time_based_allocation(start, end), totals)


def is_stale(order: Order) -> bool:
    """True when the order's dates moved after its allocation was applied.

    Allocations are never regenerated on edit; this only flags them for a reset.
    """
    a = order.allocation
    if a is None or a.start_date is None:
        return False
    return (a.start_date, a.end_date) != (order.period_start, order.period_end)


def allocation_document(allocation: Allocation) -> Dict[str, Any]:
    """Persisted shape of an allocation, in the order document's camelCase."""

    def _num(v: Optional[Decimal]) -> Optional[float]:
        return None if v is None else float(v)

    rows = []
    for e in allocation.allocations:
        row: Dict[str, Any] = {"monthKey": e.month_key, "percentage": float(e.percentage)}
        if e.days is not None:
            row["days"] = e.days
        row["revenue"] = _num(e.revenue)
        row["cost"] = _num(e.cost)
        row["profit"] = _num(e.profit)
        rows.append(row)
    doc: Dict[str, Any] = {
        "method": allocation.method,
        "allocations": rows,
        "appliedAt": allocation.applied_at,
    }
    if allocation.start_date or allocation.end_date:
        doc["dateRange"] = {
            "startDate": allocation.start_date.isoformat() if allocation.start_date else None,
            "endDate": allocation.end_date.isoformat() if allocation.end_date else None,
        }
    return doc
