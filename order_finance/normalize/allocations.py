from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple

from ..models import Allocation, AllocationEntry, ProfitSummary
from ..utils import month_key, parse_date, parse_money


logger = logging.getLogger(__name__)


def _int(v: Any) -> Optional[int]:
    try:
        return int(float(v))
    except (TypeError, ValueError, OverflowError):
        return None


def extract_month_year(entry: Mapping[str, Any]) -> Optional[Tuple[int, int]]:
    """Return (year, month 1-12) for a stored allocation row, or None.

    Rows written with separate month/year fields used 0-indexed months, so
    0-11 shift up by one and 12 is taken as December. Rows keyed by monthKey
    ("2024-01", "2024-1") are 1-indexed, except "YYYY-00" which means January.
    """
    if entry.get("month") is not None and entry.get("year") is not None:
        month, year = _int(entry.get("month")), _int(entry.get("year"))
        if month is None or year is None:
            logger.warning("Invalid month/year in allocation row: %r", entry)
            return None
        if 0 <= month <= 11:
            month += 1
        if not 1 <= month <= 12 or year <= 0:
            logger.warning("Month/year out of range in allocation row: %r", entry)
            return None
        return year, month

    key = entry.get("monthKey")
    if key:
        parts = str(key).split("-")
        if len(parts) < 2:
            logger.warning("Malformed monthKey %r", key)
            return None
        year, month = _int(parts[0]), _int(parts[1])
        if month is None or year is None:
            logger.warning("Malformed monthKey %r", key)
            return None
        if month == 0:
            month = 1
        if not 1 <= month <= 12 or year <= 0:
            logger.warning("Month out of range in monthKey %r", key)
            return None
        return year, month
    return None


def applied_at_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        secs = value.get("seconds", value.get("_seconds"))
        if secs is not None:
            try:
                return datetime.fromtimestamp(float(secs), tz=timezone.utc).isoformat()
            except (TypeError, ValueError, OverflowError, OSError):
                logger.warning("Unreadable appliedAt timestamp %r", value)
                return None
    return None


def normalize_entry(raw: Mapping[str, Any], totals: Optional[ProfitSummary] = None) -> Optional[AllocationEntry]:
    ym = extract_month_year(raw)
    if ym is None:
        logger.warning("Dropping allocation row without a usable month: %r", raw)
        return None
    pct = parse_money(raw.get("percentage"))
    revenue = parse_money(raw["revenue"]) if raw.get("revenue") is not None else None
    cost_raw = raw.get("cost", raw.get("costs"))
    cost = parse_money(cost_raw) if cost_raw is not None else None
    profit = parse_money(raw["profit"]) if raw.get("profit") is not None else None
    if totals is not None:
        frac = pct / Decimal(100)
        if revenue is None:
            revenue = totals.revenue * frac
        if cost is None:
            cost = totals.cost * frac
    if profit is None and revenue is not None and cost is not None:
        profit = revenue - cost
    days = _int(raw.get("days")) if raw.get("days") is not None else None
    return AllocationEntry(
        month_key=month_key(*ym),
        percentage=pct,
        days=days,
        revenue=revenue,
        cost=cost,
        profit=profit,
    )


def is_legacy_allocation(raw: Mapping[str, Any]) -> bool:
    """Older documents carry originals, recalculation stamps or Firestore timestamps."""
    applied = raw.get("appliedAt")
    return bool(
        raw.get("originalRevenue") is not None
        or raw.get("originalCost") is not None
        or raw.get("originalProfit") is not None
        or raw.get("recalculatedAt")
        or raw.get("calculatedAt")
        or (isinstance(applied, Mapping) and ("seconds" in applied or "_seconds" in applied))
    )


def normalize_allocation(raw: Mapping[str, Any], totals: Optional[ProfitSummary] = None) -> Optional[Allocation]:
    if not raw or not isinstance(raw, Mapping):
        return None
    if is_legacy_allocation(raw):
        logger.debug("Reading legacy allocation document (method=%s)", raw.get("method"))
    if totals is None and raw.get("originalRevenue") is not None:
        revenue = parse_money(raw.get("originalRevenue"))
        cost = parse_money(raw.get("originalCost"))
        totals = ProfitSummary(revenue=revenue, cost=cost, profit=revenue - cost)
    rows = raw.get("allocations")
    if not isinstance(rows, list):
        rows = []
    entries = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        e = normalize_entry(row, totals)
        if e is not None:
            entries.append(e)
    method = str(raw.get("method") or "manual")
    if method not in ("time-based", "manual"):
        method = "manual"
    date_range = raw.get("dateRange") or {}
    return Allocation(
        method=method,
        allocations=entries,
        applied_at=applied_at_iso(raw.get("appliedAt")),
        start_date=parse_date(date_range.get("startDate")) if isinstance(date_range, Mapping) else None,
        end_date=parse_date(date_range.get("endDate")) if isinstance(date_range, Mapping) else None,
    )
