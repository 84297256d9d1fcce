from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest

from order_finance.logic.allocation import (
    AllocationError,
    AllocationNotBalanced,
    InvalidDateRange,
    ManualAllocation,
    allocation_document,
    allocation_status,
    apply_allocation,
    is_stale,
    manual_allocation_table,
    months_between,
    reset_allocation,
    time_based_allocation,
    with_amounts,
)
from order_finance.models import AllocationEntry, ProfitSummary
from order_finance.normalize.orders import normalize_order


TOTALS = ProfitSummary(revenue=Decimal(900), cost=Decimal(300), profit=Decimal(600))


def _entries(*pairs):
    return [AllocationEntry(month_key=k, percentage=Decimal(str(p))) for k, p in pairs]


def test_single_day_period_is_one_month_at_100() -> None:
    entries = time_based_allocation("2024-03-15", "2024-03-15")
    assert len(entries) == 1
    assert entries[0].month_key == "2024-03"
    assert entries[0].percentage == 100
    assert entries[0].days == 1


def test_same_month_period_is_100() -> None:
    entries = time_based_allocation(date(2024, 3, 1), date(2024, 3, 31))
    assert [(e.month_key, e.percentage, e.days) for e in entries] == [("2024-03", 100, 31)]


def test_two_month_split_by_days() -> None:
    entries = time_based_allocation("2024-01-22", "2024-02-20")
    assert [e.month_key for e in entries] == ["2024-01", "2024-02"]
    assert [e.days for e in entries] == [10, 20]
    assert float(entries[0].percentage) == pytest.approx(33.33, abs=0.01)
    assert float(entries[1].percentage) == pytest.approx(66.67, abs=0.01)

    priced = with_amounts(entries, TOTALS)
    for e in priced:
        assert e.revenue == TOTALS.revenue * e.percentage / 100
        assert e.cost == TOTALS.cost * e.percentage / 100
        assert e.profit == e.revenue - e.cost


def test_period_across_year_end() -> None:
    entries = time_based_allocation("2023-12-25", "2024-02-05")
    assert [e.month_key for e in entries] == ["2023-12", "2024-01", "2024-02"]
    assert [e.days for e in entries] == [7, 31, 5]
    assert allocation_status(entries).is_valid


def test_start_after_end_is_rejected() -> None:
    with pytest.raises(InvalidDateRange, match="Start date cannot be after end date"):
        time_based_allocation("2024-02-20", "2024-01-22")


def test_unreadable_dates_are_rejected() -> None:
    with pytest.raises(InvalidDateRange, match="valid start and end dates"):
        time_based_allocation("soon", "2024-01-22")
    with pytest.raises(AllocationError):
        months_between(None, None)


def test_manual_table_defaults_to_first_month() -> None:
    rows = manual_allocation_table("2024-11-10", "2025-01-03")
    assert [(r.month_key, r.percentage) for r in rows] == [
        ("2024-11", 100),
        ("2024-12", 0),
        ("2025-01", 0),
    ]


@pytest.mark.parametrize(
    "pcts, status, message",
    [
        ((60, 45), "over", "Total exceeds 100% by 5.0%"),
        ((60, 35), "under", "5.0% remaining to reach 100%"),
        ((60, 40), "valid", "Allocation is complete and ready to apply"),
        ((60, "39.999"), "valid", "Allocation is complete and ready to apply"),
    ],
)
def test_allocation_status(pcts, status, message) -> None:
    st = allocation_status(_entries(("2024-01", pcts[0]), ("2024-02", pcts[1])))
    assert st.status == status
    assert st.message == message


def test_status_reports_signed_remaining() -> None:
    assert allocation_status(_entries(("2024-01", 105))).remaining == Decimal(-5)
    assert allocation_status(_entries(("2024-01", 95))).remaining == Decimal(5)


def test_manual_allocation_recomputes_amounts() -> None:
    alloc = ManualAllocation.for_period("2024-01-10", "2024-02-10", TOTALS)
    assert alloc.status().is_valid
    alloc.set_percentage("2024-01", "70")
    assert alloc.status().status == "under"
    row = alloc.set_percentage("2024-02", 30)
    assert row.revenue == Decimal(270)
    assert row.cost == Decimal(90)
    assert row.profit == Decimal(180)
    assert alloc.status().is_valid
    assert alloc.totals_allocated()["revenue"] == Decimal(900)


def test_manual_add_month_validates_key() -> None:
    alloc = ManualAllocation([], TOTALS)
    alloc.add_month("2024-03", 50)
    alloc.add_month("2024-01", 50)
    assert [e.month_key for e in alloc.entries] == ["2024-01", "2024-03"]
    with pytest.raises(AllocationError):
        alloc.add_month("2024-13", 10)
    with pytest.raises(KeyError):
        alloc.set_percentage("2030-01", 10)


def test_apply_rejected_without_write_when_unbalanced() -> None:
    write = Mock()
    with pytest.raises(AllocationNotBalanced) as exc:
        apply_allocation(_entries(("2024-01", 60), ("2024-02", 45)), TOTALS, write=write)
    assert exc.value.status.status == "over"
    assert "5.0%" in str(exc.value)
    write.assert_not_called()

    with pytest.raises(AllocationNotBalanced, match="40.0% remaining"):
        ManualAllocation(_entries(("2024-01", 60)), TOTALS).apply(write=write)
    write.assert_not_called()


def test_apply_writes_complete_allocation() -> None:
    write = Mock()
    now = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    a = apply_allocation(
        _entries(("2024-01", 25), ("2024-02", 75)),
        TOTALS,
        method="manual",
        write=write,
        start="2024-01-22",
        end="2024-02-20",
        now=now,
    )
    write.assert_called_once_with(a)
    assert a.method == "manual"
    assert a.applied_at == now.isoformat()
    assert [e.revenue for e in a.allocations] == [Decimal(225), Decimal(675)]
    assert a.start_date == date(2024, 1, 22)


def test_reset_uses_current_order_dates() -> None:
    order = normalize_order({"orderDetails": {"startDate": "2024-01-22", "endDate": "2024-02-20"}})
    entries = reset_allocation(order, TOTALS)
    assert [e.days for e in entries] == [10, 20]
    assert all(e.revenue is not None for e in entries)


def test_reset_falls_back_to_creation_date() -> None:
    order = normalize_order({"createdAt": {"seconds": 1706745600}})
    entries = reset_allocation(order, TOTALS)
    assert [(e.month_key, e.percentage) for e in entries] == [("2024-02", 100)]


def test_allocation_goes_stale_when_dates_change() -> None:
    a = apply_allocation(
        time_based_allocation("2024-01-22", "2024-02-20"), TOTALS, method="time-based",
        start="2024-01-22", end="2024-02-20",
    )
    order = normalize_order({"orderDetails": {"startDate": "2024-01-22", "endDate": "2024-02-20"}})
    order.allocation = a
    assert not is_stale(order)
    order.order_details.end_date = date(2024, 3, 5)
    assert is_stale(order)


def test_allocation_document_shape() -> None:
    a = apply_allocation(
        _entries(("2024-01", 50), ("2024-02", 50)), TOTALS, method="time-based",
        start="2024-01-01", end="2024-02-29", now=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    doc = allocation_document(a)
    assert doc["method"] == "time-based"
    assert doc["appliedAt"].startswith("2024-03-01")
    assert doc["dateRange"] == {"startDate": "2024-01-01", "endDate": "2024-02-29"}
    assert doc["allocations"][0] == {
        "monthKey": "2024-01",
        "percentage": 50.0,
        "revenue": 450.0,
        "cost": 150.0,
        "profit": 300.0,
    }
