from decimal import Decimal

import pytest

from conftest import make_group

from order_finance.logic.periods import (
    attribute_order,
    calculate_trends,
    filter_months,
    period_comparison,
    previous_period_key,
    process_orders,
    trend_indicator,
    year_to_date,
)
from order_finance.models import PeriodTotals, ProfitSummary
from order_finance.normalize.orders import normalize_order


def _order(order_id, start, end=None, labour=100, allocation=None, created=None):
    doc = {
        "id": order_id,
        "orderDetails": {"startDate": start, "endDate": end or start},
        "furnitureData": {"groups": [make_group(labourPrice=labour, labourQnty=1)]},
    }
    if created:
        doc["createdAt"] = created
    if allocation:
        doc["allocation"] = allocation
    return doc


SPLIT = {
    "method": "manual",
    "allocations": [
        {"monthKey": "2024-01", "percentage": 25},
        {"monthKey": "2024-02", "percentage": 75},
        {"monthKey": "2024-03", "percentage": 0},
    ],
}


def test_allocated_order_contributes_weighted_slices() -> None:
    order = normalize_order(_order("a", "2024-01-20", "2024-02-20", labour=400, allocation=SPLIT))
    profit = ProfitSummary(revenue=Decimal(400), cost=Decimal(100), profit=Decimal(300))
    slices = attribute_order(order, profit)
    assert [(k, p.revenue, p.cost, p.profit) for k, p in slices] == [
        ("2024-01", Decimal(100), Decimal(25), Decimal(75)),
        ("2024-02", Decimal(300), Decimal(75), Decimal(225)),
    ]
    only_feb = attribute_order(order, profit, months=["2024-02"])
    assert [k for k, _ in only_feb] == ["2024-02"]


def test_unallocated_order_lands_in_start_month() -> None:
    order = normalize_order(_order("b", "2024-01-30", "2024-02-02"))
    profit = ProfitSummary(revenue=Decimal(100))
    assert [k for k, _ in attribute_order(order, profit)] == ["2024-01"]
    assert attribute_order(order, profit, months=["2024-02"]) == []


def test_unallocated_order_without_start_uses_creation_date() -> None:
    doc = _order("c", None, created="2024-05-03")
    order = normalize_order(doc)
    assert [k for k, _ in attribute_order(order, ProfitSummary())] == ["2024-05"]
    assert attribute_order(normalize_order(_order("d", None)), ProfitSummary()) == []


def test_process_orders_builds_all_period_tables() -> None:
    orders = [
        _order("a", "2024-01-20", "2024-02-20", labour=400, allocation=SPLIT),
        _order("b", "2024-02-05", labour=100),
        _order("c", "2024-04-01", labour=50),
        _order("d", "2023-12-30", "2024-01-02", labour=10),
    ]
    report = process_orders(orders)
    monthly = report["monthly"]
    assert list(monthly) == ["2023-12", "2024-01", "2024-02", "2024-04"]
    assert monthly["2024-01"].revenue == Decimal(100)
    assert monthly["2024-02"].revenue == Decimal(400)
    assert monthly["2024-02"].order_count == 2
    assert report["quarterly"]["2024-Q1"].revenue == Decimal(500)
    assert report["quarterly"]["2024-Q2"].revenue == Decimal(50)
    assert report["yearly"]["2024"].revenue == Decimal(550)
    assert report["yearly"]["2023"].revenue == Decimal(10)
    assert [o.id for o in report["cross_month_orders"]] == ["a", "d"]
    # labour-only orders have no cost, so margin is 100%
    assert monthly["2024-04"].profit_margin == 100


def test_process_orders_with_month_filter() -> None:
    orders = [
        _order("a", "2024-01-20", "2024-02-20", labour=400, allocation=SPLIT),
        _order("b", "2024-02-05", labour=100),
    ]
    report = process_orders(orders, months=filter_months(2024, 1))
    assert list(report["monthly"]) == ["2024-01"]
    assert report["monthly"]["2024-01"].revenue == Decimal(100)


def test_filter_months() -> None:
    assert filter_months(2024, 3) == ["2024-03"]
    assert len(filter_months(2024)) == 12


def _table():
    return {
        "2024-01": PeriodTotals(revenue=Decimal(1000), profit=Decimal(200), profit_margin=Decimal(20), order_count=2),
        "2024-02": PeriodTotals(revenue=Decimal(1500), profit=Decimal(450), profit_margin=Decimal(30), order_count=3),
        "2023-12": PeriodTotals(revenue=Decimal(0), profit=Decimal(-50), profit_margin=Decimal(0), order_count=1),
    }


def test_trends_against_previous_period() -> None:
    t = calculate_trends(_table(), "2024-02")
    assert t.revenue.change == Decimal(500)
    assert t.revenue.percentage == Decimal(50)
    assert t.profit.percentage == Decimal("125")
    assert t.margin.change == Decimal(10)
    # previous revenue of 0 gives 0%
    jan = calculate_trends(_table(), "2024-01")
    assert jan.revenue.percentage == 0
    assert jan.profit.percentage == Decimal(500)
    assert calculate_trends(_table(), "2023-12") is None
    assert calculate_trends(_table(), "2030-01") is None


def test_previous_period_keys() -> None:
    assert previous_period_key("monthly", 2024, 1) == "2023-12"
    assert previous_period_key("monthly", 2024, 7) == "2024-06"
    assert previous_period_key("quarterly", 2024, 2) == "2023-Q4"
    assert previous_period_key("quarterly", 2024, 8) == "2024-Q2"
    assert previous_period_key("yearly", 2024) == "2023"


def test_period_comparison() -> None:
    report = {"monthly": _table()}
    cmp = period_comparison(report, "monthly", 2024, 2)
    assert cmp["current"].revenue == Decimal(1500)
    assert cmp["previous"].revenue == Decimal(1000)
    assert cmp["trends"].revenue.change == Decimal(500)
    assert period_comparison(report, "monthly", 2024, 5) is None


def test_year_to_date() -> None:
    ytd = year_to_date(_table(), 2024)
    assert ytd.revenue == Decimal(2500)
    assert ytd.order_count == 5
    assert float(ytd.profit_margin) == pytest.approx(26.0)


def test_trend_indicator() -> None:
    assert trend_indicator(Decimal(5), Decimal(3)) == "up"
    assert trend_indicator(Decimal(2), Decimal(3)) == "down"
    assert trend_indicator(Decimal(3), Decimal(3)) == "neutral"
    assert trend_indicator(Decimal(3), None) == "neutral"
    assert trend_indicator(Decimal(3), Decimal(0)) == "neutral"
