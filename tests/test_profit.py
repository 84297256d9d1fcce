from decimal import Decimal

import pytest

from conftest import make_group

from order_finance.calculators.profit import order_profit, profit_margin


def test_profit_is_revenue_minus_cost(sample_order) -> None:
    sample_order["furnitureData"]["groups"][0].update(materialJLPrice=40, materialJLQnty=2, materialCompany="Charlotte")
    p = order_profit(sample_order, {"charlotte": Decimal("0.02")})
    assert p.revenue == Decimal("298.6")
    assert p.cost == Decimal("81.6")
    assert p.profit == p.revenue - p.cost
    assert float(p.profit_percentage) == pytest.approx(217.0 / 298.6 * 100)


def test_zero_revenue_has_zero_margin() -> None:
    order = {"furnitureData": {"groups": [make_group(shipping=30)]}}
    p = order_profit(order)
    assert p.revenue == 0
    assert p.profit == Decimal(-30)
    assert p.profit_percentage == 0


def test_profit_margin_guard() -> None:
    assert profit_margin(Decimal(0), Decimal(10)) == 0
    assert profit_margin(Decimal(200), Decimal(50)) == Decimal(25)


def test_empty_order() -> None:
    p = order_profit({})
    assert (p.revenue, p.cost, p.profit, p.profit_percentage) == (0, 0, 0, 0)
