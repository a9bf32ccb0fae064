import pytest

from ledger.profit import profit_reports, profit_overview, margin_percent
from factories import make_snapshot, regular, sale, TODAY


def test_profit_per_metal():
    snapshot = make_snapshot(
        purchases=[regular("p1", 0, 100), regular("s1", 0, 1000, metal_id="silver")],
        customer_purchases=[
            sale("g1", 10, 6000, 5800, making_charges=500),
            sale("g2", 5, 6100, 5900),
        ],
    )
    reports = profit_reports(snapshot, TODAY)
    assert [r.metal_id for r in reports] == ["gold", "silver"]
    gold, silver = reports

    assert gold.total_purchased_grams == pytest.approx(100)
    assert gold.total_sold_grams == pytest.approx(15)
    assert gold.total_revenue == pytest.approx(60500 + 30500)
    assert gold.total_cost == pytest.approx(58000 + 29500)
    assert gold.total_making_charges == pytest.approx(500)
    assert gold.gross_profit == pytest.approx(3500)
    assert gold.avg_buy_rate == pytest.approx(87500 / 15)
    assert gold.avg_sell_rate == pytest.approx(90500 / 15)
    assert gold.profit_margin_percent == pytest.approx(3500 / 87500 * 100)

    # Bought but never sold
    assert silver.total_sold_grams == 0
    assert silver.avg_sell_rate == 0
    assert silver.profit_margin_percent == 0


def test_metals_without_activity_are_left_out():
    assert profit_reports(make_snapshot(), TODAY) == []


def test_overview_totals():
    snapshot = make_snapshot(customer_purchases=[
        sale("g1", 10, 6000, 5800, making_charges=500),
        sale("s1", 1000, 20, 18, metal_id="silver"),
    ])
    overview = profit_overview(snapshot, TODAY)
    assert overview.total_revenue == pytest.approx(60500 + 20000)
    assert overview.total_cost == pytest.approx(58000 + 18000)
    assert overview.total_gross_profit == pytest.approx(4500)
    assert overview.overall_margin_percent == pytest.approx(4500 / 76000 * 100)


def test_margin_with_zero_cost():
    assert margin_percent(100, 0) == 0
