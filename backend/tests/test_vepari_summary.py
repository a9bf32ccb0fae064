import pytest
from pydantic import ValidationError

from ledger.variants import BullionPurchase, CashPurchase, CashPayment, merge_purchase
from ledger.vepari_summary import vepari_summary, vepari_summaries, metal_totals, total_remaining_by_metal
from models import Vepari
from factories import make_snapshot, regular, metal_payment, on, at, TODAY


def bullion(pid="b1", **kwargs):
    values = dict(old_gold_weight=147, old_gold_touch=87, fresh_metal_received=130)
    values.update(kwargs)
    return BullionPurchase(id=pid, vepari_id="v1", date=on(0), created_at=at(0), **values)


def test_bullion_figures():
    purchase = bullion()
    assert purchase.fine_gold_calculated == pytest.approx(127.89)
    assert purchase.balance_grams == pytest.approx(2.11)
    assert purchase.balance_cash_amount is None


def test_bullion_balance_converted_to_money():
    purchase = bullion(balance_converted_to_money=True, balance_rate=15950)
    assert purchase.balance_cash_amount == pytest.approx(33654.5)

    with_labour = bullion(balance_converted_to_money=True, balance_rate=15950, labour_charges=500)
    assert with_labour.balance_cash_amount == pytest.approx(34154.5)


def test_bullion_credit_balance_is_negative():
    purchase = bullion(fresh_metal_received=120)
    assert purchase.balance_grams == pytest.approx(-7.89)


@pytest.mark.parametrize("touch", [0, -1, 100.5])
def test_bullion_touch_out_of_range(touch):
    with pytest.raises(ValidationError):
        bullion(old_gold_touch=touch)


def test_regular_weight_must_be_positive():
    with pytest.raises(ValidationError):
        regular("p1", 0, 0)


def test_due_date_follows_updates():
    purchase = regular("p1", 0, 100, credit_days=10)
    assert purchase.due_date == on(10)
    assert merge_purchase(purchase, {"credit_days": 20}).due_date == on(20)
    assert merge_purchase(purchase, {"date": on(5)}).due_date == on(15)
    assert merge_purchase(purchase, {"credit_days": None}).due_date is None


def test_type_switch_drops_other_fields():
    purchase = regular("p1", 0, 100, rate_per_gram=6000, credit_days=10, stone_charges=250)
    switched = merge_purchase(purchase, {"purchase_type": "cash", "total_amount": 90000, "vepari_id": "other"})
    assert isinstance(switched, CashPurchase)
    assert switched.id == "p1"
    assert switched.vepari_id == "v1"
    assert switched.stone_charges == 250
    assert switched.weight_grams is None
    assert not hasattr(switched, "credit_days")


def test_summary_per_metal():
    snapshot = make_snapshot(
        purchases=[
            regular("p1", 0, 100, credit_days=10, stone_charges=1200),
            regular("p2", 1, 50),
            regular("s1", 2, 500, metal_id="silver"),
            CashPurchase(id="c1", vepari_id="v1", date=on(3), created_at=at(3), total_amount=40000),
            bullion("b1"),
        ],
        payments=[
            metal_payment("m1", 4, 60, rate_per_gram=6000, stone_charges_paid=200),
            metal_payment("m2", 5, 100, metal_id="silver"),
            CashPayment(id="k1", vepari_id="v1", date=on(6), created_at=at(6), cash_amount=15000, stone_charges_paid=300),
        ],
    )
    summary = vepari_summary(snapshot, snapshot.veparis[0], TODAY)
    assert [ms.metal_id for ms in summary.metal_summaries] == ["gold", "silver"]
    gold, silver = summary.metal_summaries

    assert gold.total_purchased == pytest.approx(150)
    assert gold.total_paid == pytest.approx(60)
    assert gold.remaining_weight == pytest.approx(150 - 60 + 2.11)
    assert gold.total_stone_charges == pytest.approx(1200)
    assert gold.total_stone_charges_paid == pytest.approx(500)
    assert gold.remaining_stone_charges == pytest.approx(700)
    assert gold.cash_purchased == pytest.approx(40000)
    assert gold.cash_paid == pytest.approx(15000)
    assert gold.remaining_cash == pytest.approx(25000)
    assert gold.bullion_fine_given == pytest.approx(127.89)
    assert gold.bullion_fresh_received == pytest.approx(130)
    assert gold.bullion_balance_grams == pytest.approx(2.11)
    # p1 still has 40g open and was due on day 10
    assert gold.overdue_count == 1

    assert silver.remaining_weight == pytest.approx(400)
    assert summary.total_remaining_weight == pytest.approx(gold.remaining_weight + 400)
    assert summary.total_overdue_count == 1
    assert summary.last_payment_date == on(6)


def test_converted_bullion_moves_to_cash():
    snapshot = make_snapshot(purchases=[bullion(balance_converted_to_money=True, balance_rate=15950)])
    gold = vepari_summary(snapshot, snapshot.veparis[0], TODAY).metal_summaries[0]
    assert gold.remaining_weight == 0
    assert gold.bullion_balance_grams == 0
    assert gold.bullion_balance_cash == pytest.approx(33654.5)


def test_summary_without_activity():
    summary = vepari_summary(make_snapshot(), Vepari(id="v1", name="New", created_at=at(0)), TODAY)
    assert summary.metal_summaries == []
    assert summary.total_remaining_weight == 0
    assert summary.last_payment_date is None


def test_dangling_metal_is_skipped():
    snapshot = make_snapshot(purchases=[regular("p1", 0, 10), regular("x1", 0, 10, metal_id="gone")])
    summary = vepari_summary(snapshot, snapshot.veparis[0], TODAY)
    assert [ms.metal_id for ms in summary.metal_summaries] == ["gold"]


def test_metals_follow_display_order(platinum):
    snapshot = make_snapshot(
        metals=[platinum] + make_snapshot().metals,
        purchases=[regular("pt", 0, 5, metal_id="platinum"), regular("s1", 1, 5, metal_id="silver"), regular("g1", 2, 5)],
    )
    summary = vepari_summary(snapshot, snapshot.veparis[0], TODAY)
    assert [ms.metal_id for ms in summary.metal_summaries] == ["gold", "silver", "platinum"]


def test_summaries_are_repeatable():
    snapshot = make_snapshot(
        purchases=[regular("p1", 0, 100, credit_days=10), bullion()],
        payments=[metal_payment("m1", 4, 60)],
    )
    assert vepari_summaries(snapshot, TODAY) == vepari_summaries(snapshot, TODAY)


def test_metal_totals_across_veparis():
    snapshot = make_snapshot(
        veparis=[Vepari(id="v1", name="A", created_at=at(0)), Vepari(id="v2", name="B", created_at=at(0))],
        purchases=[
            regular("p1", 0, 100, stone_charges=100),
            regular("p2", 0, 40, vepari_id="v2"),
            regular("s1", 0, 300, vepari_id="v2", metal_id="silver"),
        ],
        payments=[metal_payment("m1", 1, 40, vepari_id="v2")],
    )
    totals = metal_totals(snapshot, TODAY)
    assert [t.metal.id for t in totals] == ["gold", "silver"]
    gold, silver = totals
    assert gold.remaining == pytest.approx(100)
    assert gold.stone_charges == pytest.approx(100)
    assert gold.vepari_count == 1
    assert silver.vepari_count == 1
    assert total_remaining_by_metal(snapshot, TODAY) == {"gold": pytest.approx(100), "silver": pytest.approx(300)}
