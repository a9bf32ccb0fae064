import pytest
from sqlmodel import select

from ledger import store
from ledger.backup import export_snapshot, import_snapshot, validate_snapshot, SnapshotFormatError, BACKUP_VERSION
from ledger.fifo import remaining_grams
from ledger.snapshot import load_snapshot
from ledger.variants import RegularPurchase, BullionPurchase, MetalPayment, CashPayment
from models import Metal, Vepari, Purchase, Payment, CustomerPurchaseCreate, CustomerPaymentCreate
from factories import on


def legacy_backup():
    return {
        "veparis": [{"id": "v1", "name": "Ramesh", "phone": "98000", "createdAt": "2023-12-01T10:00:00.000Z"}],
        "purchases": [
            {"id": "p2", "vepariId": "v1", "date": "2024-01-01T00:00:00.000Z", "weightGrams": 50},
            {"id": "p1", "vepariId": "v1", "date": "2024-01-01T00:00:00.000Z", "weightGrams": 100,
             "ratePerGram": 6000, "creditDays": 10, "dueDate": "2024-01-11"},
        ],
        "payments": [{"id": "m1", "vepariId": "v1", "date": "2024-01-05", "weightGrams": 60, "ratePerGram": 6000}],
        "exportedAt": "2024-01-20T00:00:00.000Z",
    }


@pytest.fixture(name="populated")
def populated_fixture(session):
    vepari = store.add_vepari(session, "Ramesh Bullion", default_credit_days=10)
    store.add_purchase(session, RegularPurchase(vepari_id=vepari.id, date=on(0), weight_grams=100, rate_per_gram=6000))
    store.add_purchase(session, BullionPurchase(
        vepari_id=vepari.id, date=on(1), old_gold_weight=147, old_gold_touch=87, fresh_metal_received=130,
    ))
    store.add_payment(session, MetalPayment(vepari_id=vepari.id, date=on(2), weight_grams=60, rate_per_gram=6000))
    store.add_payment(session, CashPayment(vepari_id=vepari.id, date=on(3), cash_amount=1000))
    store.add_metal(session, "Platinum", "Pt", "zinc")

    customer = store.add_customer(session, "Sita")
    sale = store.add_customer_purchase(session, CustomerPurchaseCreate(
        customer_id=customer.id, date=on(0), weight_grams=10, sale_rate_per_gram=6000, purchase_rate_per_gram=5800,
    ))
    store.add_customer_payment(session, CustomerPaymentCreate(customer_id=customer.id, purchase_id=sale.id, date=on(1), amount=500))
    store.add_delivery(session, customer.id, sale.id, 4, on(2))
    return vepari


def test_export_uses_camel_case(session, populated):
    data = export_snapshot(session)
    assert data["version"] == BACKUP_VERSION
    assert len(data["metals"]) == 3
    purchase = next(p for p in data["purchases"] if p["purchaseType"] == "regular")
    assert purchase["vepariId"] == populated.id
    assert purchase["weightGrams"] == 100
    assert purchase["dueDate"] == on(10).isoformat()
    assert "vepari_id" not in purchase
    assert "oldGoldWeight" not in purchase
    assert data["deliveryRecords"][0]["weightGrams"] == 4


def test_export_then_import_restores_everything(session, populated):
    data = export_snapshot(session)
    before = load_snapshot(session)

    counts = import_snapshot(session, data)
    assert counts["purchases"] == 2
    assert counts["deliveryRecords"] == 1

    after = load_snapshot(session)
    assert sorted(p.id for p in after.purchases) == sorted(p.id for p in before.purchases)
    assert {m.id for m in after.metals} == {m.id for m in before.metals}
    assert after.customer_purchases[0].delivered_grams == pytest.approx(4)
    assert remaining_grams(after, populated.id) == remaining_grams(before, populated.id)


def test_legacy_backup_is_migrated(session):
    counts = import_snapshot(session, legacy_backup())
    assert counts == {
        "veparis": 1, "purchases": 2, "payments": 1, "customers": 0,
        "customerPurchases": 0, "customerPayments": 0, "deliveryRecords": 0,
    }

    p1 = session.get(Purchase, "p1")
    assert p1.metal_id == "gold"
    assert p1.purchase_type == "regular"
    assert p1.date == on(0)
    assert p1.due_date == on(10)
    assert session.get(Payment, "m1").payment_type == "metal"
    assert session.get(Payment, "m1").amount == pytest.approx(360000)

    # Default metals stay when the file carries none
    assert {m.id for m in session.exec(select(Metal)).all()} == {"gold", "silver"}


def test_undated_records_keep_file_order(session):
    import_snapshot(session, legacy_backup())
    snapshot = load_snapshot(session)
    # p2 comes first in the file, so it is settled first on the same day
    assert remaining_grams(snapshot, "v1") == {"p2": 0, "p1": pytest.approx(90)}


def test_import_replaces_existing_records(session, populated):
    import_snapshot(session, legacy_backup())
    assert [v.id for v in session.exec(select(Vepari)).all()] == ["v1"]
    assert load_snapshot(session).customers == []


def test_imported_metals_keep_system_metals(session):
    data = legacy_backup()
    data["metals"] = [{"id": "platinum", "name": "Platinum", "symbol": "Pt", "displayOrder": 3}]
    import_snapshot(session, data)
    assert {m.id for m in session.exec(select(Metal)).all()} == {"gold", "silver", "platinum"}


@pytest.mark.parametrize("data", [
    [],
    "backup",
    {"veparis": []},
    {"veparis": [], "purchases": [], "payments": {}},
    {"veparis": [], "purchases": [], "payments": [], "customers": "none"},
])
def test_bad_documents_rejected(data):
    with pytest.raises(SnapshotFormatError):
        validate_snapshot(data)


def test_invalid_record_leaves_store_untouched(session, populated):
    data = legacy_backup()
    data["purchases"].append({"id": "bad", "vepariId": "v1", "date": "2024-01-02", "weightGrams": -3})
    with pytest.raises(SnapshotFormatError):
        import_snapshot(session, data)
    assert [v.id for v in session.exec(select(Vepari)).all()] == [populated.id]
    assert len(session.exec(select(Purchase)).all()) == 2


def test_duplicate_ids_leave_store_untouched(session, populated):
    data = legacy_backup()
    data["payments"].append(dict(data["payments"][0]))
    with pytest.raises(SnapshotFormatError):
        import_snapshot(session, data)
    assert [v.id for v in session.exec(select(Vepari)).all()] == [populated.id]


def backup_with_sale(delivered=4, lots=(4,)):
    data = legacy_backup()
    data["customers"] = [{"id": "c1", "name": "Sita"}]
    data["customerPurchases"] = [{
        "id": "cp1", "customerId": "c1", "date": "2024-01-01", "weightGrams": 10,
        "saleRatePerGram": 6000, "purchaseRatePerGram": 5800, "deliveredGrams": delivered,
    }]
    data["deliveryRecords"] = [
        {"id": f"d{i}", "customerId": "c1", "purchaseId": "cp1", "date": "2024-01-02", "weightGrams": weight}
        for i, weight in enumerate(lots)
    ]
    return data


def test_consistent_deliveries_import(session):
    counts = import_snapshot(session, backup_with_sale(delivered=10, lots=(4, 6)))
    assert counts["deliveryRecords"] == 2
    assert load_snapshot(session).customer_purchases[0].pending_grams == 0


@pytest.mark.parametrize("data", [
    backup_with_sale(delivered=25, lots=()),
    backup_with_sale(delivered=-1, lots=()),
    backup_with_sale(delivered=10, lots=(6, 7)),
])
def test_deliveries_beyond_weight_rejected(session, populated, data):
    with pytest.raises(SnapshotFormatError):
        import_snapshot(session, data)
    assert [v.id for v in session.exec(select(Vepari)).all()] == [populated.id]
    assert load_snapshot(session).customer_purchases[0].delivered_grams == pytest.approx(4)


def test_delivery_for_missing_purchase_rejected():
    data = backup_with_sale()
    data["deliveryRecords"][0]["purchaseId"] = "gone"
    with pytest.raises(SnapshotFormatError):
        validate_snapshot(data)
