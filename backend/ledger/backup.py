"""JSON backup of the whole ledger.

The file uses camelCase keys. Older backups only carry ``veparis``,
``purchases`` and ``payments`` and predate metals and transaction types, so
every record is migrated on read before anything touches the database.
"""
from typing import Any, Dict, List
import datetime as dt

from pydantic import ValidationError
from pydantic.alias_generators import to_camel, to_snake
from sqlmodel import Session, select, delete

from logger import get_logger
from models import (
    Metal, Vepari, Purchase, Payment, Customer, CustomerPurchase,
    CustomerPayment, DeliveryRecord, DEFAULT_METAL_ID, default_metals,
)
from ledger.variants import parse_purchase, parse_payment, purchase_to_row, payment_to_row
from ledger.snapshot import load_snapshot
from ledger.store import GRAM_PLACES

logger = get_logger(__name__)

BACKUP_VERSION = "2.0"
REQUIRED_ARRAYS = ("veparis", "purchases", "payments")
OPTIONAL_ARRAYS = ("metals", "customers", "customerPurchases", "customerPayments", "deliveryRecords")
DATE_FIELDS = ("date",)
DERIVED_FIELDS = ("due_date", "amount", "fine_gold_calculated", "balance_grams", "balance_cash_amount")


class SnapshotFormatError(ValueError):
    """The backup document cannot be imported."""


def _camel(record: Dict[str, Any]) -> Dict[str, Any]:
    return {to_camel(k): v for k, v in record.items() if v is not None}


def export_snapshot(session: Session) -> Dict[str, Any]:
    snapshot = load_snapshot(session)
    data = {
        "veparis": [_camel(v.model_dump(mode="json")) for v in snapshot.veparis],
        "purchases": [_camel(p.model_dump(mode="json")) for p in snapshot.purchases],
        "payments": [_camel(p.model_dump(mode="json")) for p in snapshot.payments],
        "metals": [_camel(m.model_dump(mode="json")) for m in snapshot.sorted_metals()],
        "customers": [_camel(c.model_dump(mode="json")) for c in snapshot.customers],
        "customerPurchases": [_camel(p.model_dump(mode="json")) for p in snapshot.customer_purchases],
        "customerPayments": [_camel(p.model_dump(mode="json")) for p in snapshot.customer_payments],
        "deliveryRecords": [_camel(d.model_dump(mode="json")) for d in snapshot.deliveries],
        "exportedAt": dt.datetime.utcnow().isoformat(),
        "version": BACKUP_VERSION,
    }
    logger.info(
        "Backup exported: %d veparis, %d purchases, %d payments, %d customers",
        len(data["veparis"]), len(data["purchases"]), len(data["payments"]), len(data["customers"]),
    )
    return data


class _FileOrderClock:
    """Hands out increasing timestamps so undated records keep their file order."""

    def __init__(self):
        self.base = dt.datetime.utcnow()
        self.step = 0

    def next(self) -> dt.datetime:
        self.step += 1
        return self.base + dt.timedelta(microseconds=self.step)


def _snake(record: Any, name: str, index: int, clock: _FileOrderClock) -> Dict[str, Any]:
    if not isinstance(record, dict):
        raise SnapshotFormatError(f"{name}[{index}] is not an object")
    data = {to_snake(k): v for k, v in record.items()}
    for key in DATE_FIELDS:
        # ISO timestamps from older backups: keep the calendar day
        value = data.get(key)
        if isinstance(value, str) and "T" in value:
            data[key] = value.split("T", 1)[0]
    if not data.get("created_at"):
        data["created_at"] = clock.next()
    return data


def _migrate_transaction(data: Dict[str, Any], type_key: str, default_type: str) -> Dict[str, Any]:
    # Cached figures are re-derived from the inputs
    for key in DERIVED_FIELDS:
        data.pop(key, None)
    data["metal_id"] = data.get("metal_id") or DEFAULT_METAL_ID
    data[type_key] = data.get(type_key) or default_type
    return data


def _check_unique_ids(parsed: Dict[str, List]):
    for key, rows in parsed.items():
        ids = [row.id for row in rows]
        if len(ids) != len(set(ids)):
            raise SnapshotFormatError(f"Invalid backup file format: duplicate ids in {key}")


def _check_deliveries(parsed: Dict[str, List]):
    purchases = {p.id: p for p in parsed["customerPurchases"]}
    lots: Dict[str, float] = {}
    for record in parsed["deliveryRecords"]:
        if record.purchase_id not in purchases:
            raise SnapshotFormatError(f"Invalid backup file format: delivery {record.id} has no customer purchase")
        lots[record.purchase_id] = lots.get(record.purchase_id, 0.0) + record.weight_grams
    for purchase in purchases.values():
        delivered = purchase.delivered_grams or 0
        if delivered < 0 or round(delivered - purchase.weight_grams, GRAM_PLACES) > 0:
            raise SnapshotFormatError(f"Invalid backup file format: purchase {purchase.id} delivered beyond its weight")
        if round(lots.get(purchase.id, 0.0) - purchase.weight_grams, GRAM_PLACES) > 0:
            raise SnapshotFormatError(f"Invalid backup file format: deliveries for {purchase.id} exceed its weight")


def _parse(data: Dict[str, Any]) -> Dict[str, List]:
    clock = _FileOrderClock()

    def records(key):
        return [_snake(r, key, i, clock) for i, r in enumerate(data.get(key) or [])]

    parsed = {
        "veparis": [Vepari.model_validate(r) for r in records("veparis")],
        "purchases": [
            purchase_to_row(parse_purchase(_migrate_transaction(r, "purchase_type", "regular")))
            for r in records("purchases")
        ],
        "payments": [
            payment_to_row(parse_payment(_migrate_transaction(r, "payment_type", "metal")))
            for r in records("payments")
        ],
        "customers": [Customer.model_validate(r) for r in records("customers")],
        "customerPurchases": [
            CustomerPurchase.model_validate({**r, "metal_id": r.get("metal_id") or DEFAULT_METAL_ID})
            for r in records("customerPurchases")
        ],
        "customerPayments": [CustomerPayment.model_validate(r) for r in records("customerPayments")],
        "deliveryRecords": [DeliveryRecord.model_validate(r) for r in records("deliveryRecords")],
    }
    if "metals" in data:
        metals = [Metal.model_validate(r) for r in records("metals")]
        present = {m.id for m in metals}
        # System metals survive any import
        metals.extend(m for m in default_metals() if m.id not in present)
        parsed["metals"] = metals
    return parsed


def validate_snapshot(data: Any) -> Dict[str, List]:
    """Check and migrate a backup document without touching the store."""
    if not isinstance(data, dict):
        raise SnapshotFormatError("Invalid backup file format: expected a JSON object")
    missing = [key for key in REQUIRED_ARRAYS if not isinstance(data.get(key), list)]
    if missing:
        raise SnapshotFormatError(f"Invalid backup file format: missing {', '.join(missing)}")
    wrong = [key for key in OPTIONAL_ARRAYS if key in data and not isinstance(data[key], list)]
    if wrong:
        raise SnapshotFormatError(f"Invalid backup file format: {', '.join(wrong)} must be arrays")

    try:
        parsed = _parse(data)
    except ValidationError as e:
        raise SnapshotFormatError(f"Invalid record in backup: {e.errors()[0]['msg']}") from e
    _check_unique_ids(parsed)
    _check_deliveries(parsed)
    return parsed


def import_snapshot(session: Session, data: Any) -> Dict[str, int]:
    """Replace the whole store with the backup contents in one commit."""
    parsed = validate_snapshot(data)

    tables = [Purchase, Payment, Vepari, DeliveryRecord, CustomerPayment, CustomerPurchase, Customer]
    if "metals" in parsed:
        tables.append(Metal)
    try:
        for model in tables:
            session.exec(delete(model))
        # Imported rows may reuse ids of rows already loaded in this session
        session.expunge_all()
        for rows in parsed.values():
            for row in rows:
                session.add(row)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Backup import failed, store left unchanged")
        raise

    if "metals" not in parsed:
        # Old backups without metals: make sure the system metals exist
        existing = {m.id for m in session.exec(select(Metal)).all()}
        missing = [m for m in default_metals() if m.id not in existing]
        if missing:
            session.add_all(missing)
            session.commit()

    counts = {key: len(rows) for key, rows in parsed.items()}
    logger.info("Backup imported: %s", counts)
    return counts
