"""Record store: add / update / delete for every ledger entity.

Rejected operations return ``None`` (or ``False`` for deletes) and leave
the database untouched; callers decide how to report them.
"""
from typing import Any, Dict, List, Optional
import datetime as dt

from pydantic import ValidationError
from sqlalchemy import func
from sqlmodel import Session, select

from logger import get_logger
from models import (
    Metal, Vepari, Purchase, Payment, Customer, CustomerPurchase,
    CustomerPayment, DeliveryRecord, CustomerPurchaseCreate, CustomerPaymentCreate,
    new_id,
)
from ledger.due import DEFAULT_PENALTY_PERCENT_PER_DAY
from ledger.variants import (
    RegularPurchase, merge_purchase, merge_payment, purchase_from_row,
    payment_from_row, purchase_to_row, payment_to_row,
)

logger = get_logger(__name__)

GRAM_PLACES = 3


def _apply(row, updates: Dict[str, Any], protected=("id", "created_at")):
    fields = type(row).model_fields
    for key, value in updates.items():
        if key in protected or key not in fields:
            continue
        # Required columns cannot be cleared
        if value is None and (fields[key].is_required() or fields[key].default is not None):
            continue
        setattr(row, key, value)
    return row


def _save(session: Session, row):
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


# METALS
def list_metals(session: Session) -> List[Metal]:
    return list(session.exec(select(Metal).order_by(Metal.display_order)).all())


def add_metal(session: Session, name: str, symbol: str, color: str = "amber") -> Metal:
    max_order = session.exec(select(func.max(Metal.display_order))).first()
    metal = Metal(id=new_id(), name=name, symbol=symbol, color=color, display_order=(max_order or 0) + 1)
    _save(session, metal)
    logger.info("Metal added: %s (%s)", metal.name, metal.id)
    return metal


def update_metal(session: Session, metal_id: str, updates: Dict[str, Any]) -> Optional[Metal]:
    metal = session.get(Metal, metal_id)
    if not metal:
        return None
    _apply(metal, updates, protected=("id", "created_at", "is_default"))
    _save(session, metal)
    logger.info("Metal updated: %s", metal_id)
    return metal


def metal_in_use(session: Session, metal_id: str) -> bool:
    purchase = session.exec(select(Purchase.id).where(Purchase.metal_id == metal_id)).first()
    payment = session.exec(select(Payment.id).where(Payment.metal_id == metal_id)).first()
    return purchase is not None or payment is not None


def can_delete_metal(session: Session, metal_id: str) -> bool:
    metal = session.get(Metal, metal_id)
    if not metal or metal.is_default:
        return False
    return not metal_in_use(session, metal_id)


def delete_metal(session: Session, metal_id: str) -> bool:
    if not can_delete_metal(session, metal_id):
        logger.warning("Metal %s cannot be deleted (default, missing or in use)", metal_id)
        return False
    session.delete(session.get(Metal, metal_id))
    session.commit()
    logger.info("Metal deleted: %s", metal_id)
    return True


# VEPARIS
def add_vepari(session: Session, name: str, phone: Optional[str] = None,
               default_credit_days: Optional[int] = None,
               default_penalty_percent_per_day: Optional[float] = None) -> Vepari:
    if default_credit_days and default_penalty_percent_per_day is None:
        default_penalty_percent_per_day = DEFAULT_PENALTY_PERCENT_PER_DAY
    vepari = Vepari(
        id=new_id(),
        name=name,
        phone=phone,
        default_credit_days=default_credit_days,
        default_penalty_percent_per_day=default_penalty_percent_per_day if default_credit_days else None,
    )
    _save(session, vepari)
    logger.info("Vepari added: %s (%s)", vepari.name, vepari.id)
    return vepari


def update_vepari(session: Session, vepari_id: str, updates: Dict[str, Any]) -> Optional[Vepari]:
    vepari = session.get(Vepari, vepari_id)
    if not vepari:
        return None
    _apply(vepari, updates)
    _save(session, vepari)
    logger.info("Vepari updated: %s", vepari_id)
    return vepari


def delete_vepari(session: Session, vepari_id: str) -> bool:
    vepari = session.get(Vepari, vepari_id)
    if not vepari:
        return False

    # Cascade Delete: purchases and payments belong to the vepari
    purchases = session.exec(select(Purchase).where(Purchase.vepari_id == vepari_id)).all()
    payments = session.exec(select(Payment).where(Payment.vepari_id == vepari_id)).all()
    for row in list(purchases) + list(payments):
        session.delete(row)

    session.delete(vepari)
    session.commit()
    logger.info("Vepari deleted: %s (%d purchases, %d payments)", vepari_id, len(purchases), len(payments))
    return True


# PURCHASES
def _references_ok(session: Session, vepari_id: str, metal_id: str) -> bool:
    return session.get(Vepari, vepari_id) is not None and session.get(Metal, metal_id) is not None


def get_purchase(session: Session, purchase_id: str):
    row = session.get(Purchase, purchase_id)
    return purchase_from_row(row) if row else None


def add_purchase(session: Session, purchase):
    """Store a new purchase variant under a fresh id.

    Regular purchases without their own credit terms take the vepari's defaults.
    """
    if not _references_ok(session, purchase.vepari_id, purchase.metal_id):
        logger.warning("Purchase rejected: unknown vepari %s or metal %s", purchase.vepari_id, purchase.metal_id)
        return None

    changes: Dict[str, Any] = {"id": new_id(), "created_at": dt.datetime.utcnow()}
    if isinstance(purchase, RegularPurchase) and purchase.credit_days is None:
        vepari = session.get(Vepari, purchase.vepari_id)
        if vepari.default_credit_days:
            changes["credit_days"] = vepari.default_credit_days
            if purchase.penalty_percent_per_day is None:
                changes["penalty_percent_per_day"] = vepari.default_penalty_percent_per_day
    purchase = purchase.model_copy(update=changes)

    session.add(purchase_to_row(purchase))
    session.commit()
    logger.info("Purchase added: %s %s for vepari %s", purchase.purchase_type, purchase.id, purchase.vepari_id)
    return purchase


def update_purchase(session: Session, purchase_id: str, updates: Dict[str, Any]):
    row = session.get(Purchase, purchase_id)
    if not row:
        return None
    try:
        purchase = merge_purchase(purchase_from_row(row), updates)
    except ValidationError as e:
        logger.warning("Purchase %s update rejected: %s", purchase_id, e.errors())
        return None
    if session.get(Metal, purchase.metal_id) is None:
        logger.warning("Purchase %s update rejected: unknown metal %s", purchase_id, purchase.metal_id)
        return None

    _save(session, purchase_to_row(purchase, row))
    logger.info("Purchase updated: %s", purchase_id)
    return purchase


def delete_purchase(session: Session, purchase_id: str) -> bool:
    row = session.get(Purchase, purchase_id)
    if not row:
        return False
    session.delete(row)
    session.commit()
    logger.info("Purchase deleted: %s", purchase_id)
    return True


# PAYMENTS
def get_payment(session: Session, payment_id: str):
    row = session.get(Payment, payment_id)
    return payment_from_row(row) if row else None


def add_payment(session: Session, payment):
    if not _references_ok(session, payment.vepari_id, payment.metal_id):
        logger.warning("Payment rejected: unknown vepari %s or metal %s", payment.vepari_id, payment.metal_id)
        return None
    payment = payment.model_copy(update={"id": new_id(), "created_at": dt.datetime.utcnow()})
    session.add(payment_to_row(payment))
    session.commit()
    logger.info("Payment added: %s %s for vepari %s", payment.payment_type, payment.id, payment.vepari_id)
    return payment


def update_payment(session: Session, payment_id: str, updates: Dict[str, Any]):
    row = session.get(Payment, payment_id)
    if not row:
        return None
    try:
        # Amount is re-derived from weight x rate on every update
        payment = merge_payment(payment_from_row(row), updates)
    except ValidationError as e:
        logger.warning("Payment %s update rejected: %s", payment_id, e.errors())
        return None
    if session.get(Metal, payment.metal_id) is None:
        logger.warning("Payment %s update rejected: unknown metal %s", payment_id, payment.metal_id)
        return None

    _save(session, payment_to_row(payment, row))
    logger.info("Payment updated: %s", payment_id)
    return payment


def delete_payment(session: Session, payment_id: str) -> bool:
    row = session.get(Payment, payment_id)
    if not row:
        return False
    session.delete(row)
    session.commit()
    logger.info("Payment deleted: %s", payment_id)
    return True


# CUSTOMERS
def add_customer(session: Session, name: str, phone: Optional[str] = None) -> Customer:
    customer = Customer(id=new_id(), name=name, phone=phone)
    _save(session, customer)
    logger.info("Customer added: %s (%s)", customer.name, customer.id)
    return customer


def update_customer(session: Session, customer_id: str, updates: Dict[str, Any]) -> Optional[Customer]:
    customer = session.get(Customer, customer_id)
    if not customer:
        return None
    _apply(customer, updates)
    _save(session, customer)
    logger.info("Customer updated: %s", customer_id)
    return customer


def delete_customer(session: Session, customer_id: str) -> bool:
    customer = session.get(Customer, customer_id)
    if not customer:
        return False

    # Cascade Delete: purchases, payments and deliveries of the customer
    rows = []
    for model in (CustomerPurchase, CustomerPayment, DeliveryRecord):
        rows.extend(session.exec(select(model).where(model.customer_id == customer_id)).all())
    for row in rows:
        session.delete(row)

    session.delete(customer)
    session.commit()
    logger.info("Customer deleted: %s (%d related records)", customer_id, len(rows))
    return True


# CUSTOMER PURCHASES
def add_customer_purchase(session: Session, data: CustomerPurchaseCreate) -> Optional[CustomerPurchase]:
    if session.get(Customer, data.customer_id) is None or session.get(Metal, data.metal_id) is None:
        logger.warning("Customer purchase rejected: unknown customer %s or metal %s", data.customer_id, data.metal_id)
        return None
    purchase = CustomerPurchase(id=new_id(), delivered_grams=0.0, **data.model_dump())
    _save(session, purchase)
    logger.info("Customer purchase added: %s for customer %s", purchase.id, purchase.customer_id)
    return purchase


def update_customer_purchase(session: Session, purchase_id: str, updates: Dict[str, Any]) -> Optional[CustomerPurchase]:
    purchase = session.get(CustomerPurchase, purchase_id)
    if not purchase:
        return None

    weight = updates.get("weight_grams", purchase.weight_grams)
    if weight is None or weight < (purchase.delivered_grams or 0):
        logger.warning("Customer purchase %s update rejected: weight below delivered grams", purchase_id)
        return None
    metal_id = updates.get("metal_id") or purchase.metal_id
    if session.get(Metal, metal_id) is None:
        logger.warning("Customer purchase %s update rejected: unknown metal %s", purchase_id, metal_id)
        return None

    _apply(purchase, updates, protected=("id", "customer_id", "created_at", "delivered_grams"))
    _save(session, purchase)
    logger.info("Customer purchase updated: %s", purchase_id)
    return purchase


def delete_customer_purchase(session: Session, purchase_id: str) -> bool:
    purchase = session.get(CustomerPurchase, purchase_id)
    if not purchase:
        return False

    deliveries = session.exec(select(DeliveryRecord).where(DeliveryRecord.purchase_id == purchase_id)).all()
    for d in deliveries:
        session.delete(d)

    session.delete(purchase)
    session.commit()
    logger.info("Customer purchase deleted: %s (%d deliveries)", purchase_id, len(deliveries))
    return True


# CUSTOMER PAYMENTS
def _linkable(session: Session, customer_id: str, purchase_id: Optional[str]) -> bool:
    if not purchase_id:
        return True
    purchase = session.get(CustomerPurchase, purchase_id)
    return purchase is not None and purchase.customer_id == customer_id


def add_customer_payment(session: Session, data: CustomerPaymentCreate) -> Optional[CustomerPayment]:
    if session.get(Customer, data.customer_id) is None or not _linkable(session, data.customer_id, data.purchase_id):
        logger.warning("Customer payment rejected for customer %s", data.customer_id)
        return None
    payment = CustomerPayment(id=new_id(), **data.model_dump())
    _save(session, payment)
    logger.info("Customer payment added: %s (%.2f) for customer %s", payment.id, payment.amount, payment.customer_id)
    return payment


def update_customer_payment(session: Session, payment_id: str, updates: Dict[str, Any]) -> Optional[CustomerPayment]:
    payment = session.get(CustomerPayment, payment_id)
    if not payment:
        return None
    if "purchase_id" in updates and not _linkable(session, payment.customer_id, updates["purchase_id"]):
        logger.warning("Customer payment %s update rejected: purchase %s not linkable", payment_id, updates["purchase_id"])
        return None
    _apply(payment, updates, protected=("id", "customer_id", "created_at"))
    _save(session, payment)
    logger.info("Customer payment updated: %s", payment_id)
    return payment


def delete_customer_payment(session: Session, payment_id: str) -> bool:
    payment = session.get(CustomerPayment, payment_id)
    if not payment:
        return False
    session.delete(payment)
    session.commit()
    logger.info("Customer payment deleted: %s", payment_id)
    return True


# DELIVERIES
def add_delivery(session: Session, customer_id: str, purchase_id: str, weight_grams: float,
                 date: dt.date, notes: Optional[str] = None) -> Optional[DeliveryRecord]:
    """Record a delivery lot and move the purchase's delivered grams.

    Both rows are written in one commit, or nothing is written at all.
    """
    purchase = session.get(CustomerPurchase, purchase_id)
    if not purchase or purchase.customer_id != customer_id:
        logger.warning("Delivery rejected: purchase %s not found for customer %s", purchase_id, customer_id)
        return None

    delivered = purchase.delivered_grams or 0
    # Weights compare to the milligram
    remaining = round(purchase.weight_grams - delivered, GRAM_PLACES)
    if weight_grams <= 0 or round(weight_grams, GRAM_PLACES) > remaining:
        logger.warning(
            "Delivery rejected for purchase %s: %.3fg requested, %.3fg remaining", purchase_id, weight_grams, remaining
        )
        return None

    record = DeliveryRecord(
        id=new_id(), customer_id=customer_id, purchase_id=purchase_id,
        date=date, weight_grams=weight_grams, notes=notes,
    )
    total = delivered + weight_grams
    if round(purchase.weight_grams - total, GRAM_PLACES) <= 0:
        total = purchase.weight_grams
    purchase.delivered_grams = total
    session.add(record)
    session.add(purchase)
    session.commit()
    session.refresh(record)
    logger.info("Delivery recorded: %.3fg for purchase %s", weight_grams, purchase_id)
    return record
