from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from database import get_session
from models import (
    Customer, CustomerCreate, CustomerUpdate,
    CustomerPurchase, CustomerPurchaseCreate, CustomerPurchaseUpdate,
    CustomerPayment, CustomerPaymentCreate, CustomerPaymentUpdate,
    DeliveryRecord, DeliveryCreate,
)
from ledger import store
from ledger.customer_summary import customer_summaries, customer_summary
from ledger.schemas import CustomerSummary
from ledger.snapshot import LedgerSnapshot
from routers.deps import get_snapshot
from typing import List, Optional

router = APIRouter(prefix="/customers", tags=["customers"])


def _require_customer(snapshot: LedgerSnapshot, customer_id: str) -> Customer:
    customer = snapshot.customer(customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer

# CUSTOMERS
@router.get("/", response_model=List[CustomerSummary])
def read_customers(snapshot: LedgerSnapshot = Depends(get_snapshot)):
    return customer_summaries(snapshot)

@router.post("/", response_model=Customer)
def create_customer(customer: CustomerCreate, session: Session = Depends(get_session)):
    return store.add_customer(session, customer.name, customer.phone)

@router.get("/{customer_id}", response_model=CustomerSummary)
def read_customer(customer_id: str, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    return customer_summary(snapshot, _require_customer(snapshot, customer_id))

@router.patch("/{customer_id}", response_model=Customer)
def update_customer(customer_id: str, updates: CustomerUpdate, session: Session = Depends(get_session)):
    customer = store.update_customer(session, customer_id, updates.model_dump(exclude_unset=True))
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer

@router.delete("/{customer_id}")
def delete_customer(customer_id: str, session: Session = Depends(get_session)):
    if not store.delete_customer(session, customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    return {"ok": True}

# PURCHASES
@router.get("/{customer_id}/purchases", response_model=List[CustomerPurchase])
def read_customer_purchases(customer_id: str, metal_id: Optional[str] = None, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    _require_customer(snapshot, customer_id)
    return snapshot.customer_purchase_list(customer_id, metal_id)

@router.post("/purchases", response_model=CustomerPurchase)
def create_customer_purchase(purchase: CustomerPurchaseCreate, session: Session = Depends(get_session)):
    created = store.add_customer_purchase(session, purchase)
    if not created:
        raise HTTPException(status_code=400, detail="Unknown customer or metal")
    return created

@router.patch("/purchases/{purchase_id}", response_model=CustomerPurchase)
def update_customer_purchase(purchase_id: str, updates: CustomerPurchaseUpdate, session: Session = Depends(get_session)):
    if not session.get(CustomerPurchase, purchase_id):
        raise HTTPException(status_code=404, detail="Purchase not found")
    purchase = store.update_customer_purchase(session, purchase_id, updates.model_dump(exclude_unset=True))
    if not purchase:
        raise HTTPException(status_code=400, detail="Weight cannot go below delivered grams, metal must exist")
    return purchase

@router.delete("/purchases/{purchase_id}")
def delete_customer_purchase(purchase_id: str, session: Session = Depends(get_session)):
    if not store.delete_customer_purchase(session, purchase_id):
        raise HTTPException(status_code=404, detail="Purchase not found")
    return {"ok": True}

# PAYMENTS
@router.get("/{customer_id}/payments", response_model=List[CustomerPayment])
def read_customer_payments(customer_id: str, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    _require_customer(snapshot, customer_id)
    return snapshot.customer_payment_list(customer_id)

@router.post("/payments", response_model=CustomerPayment)
def create_customer_payment(payment: CustomerPaymentCreate, session: Session = Depends(get_session)):
    created = store.add_customer_payment(session, payment)
    if not created:
        raise HTTPException(status_code=400, detail="Unknown customer, or purchase belongs to another customer")
    return created

@router.patch("/payments/{payment_id}", response_model=CustomerPayment)
def update_customer_payment(payment_id: str, updates: CustomerPaymentUpdate, session: Session = Depends(get_session)):
    if not session.get(CustomerPayment, payment_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    payment = store.update_customer_payment(session, payment_id, updates.model_dump(exclude_unset=True))
    if not payment:
        raise HTTPException(status_code=400, detail="Purchase belongs to another customer")
    return payment

@router.delete("/payments/{payment_id}")
def delete_customer_payment(payment_id: str, session: Session = Depends(get_session)):
    if not store.delete_customer_payment(session, payment_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    return {"ok": True}

# DELIVERIES
@router.get("/{customer_id}/deliveries", response_model=List[DeliveryRecord])
def read_deliveries(customer_id: str, purchase_id: Optional[str] = None, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    _require_customer(snapshot, customer_id)
    return snapshot.delivery_history(customer_id, purchase_id)

@router.post("/{customer_id}/deliveries", response_model=DeliveryRecord)
def create_delivery(customer_id: str, delivery: DeliveryCreate, session: Session = Depends(get_session)):
    purchase = session.get(CustomerPurchase, delivery.purchase_id)
    if not purchase or purchase.customer_id != customer_id:
        raise HTTPException(status_code=404, detail="Purchase not found")

    record = store.add_delivery(
        session, customer_id, delivery.purchase_id, delivery.weight_grams, delivery.date, delivery.notes
    )
    if not record:
        pending = purchase.weight_grams - (purchase.delivered_grams or 0)
        raise HTTPException(
            status_code=400,
            detail=f"Cannot deliver {delivery.weight_grams:.3f}g. Pending delivery is {pending:.3f}g",
        )
    return record
