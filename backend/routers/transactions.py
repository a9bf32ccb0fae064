from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from database import get_session
from models import Purchase, Payment, PurchaseUpdate, PaymentUpdate
from ledger import store
from ledger.variants import AnyPurchase, AnyPayment, PurchaseVariant, PaymentVariant

router = APIRouter(tags=["transactions"])

# PURCHASES
@router.post("/purchases", response_model=AnyPurchase)
def create_purchase(purchase: PurchaseVariant, session: Session = Depends(get_session)):
    created = store.add_purchase(session, purchase)
    if not created:
        raise HTTPException(status_code=400, detail="Unknown vepari or metal")
    return created

@router.get("/purchases/{purchase_id}", response_model=AnyPurchase)
def read_purchase(purchase_id: str, session: Session = Depends(get_session)):
    purchase = store.get_purchase(session, purchase_id)
    if not purchase:
        raise HTTPException(status_code=404, detail="Purchase not found")
    return purchase

@router.patch("/purchases/{purchase_id}", response_model=AnyPurchase)
def update_purchase(purchase_id: str, updates: PurchaseUpdate, session: Session = Depends(get_session)):
    if not session.get(Purchase, purchase_id):
        raise HTTPException(status_code=404, detail="Purchase not found")

    # Due date / bullion balance are recomputed from the merged record
    purchase = store.update_purchase(session, purchase_id, updates.model_dump(exclude_unset=True))
    if not purchase:
        raise HTTPException(status_code=400, detail="Invalid purchase update")
    return purchase

@router.delete("/purchases/{purchase_id}")
def delete_purchase(purchase_id: str, session: Session = Depends(get_session)):
    if not store.delete_purchase(session, purchase_id):
        raise HTTPException(status_code=404, detail="Purchase not found")
    return {"ok": True}

# PAYMENTS
@router.post("/payments", response_model=AnyPayment)
def create_payment(payment: PaymentVariant, session: Session = Depends(get_session)):
    created = store.add_payment(session, payment)
    if not created:
        raise HTTPException(status_code=400, detail="Unknown vepari or metal")
    return created

@router.get("/payments/{payment_id}", response_model=AnyPayment)
def read_payment(payment_id: str, session: Session = Depends(get_session)):
    payment = store.get_payment(session, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment

@router.patch("/payments/{payment_id}", response_model=AnyPayment)
def update_payment(payment_id: str, updates: PaymentUpdate, session: Session = Depends(get_session)):
    if not session.get(Payment, payment_id):
        raise HTTPException(status_code=404, detail="Payment not found")

    payment = store.update_payment(session, payment_id, updates.model_dump(exclude_unset=True))
    if not payment:
        raise HTTPException(status_code=400, detail="Invalid payment update")
    return payment

@router.delete("/payments/{payment_id}")
def delete_payment(payment_id: str, session: Session = Depends(get_session)):
    if not store.delete_payment(session, payment_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    return {"ok": True}
