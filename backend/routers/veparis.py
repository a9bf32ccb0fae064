from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from database import get_session
from models import Vepari, VepariCreate, VepariUpdate
from ledger import store
from ledger.due import purchase_statuses
from ledger.fifo import remaining_grams, fifo_allocation
from ledger.schemas import VepariSummary, PurchaseStatusRow, FifoResult
from ledger.snapshot import LedgerSnapshot
from ledger.variants import AnyPurchase, AnyPayment
from ledger.vepari_summary import vepari_summaries, vepari_summary
from routers.deps import get_snapshot, get_today
from typing import List, Dict, Optional
from datetime import date

router = APIRouter(prefix="/veparis", tags=["veparis"])


def _require_vepari(snapshot: LedgerSnapshot, vepari_id: str) -> Vepari:
    vepari = snapshot.vepari(vepari_id)
    if not vepari:
        raise HTTPException(status_code=404, detail="Vepari not found")
    return vepari

@router.get("/", response_model=List[VepariSummary])
def read_veparis(snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    return vepari_summaries(snapshot, today)

@router.post("/", response_model=Vepari)
def create_vepari(vepari: VepariCreate, session: Session = Depends(get_session)):
    return store.add_vepari(
        session, vepari.name, vepari.phone,
        vepari.default_credit_days, vepari.default_penalty_percent_per_day,
    )

@router.get("/{vepari_id}", response_model=VepariSummary)
def read_vepari(vepari_id: str, snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    return vepari_summary(snapshot, _require_vepari(snapshot, vepari_id), today)

@router.patch("/{vepari_id}", response_model=Vepari)
def update_vepari(vepari_id: str, updates: VepariUpdate, session: Session = Depends(get_session)):
    vepari = store.update_vepari(session, vepari_id, updates.model_dump(exclude_unset=True))
    if not vepari:
        raise HTTPException(status_code=404, detail="Vepari not found")
    return vepari

@router.delete("/{vepari_id}")
def delete_vepari(vepari_id: str, session: Session = Depends(get_session)):
    if not store.delete_vepari(session, vepari_id):
        raise HTTPException(status_code=404, detail="Vepari not found")
    return {"ok": True}

@router.get("/{vepari_id}/purchases", response_model=List[AnyPurchase])
def read_vepari_purchases(vepari_id: str, metal_id: Optional[str] = None, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    _require_vepari(snapshot, vepari_id)
    return snapshot.vepari_purchases(vepari_id, metal_id)

@router.get("/{vepari_id}/payments", response_model=List[AnyPayment])
def read_vepari_payments(vepari_id: str, metal_id: Optional[str] = None, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    _require_vepari(snapshot, vepari_id)
    return snapshot.vepari_payments(vepari_id, metal_id)

@router.get("/{vepari_id}/remaining", response_model=Dict[str, float])
def read_remaining_grams(vepari_id: str, metal_id: Optional[str] = None, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    """FIFO remaining weight per regular purchase."""
    _require_vepari(snapshot, vepari_id)
    return remaining_grams(snapshot, vepari_id, metal_id)

@router.get("/{vepari_id}/allocation/{metal_id}", response_model=FifoResult)
def read_fifo_allocation(vepari_id: str, metal_id: str, snapshot: LedgerSnapshot = Depends(get_snapshot)):
    _require_vepari(snapshot, vepari_id)
    return fifo_allocation(snapshot, vepari_id, metal_id)

@router.get("/{vepari_id}/statuses", response_model=List[PurchaseStatusRow])
def read_purchase_statuses(
    vepari_id: str,
    metal_id: Optional[str] = None,
    snapshot: LedgerSnapshot = Depends(get_snapshot),
    today: date = Depends(get_today),
):
    _require_vepari(snapshot, vepari_id)
    return purchase_statuses(snapshot, vepari_id, today, metal_id)
