from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from database import get_session
from models import Metal, MetalCreate, MetalUpdate
from ledger import store
from typing import List

router = APIRouter(prefix="/metals", tags=["metals"])

@router.get("/", response_model=List[Metal])
def read_metals(session: Session = Depends(get_session)):
    return store.list_metals(session)

@router.post("/", response_model=Metal)
def create_metal(metal: MetalCreate, session: Session = Depends(get_session)):
    return store.add_metal(session, metal.name, metal.symbol, metal.color)

@router.patch("/{metal_id}", response_model=Metal)
def update_metal(metal_id: str, updates: MetalUpdate, session: Session = Depends(get_session)):
    metal = store.update_metal(session, metal_id, updates.model_dump(exclude_unset=True))
    if not metal:
        raise HTTPException(status_code=404, detail="Metal not found")
    return metal

@router.get("/{metal_id}/can_delete")
def can_delete_metal(metal_id: str, session: Session = Depends(get_session)):
    return {"can_delete": store.can_delete_metal(session, metal_id)}

@router.delete("/{metal_id}")
def delete_metal(metal_id: str, session: Session = Depends(get_session)):
    if not session.get(Metal, metal_id):
        raise HTTPException(status_code=404, detail="Metal not found")
    if not store.delete_metal(session, metal_id):
        raise HTTPException(status_code=400, detail="Default metals and metals with transactions cannot be deleted")
    return {"ok": True}
