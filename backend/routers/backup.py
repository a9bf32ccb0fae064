from fastapi import APIRouter, Depends, HTTPException, Body
from fastapi.responses import JSONResponse
from sqlmodel import Session
from database import get_session
from ledger.backup import export_snapshot, import_snapshot, SnapshotFormatError
from typing import Any, Dict
from datetime import date

router = APIRouter(prefix="/backup", tags=["backup"])

@router.get("/export")
def export_backup(session: Session = Depends(get_session)):
    data = export_snapshot(session)
    filename = f"metal-ledger-backup-{date.today().isoformat()}.json"
    return JSONResponse(
        content=data,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

@router.post("/import", response_model=Dict[str, int])
def import_backup(data: Any = Body(...), session: Session = Depends(get_session)):
    # All-or-nothing: the store is replaced only when every record is valid
    try:
        return import_snapshot(session, data)
    except SnapshotFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
