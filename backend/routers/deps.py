from datetime import date
from fastapi import Depends
from sqlmodel import Session

from database import get_session
from ledger.snapshot import LedgerSnapshot, load_snapshot


def get_today() -> date:
    return date.today()


def get_snapshot(session: Session = Depends(get_session)) -> LedgerSnapshot:
    # Fresh snapshot per request, every figure is recomputed from the records
    return load_snapshot(session)
