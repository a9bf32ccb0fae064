"""Due-date status and overdue penalty estimates for regular purchases."""
from typing import Iterator, List, Optional, Tuple
import datetime as dt
import os

from dotenv import load_dotenv

from models import Metal, Vepari
from ledger.fifo import remaining_grams, remaining_grams_by_metal
from ledger.schemas import (
    OverdueItem, OverdueTotals, PurchaseStatus, PurchaseStatusRow, UpcomingDueItem,
)
from ledger.snapshot import LedgerSnapshot
from ledger.variants import RegularPurchase

load_dotenv()

# Status threshold is fixed; only the upcoming report horizon is configurable
UPCOMING_STATUS_DAYS = 3
UPCOMING_DUE_DAYS = int(os.getenv("UPCOMING_DUE_DAYS", "3"))
DEFAULT_PENALTY_PERCENT_PER_DAY = 0.1


def _day(value) -> dt.date:
    # Calendar-day granularity, time of day is ignored
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def days_until(due_date, today) -> int:
    return (_day(due_date) - _day(today)).days


def purchase_status(purchase, remaining: float, today) -> PurchaseStatus:
    if remaining <= 0:
        return PurchaseStatus.PAID
    if not isinstance(purchase, RegularPurchase) or not purchase.credit_days or purchase.due_date is None:
        return PurchaseStatus.NO_CREDIT

    days = days_until(purchase.due_date, today)
    if days < 0:
        return PurchaseStatus.OVERDUE
    if days <= UPCOMING_STATUS_DAYS:
        return PurchaseStatus.UPCOMING
    return PurchaseStatus.NORMAL


def is_past_due(purchase: RegularPurchase, today) -> bool:
    return purchase.due_date is not None and days_until(purchase.due_date, today) < 0


def penalty_percent(days_overdue: int, penalty_percent_per_day: Optional[float]) -> float:
    """Simple (non-compounding) penalty; an unset rate falls back to 0.1 % a day."""
    rate = DEFAULT_PENALTY_PERCENT_PER_DAY if penalty_percent_per_day is None else penalty_percent_per_day
    return days_overdue * rate


def purchase_statuses(snapshot: LedgerSnapshot, vepari_id: str, today, metal_id: Optional[str] = None) -> List[PurchaseStatusRow]:
    if metal_id:
        remaining = remaining_grams(snapshot, vepari_id, metal_id)
    else:
        remaining = remaining_grams_by_metal(snapshot, vepari_id)
    rows = []
    for purchase in snapshot.vepari_purchases(vepari_id, metal_id):
        if not isinstance(purchase, RegularPurchase):
            continue
        left = remaining.get(purchase.id, 0.0)
        rows.append(PurchaseStatusRow(
            purchase_id=purchase.id,
            metal_id=purchase.metal_id,
            remaining_grams=left,
            due_date=purchase.due_date,
            status=purchase_status(purchase, left, today),
        ))
    return rows


def _open_credit_purchases(snapshot: LedgerSnapshot) -> Iterator[Tuple[RegularPurchase, Vepari, Metal, float]]:
    metals = snapshot.metal_map()
    for vepari in snapshot.veparis:
        remaining = remaining_grams_by_metal(snapshot, vepari.id)
        for purchase in snapshot.purchases:
            if purchase.vepari_id != vepari.id or not isinstance(purchase, RegularPurchase):
                continue
            metal = metals.get(purchase.metal_id)
            left = remaining.get(purchase.id, 0.0)
            if metal is None or left <= 0 or not purchase.credit_days or purchase.due_date is None:
                continue
            yield purchase, vepari, metal, left


def overdue_items(snapshot: LedgerSnapshot, today) -> List[OverdueItem]:
    items = []
    for purchase, vepari, metal, left in _open_credit_purchases(snapshot):
        days_overdue = -days_until(purchase.due_date, today)
        if days_overdue <= 0:
            continue
        percent = penalty_percent(days_overdue, purchase.penalty_percent_per_day)
        amount = left * purchase.rate_per_gram * percent / 100 if purchase.rate_per_gram else 0.0
        items.append(OverdueItem(
            purchase=purchase,
            vepari=vepari,
            metal=metal,
            remaining_grams=left,
            days_overdue=days_overdue,
            estimated_penalty_percent=percent,
            estimated_penalty_amount=amount,
        ))
    items.sort(key=lambda item: item.days_overdue, reverse=True)
    return items


def upcoming_due_items(snapshot: LedgerSnapshot, today, days: int = UPCOMING_DUE_DAYS) -> List[UpcomingDueItem]:
    items = []
    for purchase, vepari, metal, left in _open_credit_purchases(snapshot):
        days_until_due = days_until(purchase.due_date, today)
        if 0 <= days_until_due <= days:
            items.append(UpcomingDueItem(
                purchase=purchase,
                vepari=vepari,
                metal=metal,
                remaining_grams=left,
                days_until_due=days_until_due,
            ))
    items.sort(key=lambda item: item.days_until_due)
    return items


def overdue_totals(snapshot: LedgerSnapshot, today) -> OverdueTotals:
    items = overdue_items(snapshot, today)
    return OverdueTotals(
        total_grams=sum(i.remaining_grams for i in items),
        total_penalty=sum(i.estimated_penalty_amount for i in items),
        count=len(items),
    )
