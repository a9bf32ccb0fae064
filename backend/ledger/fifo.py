"""FIFO settlement of metal payments against regular purchases.

Metal paid to a vepari goes into a pool (all metals, or one metal when a
filter is given) and clears the oldest purchase first, whatever purchase
the payment was meant for.
Cash deals and bullion exchanges settle separately and never enter the pool.
"""
from typing import Dict, List, Optional, Sequence

from ledger.snapshot import LedgerSnapshot
from ledger.schemas import FifoAllocation, FifoResult
from ledger.variants import RegularPurchase, MetalPayment


def fifo_order_key(purchase):
    # Same-day purchases: earlier entry first, id as a last resort
    return (purchase.date, purchase.created_at, purchase.id)


def allocate(purchases: Sequence[RegularPurchase], paid_grams: float) -> FifoResult:
    pool = paid_grams
    allocations = []
    for purchase in sorted(purchases, key=fifo_order_key):
        weight = purchase.weight_grams
        if pool >= weight:
            allocations.append(FifoAllocation(
                purchase_id=purchase.id, weight_grams=weight, applied_grams=weight, remaining_grams=0.0
            ))
            pool -= weight
        else:
            allocations.append(FifoAllocation(
                purchase_id=purchase.id, weight_grams=weight, applied_grams=pool, remaining_grams=weight - pool
            ))
            pool = 0.0
    return FifoResult(allocations=allocations, advance_grams=pool)


def regular_purchases(snapshot: LedgerSnapshot, vepari_id: str, metal_id: Optional[str] = None) -> List[RegularPurchase]:
    return [
        p for p in snapshot.purchases
        if isinstance(p, RegularPurchase) and p.vepari_id == vepari_id and (not metal_id or p.metal_id == metal_id)
    ]


def metal_payments(snapshot: LedgerSnapshot, vepari_id: str, metal_id: Optional[str] = None) -> List[MetalPayment]:
    return [
        p for p in snapshot.payments
        if isinstance(p, MetalPayment) and p.vepari_id == vepari_id and (not metal_id or p.metal_id == metal_id)
    ]


def fifo_allocation(snapshot: LedgerSnapshot, vepari_id: str, metal_id: Optional[str] = None) -> FifoResult:
    paid = sum(p.weight_grams for p in metal_payments(snapshot, vepari_id, metal_id))
    return allocate(regular_purchases(snapshot, vepari_id, metal_id), paid)


def remaining_grams(snapshot: LedgerSnapshot, vepari_id: str, metal_id: Optional[str] = None) -> Dict[str, float]:
    """Remaining weight owed per regular purchase id.

    Without ``metal_id`` all of the vepari's regular purchases and metal
    payments form a single pool, whatever their metal.
    """
    return fifo_allocation(snapshot, vepari_id, metal_id).remaining_map()


def remaining_grams_by_metal(snapshot: LedgerSnapshot, vepari_id: str) -> Dict[str, float]:
    """Like ``remaining_grams`` but every metal is settled from its own pool.

    Used for due-date reporting, where gold paid must never clear a silver purchase.
    """
    remaining = {}
    for metal_id in sorted({p.metal_id for p in regular_purchases(snapshot, vepari_id)}):
        remaining.update(remaining_grams(snapshot, vepari_id, metal_id))
    return remaining
