from typing import Dict, List

from models import Metal, Vepari
from ledger.due import is_past_due
from ledger.fifo import remaining_grams
from ledger.schemas import MetalSummary, MetalTotal, VepariSummary
from ledger.snapshot import LedgerSnapshot
from ledger.variants import (
    RegularPurchase, CashPurchase, BullionPurchase, MetalPayment, CashPayment,
)

# MetalSummary fields rolled up into the vepari-wide totals
_TOTALS = {
    "total_purchased": "total_purchased",
    "total_paid": "total_paid",
    "total_remaining_weight": "remaining_weight",
    "total_stone_charges": "total_stone_charges",
    "total_stone_charges_paid": "total_stone_charges_paid",
    "total_remaining_stone_charges": "remaining_stone_charges",
    "total_cash_purchased": "cash_purchased",
    "total_cash_paid": "cash_paid",
    "total_remaining_cash": "remaining_cash",
    "total_bullion_fine_given": "bullion_fine_given",
    "total_bullion_fresh_received": "bullion_fresh_received",
    "total_bullion_balance_grams": "bullion_balance_grams",
    "total_bullion_balance_cash": "bullion_balance_cash",
    "total_overdue_count": "overdue_count",
}


def metal_summary(metal: Metal, purchases: List, payments: List, remaining: Dict[str, float], today) -> MetalSummary:
    purchased = paid = 0.0
    stone_charges = stone_charges_paid = 0.0
    cash_purchased = cash_paid = 0.0
    fine_given = fresh_received = balance_grams = balance_cash = 0.0
    overdue_count = 0

    for purchase in purchases:
        stone_charges += purchase.stone_charges or 0
        if isinstance(purchase, RegularPurchase):
            purchased += purchase.weight_grams
            if remaining.get(purchase.id, 0) > 0 and is_past_due(purchase, today):
                overdue_count += 1
        elif isinstance(purchase, CashPurchase):
            cash_purchased += purchase.total_amount
        elif isinstance(purchase, BullionPurchase):
            fine_given += purchase.fine_gold_calculated
            fresh_received += purchase.fresh_metal_received
            if purchase.balance_converted_to_money:
                balance_cash += purchase.balance_cash_amount or 0
            else:
                balance_grams += purchase.balance_grams
        else:
            raise TypeError(f"Unknown purchase type: {type(purchase).__name__}")

    for payment in payments:
        # Stone debt can be cleared by either payment type
        stone_charges_paid += payment.stone_charges_paid or 0
        if isinstance(payment, MetalPayment):
            paid += payment.weight_grams
        elif isinstance(payment, CashPayment):
            cash_paid += payment.cash_amount
        else:
            raise TypeError(f"Unknown payment type: {type(payment).__name__}")

    return MetalSummary(
        metal_id=metal.id,
        metal_name=metal.name,
        metal_symbol=metal.symbol,
        metal_color=metal.color,
        total_purchased=purchased,
        total_paid=paid,
        # Bullion debt shares the weight figure with regular purchases
        remaining_weight=purchased - paid + balance_grams,
        total_stone_charges=stone_charges,
        total_stone_charges_paid=stone_charges_paid,
        remaining_stone_charges=stone_charges - stone_charges_paid,
        cash_purchased=cash_purchased,
        cash_paid=cash_paid,
        remaining_cash=cash_purchased - cash_paid,
        bullion_fine_given=fine_given,
        bullion_fresh_received=fresh_received,
        bullion_balance_grams=balance_grams,
        bullion_balance_cash=balance_cash,
        overdue_count=overdue_count,
    )


def vepari_summary(snapshot: LedgerSnapshot, vepari: Vepari, today) -> VepariSummary:
    metals = snapshot.metal_map()
    purchases = [p for p in snapshot.purchases if p.vepari_id == vepari.id]
    payments = [p for p in snapshot.payments if p.vepari_id == vepari.id]

    # Unique metals in first-seen order, dangling metal ids dropped
    metal_ids = list(dict.fromkeys([p.metal_id for p in purchases] + [p.metal_id for p in payments]))
    metal_summaries = []
    for metal_id in metal_ids:
        metal = metals.get(metal_id)
        if metal is None:
            continue
        metal_summaries.append(metal_summary(
            metal,
            [p for p in purchases if p.metal_id == metal_id],
            [p for p in payments if p.metal_id == metal_id],
            remaining_grams(snapshot, vepari.id, metal_id),
            today,
        ))
    metal_summaries.sort(key=lambda ms: metals[ms.metal_id].display_order)

    totals = {
        total: sum(getattr(ms, field) for ms in metal_summaries)
        for total, field in _TOTALS.items()
    }
    last_payment_date = max((p.date for p in payments), default=None)

    return VepariSummary(
        **vepari.model_dump(),
        metal_summaries=metal_summaries,
        last_payment_date=last_payment_date,
        **totals,
    )


def vepari_summaries(snapshot: LedgerSnapshot, today) -> List[VepariSummary]:
    return [vepari_summary(snapshot, vepari, today) for vepari in snapshot.veparis]


def metal_totals(snapshot: LedgerSnapshot, today) -> List[MetalTotal]:
    """Outstanding weight and stone charges per metal across all veparis."""
    totals: Dict[str, MetalTotal] = {}
    metals = snapshot.metal_map()
    for summary in vepari_summaries(snapshot, today):
        for ms in summary.metal_summaries:
            if ms.metal_id not in totals:
                totals[ms.metal_id] = MetalTotal(metal=metals[ms.metal_id])
            entry = totals[ms.metal_id]
            entry.remaining += ms.remaining_weight
            entry.stone_charges += ms.remaining_stone_charges
            if ms.remaining_weight > 0 or ms.remaining_stone_charges > 0:
                entry.vepari_count += 1

    return [totals[m.id] for m in snapshot.sorted_metals() if m.id in totals]


def total_remaining_by_metal(snapshot: LedgerSnapshot, today) -> Dict[str, float]:
    return {entry.metal.id: entry.remaining for entry in metal_totals(snapshot, today)}
