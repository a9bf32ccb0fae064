"""Customer side: sale value, cost, profit, payments and pending delivery per metal.

A payment linked to a purchase counts towards that purchase's metal.
Unlinked payments (and payments whose purchase was deleted) are spread over
the customer's metals in proportion to sale value, so the per-metal paid
figures always add up to what the customer actually paid.
"""
from typing import Dict, List

from models import Customer, CustomerPurchase
from ledger.schemas import CustomerMetalSummary, CustomerSummary
from ledger.snapshot import LedgerSnapshot


def split_pro_rata(amount: float, weights: Dict[str, float]) -> Dict[str, float]:
    if not weights:
        return {}
    total = sum(weights.values())
    if total > 0:
        return {key: amount * value / total for key, value in weights.items()}
    # Nothing sold for a value yet: equal shares
    share = amount / len(weights)
    return {key: share for key in weights}


def _metal_figures(purchases: List[CustomerPurchase]) -> Dict[str, float]:
    return {
        "total_grams": sum(p.weight_grams for p in purchases),
        "delivered_grams": sum(p.delivered_grams or 0 for p in purchases),
        "total_sale_value": sum(p.sale_value for p in purchases),
        "total_cost_value": sum(p.cost_value for p in purchases),
        "total_making_charges": sum(p.making_charges or 0 for p in purchases),
        "total_stone_charges": sum(p.stone_charges or 0 for p in purchases),
    }


def customer_summary(snapshot: LedgerSnapshot, customer: Customer) -> CustomerSummary:
    metals = snapshot.metal_map()
    purchases = [p for p in snapshot.customer_purchases if p.customer_id == customer.id]
    payments = [p for p in snapshot.customer_payments if p.customer_id == customer.id]
    purchase_by_id = {p.id: p for p in purchases}

    by_metal: Dict[str, List[CustomerPurchase]] = {}
    for purchase in purchases:
        if purchase.metal_id in metals:
            by_metal.setdefault(purchase.metal_id, []).append(purchase)

    figures = {metal_id: _metal_figures(rows) for metal_id, rows in by_metal.items()}

    linked_paid = {metal_id: 0.0 for metal_id in by_metal}
    unlinked_paid = 0.0
    for payment in payments:
        linked = purchase_by_id.get(payment.purchase_id) if payment.purchase_id else None
        if linked is not None and linked.metal_id in linked_paid:
            linked_paid[linked.metal_id] += payment.amount
        else:
            unlinked_paid += payment.amount

    shares = split_pro_rata(unlinked_paid, {m: f["total_sale_value"] for m, f in figures.items()})

    metal_summaries = []
    for metal_id, f in figures.items():
        metal = metals[metal_id]
        paid = linked_paid[metal_id] + shares.get(metal_id, 0.0)
        metal_summaries.append(CustomerMetalSummary(
            metal_id=metal_id,
            metal_name=metal.name,
            metal_symbol=metal.symbol,
            metal_color=metal.color,
            pending_grams=f["total_grams"] - f["delivered_grams"],
            total_paid=paid,
            pending_amount=f["total_sale_value"] - paid,
            gross_profit=f["total_sale_value"] - f["total_cost_value"],
            **f,
        ))
    metal_summaries.sort(key=lambda ms: metals[ms.metal_id].display_order)

    total_purchase_value = sum(ms.total_sale_value for ms in metal_summaries)
    total_paid = sum(ms.total_paid for ms in metal_summaries)
    total_grams = sum(ms.total_grams for ms in metal_summaries)
    total_delivered = sum(ms.delivered_grams for ms in metal_summaries)

    return CustomerSummary(
        **customer.model_dump(),
        metal_summaries=metal_summaries,
        total_purchase_value=total_purchase_value,
        total_cost_value=sum(ms.total_cost_value for ms in metal_summaries),
        total_paid=total_paid,
        total_pending=total_purchase_value - total_paid,
        total_grams_purchased=total_grams,
        total_grams_delivered=total_delivered,
        total_grams_pending=total_grams - total_delivered,
        total_gross_profit=sum(ms.gross_profit for ms in metal_summaries),
        unallocated_paid=0.0 if metal_summaries else unlinked_paid,
    )


def customer_summaries(snapshot: LedgerSnapshot) -> List[CustomerSummary]:
    return [customer_summary(snapshot, customer) for customer in snapshot.customers]


def total_pending_delivery_by_metal(snapshot: LedgerSnapshot) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for summary in customer_summaries(snapshot):
        for ms in summary.metal_summaries:
            totals[ms.metal_id] = totals.get(ms.metal_id, 0.0) + ms.pending_grams
    return totals
