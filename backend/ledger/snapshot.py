from dataclasses import dataclass, field
from typing import List, Dict, Optional
from sqlmodel import Session, select

from models import (
    Metal, Vepari, Purchase, Payment, Customer,
    CustomerPurchase, CustomerPayment, DeliveryRecord,
)
from ledger.variants import purchase_from_row, payment_from_row


@dataclass
class LedgerSnapshot:
    """Every record of the ledger, held in memory for one computation."""
    metals: List[Metal] = field(default_factory=list)
    veparis: List[Vepari] = field(default_factory=list)
    purchases: List = field(default_factory=list)  # PurchaseVariant
    payments: List = field(default_factory=list)  # PaymentVariant
    customers: List[Customer] = field(default_factory=list)
    customer_purchases: List[CustomerPurchase] = field(default_factory=list)
    customer_payments: List[CustomerPayment] = field(default_factory=list)
    deliveries: List[DeliveryRecord] = field(default_factory=list)

    def metal_map(self) -> Dict[str, Metal]:
        return {m.id: m for m in self.metals}

    def sorted_metals(self) -> List[Metal]:
        return sorted(self.metals, key=lambda m: m.display_order)

    def metal_order(self, metal_id: str) -> int:
        metal = self.metal_map().get(metal_id)
        return metal.display_order if metal else 0

    def vepari(self, vepari_id: str) -> Optional[Vepari]:
        return next((v for v in self.veparis if v.id == vepari_id), None)

    def customer(self, customer_id: str) -> Optional[Customer]:
        return next((c for c in self.customers if c.id == customer_id), None)

    def vepari_purchases(self, vepari_id: str, metal_id: Optional[str] = None) -> List:
        """Purchases of one vepari, newest first."""
        rows = [p for p in self.purchases if p.vepari_id == vepari_id and (not metal_id or p.metal_id == metal_id)]
        return sorted(rows, key=lambda p: (p.date, p.created_at), reverse=True)

    def vepari_payments(self, vepari_id: str, metal_id: Optional[str] = None) -> List:
        rows = [p for p in self.payments if p.vepari_id == vepari_id and (not metal_id or p.metal_id == metal_id)]
        return sorted(rows, key=lambda p: (p.date, p.created_at), reverse=True)

    def customer_purchase_list(self, customer_id: str, metal_id: Optional[str] = None) -> List[CustomerPurchase]:
        rows = [p for p in self.customer_purchases if p.customer_id == customer_id and (not metal_id or p.metal_id == metal_id)]
        return sorted(rows, key=lambda p: (p.date, p.created_at), reverse=True)

    def customer_payment_list(self, customer_id: str) -> List[CustomerPayment]:
        rows = [p for p in self.customer_payments if p.customer_id == customer_id]
        return sorted(rows, key=lambda p: (p.date, p.created_at), reverse=True)

    def delivery_history(self, customer_id: str, purchase_id: Optional[str] = None) -> List[DeliveryRecord]:
        rows = [d for d in self.deliveries if d.customer_id == customer_id and (not purchase_id or d.purchase_id == purchase_id)]
        return sorted(rows, key=lambda d: (d.date, d.created_at), reverse=True)


def load_snapshot(session: Session) -> LedgerSnapshot:
    return LedgerSnapshot(
        metals=list(session.exec(select(Metal)).all()),
        veparis=list(session.exec(select(Vepari)).all()),
        purchases=[purchase_from_row(p) for p in session.exec(select(Purchase)).all()],
        payments=[payment_from_row(p) for p in session.exec(select(Payment)).all()],
        customers=list(session.exec(select(Customer)).all()),
        customer_purchases=list(session.exec(select(CustomerPurchase)).all()),
        customer_payments=list(session.exec(select(CustomerPayment)).all()),
        deliveries=list(session.exec(select(DeliveryRecord)).all()),
    )
