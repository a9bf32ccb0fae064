"""Typed purchase and payment records.

Rows are stored flat (see ``models.Purchase``/``models.Payment``) but every
calculation runs on these variants, so a cash deal can never carry a
credit period and a regular purchase can never carry a bullion balance.
"""
from typing import Optional, Union, Literal, Annotated, Dict, Any
import datetime as dt

from pydantic import BaseModel, Field, TypeAdapter, computed_field

from models import Purchase, Payment, new_id, DEFAULT_METAL_ID

# Fields an update is never allowed to touch
IMMUTABLE_FIELDS = {"id", "vepari_id", "created_at"}


def due_date_for(date: dt.date, credit_days: Optional[int]) -> Optional[dt.date]:
    if not credit_days:
        return None
    return date + dt.timedelta(days=credit_days)


class PurchaseBase(BaseModel):
    id: str = Field(default_factory=new_id)
    vepari_id: str
    metal_id: str = DEFAULT_METAL_ID
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    item_description: Optional[str] = None
    notes: Optional[str] = None
    stone_charges: Optional[float] = Field(default=None, ge=0)


class RegularPurchase(PurchaseBase):
    purchase_type: Literal["regular"] = "regular"
    weight_grams: float = Field(gt=0)
    rate_per_gram: Optional[float] = Field(default=None, ge=0)
    credit_days: Optional[int] = Field(default=None, ge=0)
    penalty_percent_per_day: Optional[float] = Field(default=None, ge=0)

    @computed_field
    @property
    def due_date(self) -> Optional[dt.date]:
        return due_date_for(self.date, self.credit_days)


class CashPurchase(PurchaseBase):
    purchase_type: Literal["cash"] = "cash"
    total_amount: float = Field(ge=0)
    # Reference only, never part of the weight ledger
    weight_grams: Optional[float] = Field(default=None, ge=0)
    rate_per_gram: Optional[float] = Field(default=None, ge=0)
    labour_charges: Optional[float] = Field(default=None, ge=0)


class BullionPurchase(PurchaseBase):
    purchase_type: Literal["bullion"] = "bullion"
    old_gold_weight: float = Field(gt=0)
    old_gold_touch: float = Field(gt=0, le=100)
    fresh_metal_received: float = Field(ge=0)
    balance_converted_to_money: bool = False
    balance_rate: Optional[float] = Field(default=None, ge=0)
    labour_charges: Optional[float] = Field(default=None, ge=0)

    @computed_field
    @property
    def fine_gold_calculated(self) -> float:
        return round(self.old_gold_weight * self.old_gold_touch / 100, 3)

    @computed_field
    @property
    def balance_grams(self) -> float:
        # Positive: shop owes the bullion house metal. Negative: shop holds credit.
        return round(self.fresh_metal_received - self.fine_gold_calculated, 3)

    @computed_field
    @property
    def balance_cash_amount(self) -> Optional[float]:
        if not self.balance_converted_to_money:
            return None
        amount = abs(self.balance_grams) * (self.balance_rate or 0) + (self.labour_charges or 0)
        return round(amount, 2)


AnyPurchase = Union[RegularPurchase, CashPurchase, BullionPurchase]
PurchaseVariant = Annotated[
    AnyPurchase,
    Field(discriminator="purchase_type"),
]

SHARED_PURCHASE_FIELDS = set(PurchaseBase.model_fields)


class PaymentBase(BaseModel):
    id: str = Field(default_factory=new_id)
    vepari_id: str
    metal_id: str = DEFAULT_METAL_ID
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    notes: Optional[str] = None
    stone_charges_paid: Optional[float] = Field(default=None, ge=0)


class MetalPayment(PaymentBase):
    payment_type: Literal["metal"] = "metal"
    weight_grams: float = Field(ge=0)  # 0 allowed for stone-charge-only settlements
    rate_per_gram: float = Field(default=0.0, ge=0)

    @computed_field
    @property
    def amount(self) -> float:
        return self.weight_grams * self.rate_per_gram


class CashPayment(PaymentBase):
    payment_type: Literal["cash"] = "cash"
    cash_amount: float = Field(default=0.0, ge=0)
    payment_mode: Optional[str] = None


AnyPayment = Union[MetalPayment, CashPayment]
PaymentVariant = Annotated[
    AnyPayment,
    Field(discriminator="payment_type"),
]

SHARED_PAYMENT_FIELDS = set(PaymentBase.model_fields)

_purchase_adapter = TypeAdapter(PurchaseVariant)
_payment_adapter = TypeAdapter(PaymentVariant)


def parse_purchase(data: Dict[str, Any]):
    return _purchase_adapter.validate_python(data)


def parse_payment(data: Dict[str, Any]):
    return _payment_adapter.validate_python(data)


def _merge(record: BaseModel, type_key: str, shared: set, updates: Dict[str, Any]) -> Dict[str, Any]:
    updates = {k: v for k, v in updates.items() if k not in IMMUTABLE_FIELDS}
    current_type = getattr(record, type_key)
    new_type = updates.get(type_key) or current_type
    if new_type != current_type:
        # Switching type keeps only the shared fields
        merged = record.model_dump(include=shared)
    else:
        merged = record.model_dump()
    merged.update(updates)
    merged[type_key] = new_type
    return merged


def merge_purchase(purchase, updates: Dict[str, Any]):
    """Apply a partial update and re-derive due date / bullion figures."""
    return parse_purchase(_merge(purchase, "purchase_type", SHARED_PURCHASE_FIELDS, updates))


def merge_payment(payment, updates: Dict[str, Any]):
    return parse_payment(_merge(payment, "payment_type", SHARED_PAYMENT_FIELDS, updates))


def purchase_from_row(row: Purchase):
    return parse_purchase(row.model_dump(exclude_none=True))


def payment_from_row(row: Payment):
    return parse_payment(row.model_dump(exclude_none=True))


def _write_row(row, values: Dict[str, Any]):
    # Every column is rewritten, so fields of another type end up NULL
    for column in type(row).model_fields:
        if column == "id":
            continue
        setattr(row, column, values.get(column))
    return row


def purchase_to_row(purchase, row: Optional[Purchase] = None) -> Purchase:
    if row is None:
        row = Purchase(id=purchase.id, vepari_id=purchase.vepari_id, date=purchase.date)
    return _write_row(row, purchase.model_dump())


def payment_to_row(payment, row: Optional[Payment] = None) -> Payment:
    if row is None:
        row = Payment(id=payment.id, vepari_id=payment.vepari_id, date=payment.date)
    return _write_row(row, payment.model_dump())
