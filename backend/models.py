from typing import Optional, List
from sqlmodel import Field, SQLModel
import datetime as dt
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


DEFAULT_METAL_ID = "gold"


class Metal(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)  # "gold"/"silver" for seeded metals
    name: str
    symbol: str  # Au, Ag, Pt
    color: str = Field(default="amber")  # UI colour key
    display_order: int = Field(default=0)
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    is_default: bool = Field(default=False)


def default_metals() -> List[Metal]:
    return [
        Metal(id="gold", name="Gold", symbol="Au", color="amber", display_order=1, is_default=True),
        Metal(id="silver", name="Silver", symbol="Ag", color="slate", display_order=2, is_default=True),
    ]


class Vepari(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    phone: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    default_credit_days: Optional[int] = None
    default_penalty_percent_per_day: Optional[float] = None


class Purchase(SQLModel, table=True):
    """Flat storage row for every purchase type.

    Only the columns of ``purchase_type`` are populated; the ledger works on
    the typed variants in ``ledger.variants`` and writes rows back from them.
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    vepari_id: str = Field(index=True)
    metal_id: str = Field(default=DEFAULT_METAL_ID, index=True)
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    purchase_type: str = Field(default="regular")  # regular, cash, bullion
    item_description: Optional[str] = None
    notes: Optional[str] = None
    stone_charges: Optional[float] = None

    # Regular (weight on credit); weight/rate also kept on cash deals for reference
    weight_grams: Optional[float] = None
    rate_per_gram: Optional[float] = None
    credit_days: Optional[int] = None
    penalty_percent_per_day: Optional[float] = None
    due_date: Optional[dt.date] = None

    # Cash deal
    total_amount: Optional[float] = None
    labour_charges: Optional[float] = None

    # Bullion exchange
    old_gold_weight: Optional[float] = None
    old_gold_touch: Optional[float] = None
    fine_gold_calculated: Optional[float] = None
    fresh_metal_received: Optional[float] = None
    balance_grams: Optional[float] = None
    balance_converted_to_money: Optional[bool] = None
    balance_rate: Optional[float] = None
    balance_cash_amount: Optional[float] = None


class Payment(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    vepari_id: str = Field(index=True)
    metal_id: str = Field(default=DEFAULT_METAL_ID, index=True)
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    payment_type: str = Field(default="metal")  # metal, cash
    notes: Optional[str] = None
    stone_charges_paid: Optional[float] = None

    # Metal payment
    weight_grams: Optional[float] = None
    rate_per_gram: Optional[float] = None
    amount: Optional[float] = None

    # Cash payment
    cash_amount: Optional[float] = None
    payment_mode: Optional[str] = None


class Customer(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    phone: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)


class CustomerPurchase(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    customer_id: str = Field(index=True)
    metal_id: str = Field(default=DEFAULT_METAL_ID, index=True)
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    item_description: Optional[str] = None
    weight_grams: float
    purchase_rate_per_gram: float = Field(default=0.0)  # Shop's cost
    sale_rate_per_gram: float = Field(default=0.0)  # Price charged
    making_charges: Optional[float] = None
    stone_charges: Optional[float] = None
    delivered_grams: float = Field(default=0.0)  # Only moved by delivery records
    notes: Optional[str] = None

    @property
    def sale_value(self) -> float:
        return (self.weight_grams * self.sale_rate_per_gram) + (self.making_charges or 0) + (self.stone_charges or 0)

    @property
    def cost_value(self) -> float:
        return self.weight_grams * self.purchase_rate_per_gram

    @property
    def gross_profit(self) -> float:
        return self.sale_value - self.cost_value

    @property
    def pending_grams(self) -> float:
        return self.weight_grams - (self.delivered_grams or 0)


class CustomerPayment(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    customer_id: str = Field(index=True)
    purchase_id: Optional[str] = Field(default=None, index=True)  # None = general payment
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    amount: float
    payment_mode: str = Field(default="cash")  # cash, upi, bank, cheque
    notes: Optional[str] = None


class DeliveryRecord(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    customer_id: str = Field(index=True)
    purchase_id: str = Field(index=True)
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    weight_grams: float
    notes: Optional[str] = None


# Schemas for API
class MetalCreate(SQLModel):
    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1, max_length=3)
    color: str = "amber"

class MetalUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1)
    symbol: Optional[str] = Field(default=None, min_length=1, max_length=3)
    color: Optional[str] = None
    display_order: Optional[int] = None

class VepariCreate(SQLModel):
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    default_credit_days: Optional[int] = Field(default=None, ge=0)
    default_penalty_percent_per_day: Optional[float] = Field(default=None, ge=0)

class VepariUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    default_credit_days: Optional[int] = Field(default=None, ge=0)
    default_penalty_percent_per_day: Optional[float] = Field(default=None, ge=0)

class PurchaseUpdate(SQLModel):
    purchase_type: Optional[str] = None
    metal_id: Optional[str] = None
    date: Optional[dt.date] = None
    item_description: Optional[str] = None
    notes: Optional[str] = None
    stone_charges: Optional[float] = None
    weight_grams: Optional[float] = None
    rate_per_gram: Optional[float] = None
    credit_days: Optional[int] = None
    penalty_percent_per_day: Optional[float] = None
    total_amount: Optional[float] = None
    labour_charges: Optional[float] = None
    old_gold_weight: Optional[float] = None
    old_gold_touch: Optional[float] = None
    fresh_metal_received: Optional[float] = None
    balance_converted_to_money: Optional[bool] = None
    balance_rate: Optional[float] = None

class PaymentUpdate(SQLModel):
    payment_type: Optional[str] = None
    metal_id: Optional[str] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None
    stone_charges_paid: Optional[float] = None
    weight_grams: Optional[float] = None
    rate_per_gram: Optional[float] = None
    cash_amount: Optional[float] = None
    payment_mode: Optional[str] = None

class CustomerCreate(SQLModel):
    name: str = Field(min_length=1)
    phone: Optional[str] = None

class CustomerUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None

class CustomerPurchaseCreate(SQLModel):
    customer_id: str
    metal_id: str = DEFAULT_METAL_ID
    date: dt.date
    item_description: Optional[str] = None
    weight_grams: float = Field(gt=0)
    purchase_rate_per_gram: float = Field(default=0.0, ge=0)
    sale_rate_per_gram: float = Field(default=0.0, ge=0)
    making_charges: Optional[float] = Field(default=None, ge=0)
    stone_charges: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None

class CustomerPurchaseUpdate(SQLModel):
    metal_id: Optional[str] = None
    date: Optional[dt.date] = None
    item_description: Optional[str] = None
    weight_grams: Optional[float] = Field(default=None, gt=0)
    purchase_rate_per_gram: Optional[float] = Field(default=None, ge=0)
    sale_rate_per_gram: Optional[float] = Field(default=None, ge=0)
    making_charges: Optional[float] = Field(default=None, ge=0)
    stone_charges: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None

class CustomerPaymentCreate(SQLModel):
    customer_id: str
    purchase_id: Optional[str] = None
    date: dt.date
    amount: float = Field(gt=0)
    payment_mode: str = "cash"
    notes: Optional[str] = None

class CustomerPaymentUpdate(SQLModel):
    purchase_id: Optional[str] = None
    date: Optional[dt.date] = None
    amount: Optional[float] = Field(default=None, gt=0)
    payment_mode: Optional[str] = None
    notes: Optional[str] = None

class DeliveryCreate(SQLModel):
    purchase_id: str
    date: dt.date
    weight_grams: float
    notes: Optional[str] = None
