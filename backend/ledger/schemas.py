from typing import Optional, List, Dict
from enum import Enum
import datetime as dt

from pydantic import BaseModel

from models import Metal, Vepari
from ledger.variants import RegularPurchase


class PurchaseStatus(str, Enum):
    PAID = "paid"
    NO_CREDIT = "no-credit"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"
    NORMAL = "normal"


class FifoAllocation(BaseModel):
    purchase_id: str
    weight_grams: float
    applied_grams: float
    remaining_grams: float


class FifoResult(BaseModel):
    allocations: List[FifoAllocation] = []
    advance_grams: float = 0.0  # Paid weight left over once every purchase is settled

    def remaining_map(self) -> Dict[str, float]:
        return {a.purchase_id: a.remaining_grams for a in self.allocations}


class PurchaseStatusRow(BaseModel):
    purchase_id: str
    metal_id: str
    remaining_grams: float
    due_date: Optional[dt.date] = None
    status: PurchaseStatus


class OverdueItem(BaseModel):
    purchase: RegularPurchase
    vepari: Vepari
    metal: Metal
    remaining_grams: float
    days_overdue: int
    estimated_penalty_percent: float
    estimated_penalty_amount: float


class UpcomingDueItem(BaseModel):
    purchase: RegularPurchase
    vepari: Vepari
    metal: Metal
    remaining_grams: float
    days_until_due: int


class OverdueTotals(BaseModel):
    total_grams: float = 0.0
    total_penalty: float = 0.0
    count: int = 0


class MetalSummary(BaseModel):
    metal_id: str
    metal_name: str
    metal_symbol: str
    metal_color: str
    # Regular weight ledger
    total_purchased: float = 0.0
    total_paid: float = 0.0
    remaining_weight: float = 0.0  # Includes the unconverted bullion balance
    # Stone charges (currency)
    total_stone_charges: float = 0.0
    total_stone_charges_paid: float = 0.0
    remaining_stone_charges: float = 0.0
    # Cash deals
    cash_purchased: float = 0.0
    cash_paid: float = 0.0
    remaining_cash: float = 0.0
    # Bullion exchange
    bullion_fine_given: float = 0.0
    bullion_fresh_received: float = 0.0
    bullion_balance_grams: float = 0.0
    bullion_balance_cash: float = 0.0
    overdue_count: int = 0


class VepariSummary(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    created_at: dt.datetime
    default_credit_days: Optional[int] = None
    default_penalty_percent_per_day: Optional[float] = None

    metal_summaries: List[MetalSummary] = []
    total_purchased: float = 0.0
    total_paid: float = 0.0
    total_remaining_weight: float = 0.0
    total_stone_charges: float = 0.0
    total_stone_charges_paid: float = 0.0
    total_remaining_stone_charges: float = 0.0
    total_cash_purchased: float = 0.0
    total_cash_paid: float = 0.0
    total_remaining_cash: float = 0.0
    total_bullion_fine_given: float = 0.0
    total_bullion_fresh_received: float = 0.0
    total_bullion_balance_grams: float = 0.0
    total_bullion_balance_cash: float = 0.0
    total_overdue_count: int = 0
    last_payment_date: Optional[dt.date] = None


class MetalTotal(BaseModel):
    metal: Metal
    remaining: float = 0.0
    stone_charges: float = 0.0
    vepari_count: int = 0


class CustomerMetalSummary(BaseModel):
    metal_id: str
    metal_name: str
    metal_symbol: str
    metal_color: str
    total_grams: float = 0.0
    delivered_grams: float = 0.0
    pending_grams: float = 0.0
    total_sale_value: float = 0.0
    total_cost_value: float = 0.0
    total_making_charges: float = 0.0
    total_stone_charges: float = 0.0
    total_paid: float = 0.0
    pending_amount: float = 0.0
    gross_profit: float = 0.0


class CustomerSummary(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    created_at: dt.datetime

    metal_summaries: List[CustomerMetalSummary] = []
    total_purchase_value: float = 0.0
    total_cost_value: float = 0.0
    total_paid: float = 0.0
    total_pending: float = 0.0
    total_grams_purchased: float = 0.0
    total_grams_delivered: float = 0.0
    total_grams_pending: float = 0.0
    total_gross_profit: float = 0.0
    unallocated_paid: float = 0.0  # Payments of a customer with no purchases yet


class ProfitReport(BaseModel):
    metal_id: str
    metal_name: str
    metal_symbol: str
    total_purchased_grams: float = 0.0
    total_sold_grams: float = 0.0
    avg_buy_rate: float = 0.0
    avg_sell_rate: float = 0.0
    total_revenue: float = 0.0
    total_cost: float = 0.0
    total_making_charges: float = 0.0
    gross_profit: float = 0.0
    profit_margin_percent: float = 0.0


class ProfitOverview(BaseModel):
    reports: List[ProfitReport] = []
    total_revenue: float = 0.0
    total_cost: float = 0.0
    total_gross_profit: float = 0.0
    overall_margin_percent: float = 0.0
