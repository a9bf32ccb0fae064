from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from ledger.customer_summary import customer_summaries, total_pending_delivery_by_metal
from ledger.due import overdue_items, overdue_totals, upcoming_due_items, UPCOMING_DUE_DAYS
from ledger.profit import profit_overview
from ledger.schemas import OverdueItem, OverdueTotals, UpcomingDueItem, MetalTotal, ProfitOverview
from ledger.snapshot import LedgerSnapshot
from ledger.vepari_summary import metal_totals, vepari_summaries
from routers.deps import get_snapshot, get_today
from typing import List, Dict, Any
from datetime import date
import io
import csv

router = APIRouter(prefix="/reports", tags=["Reports"])

@router.get("/overdue", response_model=List[OverdueItem])
def get_overdue(snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    """Overdue regular purchases, longest overdue first."""
    return overdue_items(snapshot, today)

@router.get("/overdue/totals", response_model=OverdueTotals)
def get_overdue_totals(snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    return overdue_totals(snapshot, today)

@router.get("/upcoming", response_model=List[UpcomingDueItem])
def get_upcoming(days: int = UPCOMING_DUE_DAYS, snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    return upcoming_due_items(snapshot, today, days)

@router.get("/metals", response_model=List[MetalTotal])
def get_metal_totals(snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    return metal_totals(snapshot, today)

@router.get("/pending_delivery", response_model=Dict[str, float])
def get_pending_delivery(snapshot: LedgerSnapshot = Depends(get_snapshot)):
    return total_pending_delivery_by_metal(snapshot)

@router.get("/profit", response_model=ProfitOverview)
def get_profit(snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    return profit_overview(snapshot, today)

@router.get("/profit/export")
def export_profit(snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    overview = profit_overview(snapshot, today)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['Metal', 'Purchased (g)', 'Sold (g)', 'Avg Buy Rate', 'Avg Sell Rate', 'Revenue', 'Cost', 'Making', 'Gross Profit', 'Margin %'])
    for r in overview.reports:
        writer.writerow([
            r.metal_name,
            f"{r.total_purchased_grams:.3f}", f"{r.total_sold_grams:.3f}",
            f"{r.avg_buy_rate:.2f}", f"{r.avg_sell_rate:.2f}",
            f"{r.total_revenue:.2f}", f"{r.total_cost:.2f}", f"{r.total_making_charges:.2f}",
            f"{r.gross_profit:.2f}", f"{r.profit_margin_percent:.2f}",
        ])
    writer.writerow([
        'Total', '', '', '', '',
        f"{overview.total_revenue:.2f}", f"{overview.total_cost:.2f}", '',
        f"{overview.total_gross_profit:.2f}", f"{overview.overall_margin_percent:.2f}",
    ])
    output.seek(0)

    filename = f"profit_report_{today.strftime('%Y%m%d')}.csv"
    return StreamingResponse(
        io.BytesIO(output.getvalue().encode()),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

@router.get("/dashboard", response_model=Dict[str, Any])
def get_dashboard(snapshot: LedgerSnapshot = Depends(get_snapshot), today: date = Depends(get_today)):
    veparis = vepari_summaries(snapshot, today)
    customers = customer_summaries(snapshot)
    overdue = overdue_totals(snapshot, today)

    return {
        "total_remaining_weight": sum(v.total_remaining_weight for v in veparis),
        "total_remaining_stone_charges": sum(v.total_remaining_stone_charges for v in veparis),
        "total_remaining_cash": sum(v.total_remaining_cash for v in veparis),
        "total_receivable": sum(c.total_pending for c in customers),
        "total_pending_delivery": sum(c.total_grams_pending for c in customers),
        "overdue_count": overdue.count,
        "overdue_grams": overdue.total_grams,
        "overdue_penalty": overdue.total_penalty,
        "upcoming_count": len(upcoming_due_items(snapshot, today)),
    }
