from typing import List

from ledger.schemas import ProfitOverview, ProfitReport
from ledger.snapshot import LedgerSnapshot
from ledger.vepari_summary import vepari_summaries


def margin_percent(profit: float, cost: float) -> float:
    return (profit / cost) * 100 if cost > 0 else 0.0


def profit_reports(snapshot: LedgerSnapshot, today) -> List[ProfitReport]:
    """P&L per metal.

    Profit is sale rate against the purchase rate recorded on each sale,
    not against what the veparis actually charged. Vepari volume is shown
    for reference only.
    """
    summaries = vepari_summaries(snapshot, today)
    reports = []
    for metal in snapshot.sorted_metals():
        # Vepari purchases (your cost side)
        purchased_grams = sum(
            ms.total_purchased for s in summaries for ms in s.metal_summaries if ms.metal_id == metal.id
        )

        # Customer sales (your revenue)
        sales = [p for p in snapshot.customer_purchases if p.metal_id == metal.id]
        sold_grams = sum(p.weight_grams for p in sales)
        revenue = sum(p.sale_value for p in sales)
        cost = sum(p.cost_value for p in sales)
        making = sum(p.making_charges or 0 for p in sales)

        if sold_grams <= 0 and purchased_grams <= 0:
            continue

        gross_profit = revenue - cost
        reports.append(ProfitReport(
            metal_id=metal.id,
            metal_name=metal.name,
            metal_symbol=metal.symbol,
            total_purchased_grams=purchased_grams,
            total_sold_grams=sold_grams,
            avg_buy_rate=cost / sold_grams if sold_grams > 0 else 0.0,
            avg_sell_rate=(revenue - making) / sold_grams if sold_grams > 0 else 0.0,
            total_revenue=revenue,
            total_cost=cost,
            total_making_charges=making,
            gross_profit=gross_profit,
            profit_margin_percent=margin_percent(gross_profit, cost),
        ))
    return reports


def profit_overview(snapshot: LedgerSnapshot, today) -> ProfitOverview:
    reports = profit_reports(snapshot, today)
    revenue = sum(r.total_revenue for r in reports)
    cost = sum(r.total_cost for r in reports)
    profit = sum(r.gross_profit for r in reports)
    return ProfitOverview(
        reports=reports,
        total_revenue=revenue,
        total_cost=cost,
        total_gross_profit=profit,
        overall_margin_percent=margin_percent(profit, cost),
    )
