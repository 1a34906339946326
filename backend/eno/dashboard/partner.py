# Overview: Partner space; the signed-in partner's fees, products and movements.

from __future__ import annotations

from .partners import fee_summary
from .periods import DateRange, daily_series, filter_by_day
from .stock import product_stats


def partner_view(store, partner_id: str | None, period: DateRange | None = None) -> dict:
    """
    Fees, products and stock movements of one partner.

    Fees are filtered by operation_date and movements by created_at; with
    no partner linkage everything is empty.
    """
    if not partner_id:
        return {"fees": [], "products": [], "movements": []}

    fees = [f for f in store.partner_delivery_fees if f.get("partner_id") == partner_id]
    products = [p for p in store.products if p.get("partner_id") == partner_id]
    product_ids = {p.get("id") for p in products}
    movements = [m for m in store.stock_movements if m.get("product_id") in product_ids]
    return {
        "fees": filter_by_day(fees, "operation_date", period),
        "products": products,
        "movements": filter_by_day(movements, "created_at", period),
    }


def financial_summary(fees: list[dict]) -> dict:
    """Partner turnover, fees owed to the agency and the resulting balance."""
    summary = fee_summary(fees)
    return {
        "total_turnover": summary["turnover"],
        "total_fees": summary["delivery_fees"],
        "balance": summary["turnover"] - summary["delivery_fees"],
    }


def chart_data(fees: list[dict], period: DateRange) -> dict:
    return {
        "labels": period.labels(),
        "turnover": daily_series(fees, period, date_field="operation_date", value="turnover"),
        "delivery_fees": daily_series(fees, period, date_field="operation_date", value="total_delivery_fee"),
    }


def dashboard(store, partner_id: str | None, period: DateRange) -> dict:
    view = partner_view(store, partner_id, period)
    return {
        **view,
        "summary": financial_summary(view["fees"]),
        "product_stats": product_stats(view["products"]),
        "chart": chart_data(view["fees"], period),
    }
