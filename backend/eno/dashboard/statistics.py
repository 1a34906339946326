# Overview: Statistics page series; daily turnover, expenses and outgoing stock movements.

from __future__ import annotations

from .periods import DateRange, amount, daily_series


def chart_data(store, period: DateRange) -> dict:
    """Series are bucketed by each row's created_at day."""

    def revenue(row: dict) -> float:
        return amount(row.get("delivery_amount") or row.get("total_delivery_fee"))

    revenue_rows = [*store.standard_orders, *store.partner_delivery_fees]
    expenses = [t for t in store.transactions if t.get("type") == "expense"]
    outgoing = [m for m in store.stock_movements if m.get("type") == "out"]
    return {
        "labels": period.labels(),
        "turnover": daily_series(revenue_rows, period, date_field="created_at", value=revenue),
        "expenses": daily_series(expenses, period, date_field="created_at", value="amount"),
        "deliveries": daily_series(outgoing, period, date_field="created_at", value=lambda row: 1),
    }
