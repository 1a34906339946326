# Overview: CEO dashboard; global statistics and chart series for a date range.

from __future__ import annotations

from .accounting import financial_summary
from .partners import partner_name
from .periods import DateRange, amount, daily_series
from .stock import low_stock_products


def total_deliveries(partner_delivery_fees: list[dict], standard_orders: list[dict]) -> int:
    """Partner packages delivered plus one per standard order."""
    packages = sum(amount(f.get("total_packages_delivered")) for f in partner_delivery_fees)
    return int(packages) + len(standard_orders)


def global_stats(store) -> dict:
    """All-time figures across every synchronized collection."""
    summary = financial_summary(
        partner_delivery_fees=store.partner_delivery_fees,
        standard_orders=store.standard_orders,
        transactions=store.transactions,
        salaries=store.salaries,
    )
    products = store.products
    return {
        "total_product_types": len(products),
        "total_partners": len(store.partners),
        "total_deliveries": total_deliveries(store.partner_delivery_fees, store.standard_orders),
        "total_turnover": summary.turnover,
        "total_net_profit": summary.net_profit,
        "low_stock_products": len(low_stock_products(products)),
    }


def _revenue(row: dict) -> float:
    for key in ("delivery_amount", "total_delivery_fee", "amount"):
        if row.get(key) not in (None, ""):
            return amount(row.get(key))
    return 0.0


def chart_data(store, period: DateRange) -> dict:
    """
    Three series over period:
    - turnover: daily standard orders + partner fees + income transactions
    - partner_fees: delivery fees summed per partner name
    - expenses: expense transactions summed per category
    """
    incomes = [t for t in store.transactions if t.get("type") == "income"]
    revenue_rows = [*store.standard_orders, *store.partner_delivery_fees, *incomes]
    turnover = daily_series(revenue_rows, period, date_field="operation_date", value=_revenue)

    partners = store.partners
    fees_by_partner: dict[str, float] = {}
    for fee in store.partner_delivery_fees:
        if not period.contains(fee.get("operation_date")):
            continue
        name = partner_name(partners, fee.get("partner_id"))
        fees_by_partner[name] = fees_by_partner.get(name, 0.0) + amount(fee.get("total_delivery_fee"))

    expenses: dict[str, float] = {}
    for trans in store.transactions:
        if trans.get("type") != "expense" or not period.contains(trans.get("operation_date")):
            continue
        category = trans.get("category") or "Non Catégorisé"
        expenses[category] = expenses.get(category, 0.0) + amount(trans.get("amount"))

    return {
        "turnover": {"labels": period.labels(), "data": turnover},
        "partner_fees": {"labels": list(fees_by_partner), "data": list(fees_by_partner.values())},
        "expenses": {"labels": list(expenses), "data": list(expenses.values())},
    }
