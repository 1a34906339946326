# Overview: Financial summary over the synchronized accounting collections.

from __future__ import annotations

from dataclasses import asdict, dataclass

from .periods import DateRange, amount, filter_by_day


@dataclass
class FinancialSummary:
    partner_fees: float
    standard_orders: float
    other_incomes: float
    expenses: float
    salaries: float

    @property
    def turnover(self) -> float:
        return self.partner_fees + self.standard_orders + self.other_incomes

    @property
    def deductions(self) -> float:
        return self.expenses + self.salaries

    @property
    def net_profit(self) -> float:
        return self.turnover - self.deductions

    def to_dict(self) -> dict:
        body = asdict(self)
        body.update(turnover=self.turnover, deductions=self.deductions, net_profit=self.net_profit)
        return body


def filter_accounting(
    *,
    partner_delivery_fees: list[dict],
    standard_orders: list[dict],
    transactions: list[dict],
    salaries: list[dict],
    period: DateRange | None,
) -> dict[str, list[dict]]:
    """Accounting rows inside period: operation_date, salaries by payment_date."""
    return {
        "partner_delivery_fees": filter_by_day(partner_delivery_fees, "operation_date", period),
        "standard_orders": filter_by_day(standard_orders, "operation_date", period),
        "transactions": filter_by_day(transactions, "operation_date", period),
        "salaries": filter_by_day(salaries, "payment_date", period),
    }


def financial_summary(
    *,
    partner_delivery_fees: list[dict],
    standard_orders: list[dict],
    transactions: list[dict],
    salaries: list[dict],
    period: DateRange | None = None,
) -> FinancialSummary:
    """
    turnover = partner delivery fees + standard orders + income transactions
    deductions = expense transactions + salaries
    net profit = turnover - deductions
    """
    rows = filter_accounting(
        partner_delivery_fees=partner_delivery_fees,
        standard_orders=standard_orders,
        transactions=transactions,
        salaries=salaries,
        period=period,
    )
    trans = rows["transactions"]
    return FinancialSummary(
        partner_fees=sum(amount(f.get("total_delivery_fee")) for f in rows["partner_delivery_fees"]),
        standard_orders=sum(amount(o.get("delivery_amount")) for o in rows["standard_orders"]),
        other_incomes=sum(amount(t.get("amount")) for t in trans if t.get("type") == "income"),
        expenses=sum(amount(t.get("amount")) for t in trans if t.get("type") == "expense"),
        salaries=sum(amount(s.get("amount")) for s in rows["salaries"]),
    )


def summary_from_store(store, period: DateRange | None = None) -> FinancialSummary:
    return financial_summary(
        partner_delivery_fees=store.partner_delivery_fees,
        standard_orders=store.standard_orders,
        transactions=store.transactions,
        salaries=store.salaries,
        period=period,
    )
