# Overview: Salary page; payment form validation and the period summary.

from __future__ import annotations

from .accounting import financial_summary
from .forms import FormValidationError
from .periods import DateRange, filter_by_day, to_day

MISSING_FIELDS_MESSAGE = (
    "Veuillez sélectionner un employé ou saisir un nom, et remplir tous les champs obligatoires"
)


def validate_salary_form(form: dict) -> dict:
    """Salary form to an insert payload; needs an employee or a beneficiary name, an amount and a date."""
    user_id = form.get("user_id") or None
    beneficiary = (form.get("beneficiary_name") or "").strip()
    if (not user_id and not beneficiary) or form.get("amount") in (None, "") or not form.get("payment_date"):
        raise FormValidationError(MISSING_FIELDS_MESSAGE)
    try:
        value = float(form["amount"])
    except (TypeError, ValueError):
        raise FormValidationError("amount must be a number", field="amount")
    if value <= 0:
        raise FormValidationError("amount must be positive", field="amount")
    day = to_day(form["payment_date"])
    if day is None:
        raise FormValidationError("payment_date must be a date", field="payment_date")

    payload = {"user_id": user_id, "amount": value, "payment_date": day.isoformat()}
    if beneficiary:
        payload["beneficiary_name"] = beneficiary
    notes = (form.get("notes") or "").strip()
    if notes:
        payload["notes"] = notes
    return payload


def salaries_in_period(salaries: list[dict], period: DateRange | None) -> list[dict]:
    return filter_by_day(salaries, "payment_date", period)


def period_summary(store, period: DateRange | None) -> dict:
    summary = financial_summary(
        partner_delivery_fees=store.partner_delivery_fees,
        standard_orders=store.standard_orders,
        transactions=store.transactions,
        salaries=store.salaries,
        period=period,
    )
    return {
        "salaries": salaries_in_period(store.salaries, period),
        "total_salaries": summary.salaries,
        "turnover": summary.turnover,
        "net_profit": summary.net_profit,
    }
