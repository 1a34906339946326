from __future__ import annotations
from datetime import date, datetime
from eno.time_utils import parse_iso_datetime, parse_business_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Upper bound for any money amount (FCFA); keeps typos like 1e12 out of the books
MAX_AMOUNT = 999_999_999_999

STOCK_MOVEMENT_TYPES = {"in", "out", "adjustment"}
TRANSACTION_TYPES = {"income", "expense"}
DELIVERY_STATUSES = {"pending", "in_progress", "delivered", "cancelled"}


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate partner code)."""


class NotFoundError(LookupError):
    """404-level: unknown table, row or procedure."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for inserts
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


def columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Amounts: forms send numbers or numeric strings
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip().replace(",", "."))
            except ValueError:
                raise ValidationError(f"{col.key} must be a number")
        raise ValidationError(f"{col.key} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Business dates (YYYY-MM-DD)
    if isinstance(coltype, Date):
        if isinstance(value, (date, str)):
            try:
                d = parse_business_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a YYYY-MM-DD date")
            if d is None:
                raise ValidationError(f"{col.key} must be a YYYY-MM-DD date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, JSON):
        if isinstance(value, (dict, list)):
            return value
        raise ValidationError(f"{col.key} must be an object or a list")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes an incoming row against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: insert semantics (enforce required_on_create)
    partial=True: update semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_amount(patch: dict, field: str, *, allow_zero: bool = True) -> None:
    if field not in patch or patch[field] is None:
        return
    amount = patch[field]
    if amount < 0 or (not allow_zero and amount == 0):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in ("stock", "alert_threshold"):
        if field in patch and patch[field] is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")
    _check_amount(patch, "price")


def enforce_rules_transaction(patch: dict) -> None:
    if "type" in patch and patch["type"] not in TRANSACTION_TYPES:
        raise ValidationError("type must be income or expense")
    _check_amount(patch, "amount", allow_zero=False)


def enforce_rules_standard_order(patch: dict) -> None:
    _check_amount(patch, "delivery_amount")


def enforce_rules_partner_fee(patch: dict) -> None:
    _check_amount(patch, "turnover")
    _check_amount(patch, "total_delivery_fee")
    packages = patch.get("total_packages_delivered")
    if packages is not None and packages < 0:
        raise ValidationError("total_packages_delivered must be >= 0")


def enforce_rules_salary(patch: dict) -> None:
    _check_amount(patch, "amount", allow_zero=False)


def enforce_rules_delivery(patch: dict) -> None:
    if "status" in patch and patch["status"] not in DELIVERY_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(DELIVERY_STATUSES))}")
    _check_amount(patch, "amount")


def enforce_rules_bank_deposit(patch: dict) -> None:
    _check_amount(patch, "amount", allow_zero=False)


def enforce_rules_salary_create(patch: dict) -> None:
    if not patch.get("user_id") and not patch.get("beneficiary_name"):
        raise ValidationError("Either user_id or beneficiary_name is required")


def enforce_rules_activity(patch: dict) -> None:
    if "details" in patch and patch["details"] is not None and not isinstance(patch["details"], dict):
        raise ValidationError("details must be an object")
