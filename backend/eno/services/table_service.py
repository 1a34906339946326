# Overview: Generic table access; bulk select, insert, update and delete under per-table policies.

"""
Table access invariants

- Reads a profile may not perform return no rows instead of failing,
  like row-level security: a partner simply sees nothing outside its scope.
- Writes a profile may not perform raise PermissionDeniedError.
- Partner profiles are scoped to their partner on read and write.
- stock_movements and activity_log are append-only.
- Every successful write is journaled in activity_log in the same transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..extensions import db
from ..models import (
    ActivityLogEntry,
    BankDeposit,
    Delivery,
    Document,
    Partner,
    PartnerDeliveryFee,
    Product,
    Profile,
    Salary,
    StandardOrder,
    StockMovement,
    Transaction,
)
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    columns_by_key,
    coerce_value,
    enforce_rules_activity,
    enforce_rules_bank_deposit,
    enforce_rules_delivery,
    enforce_rules_partner_fee,
    enforce_rules_product,
    enforce_rules_salary,
    enforce_rules_salary_create,
    enforce_rules_standard_order,
    enforce_rules_transaction,
    validate_payload,
)
from . import activity_service, auth_service, inventory_service, partner_service
from .permission_service import PermissionDeniedError, Viewer, viewer_for
from .realtime import ChangeEvent


MAX_SELECT_LIMIT = 10_000


@dataclass(frozen=True)
class TablePolicy:
    name: str
    model: Any
    label: str
    validation: ModelValidationPolicy
    read: tuple = ()
    insert: tuple = ()
    update: tuple = ()
    delete: tuple = ()
    rules: Callable[[dict], None] | None = None
    create_rules: Callable[[dict], None] | None = None
    # "partner": rows carry the partner scope; "owner": profiles see their own row
    scope: str | None = None
    append_only: bool = False
    stamp_user: bool = False
    default_order: str = "created_at"


TABLES: dict[str, TablePolicy] = {
    policy.name: policy
    for policy in (
        TablePolicy(
            name="partners",
            model=Partner,
            label="partner",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"id", "partner_code", "name", "email", "phone", "address", "contact_person"}),
                required_on_create=frozenset({"name"}),
            ),
            read=("VIEW_PARTNERS", "VIEW_PRODUCTS", "VIEW_ACCOUNTING"),
            insert=("MANAGE_PARTNERS",),
            update=("MANAGE_PARTNERS",),
            delete=("MANAGE_PARTNERS",),
            scope="partner",
        ),
        TablePolicy(
            name="products",
            model=Product,
            label="product",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"partner_id", "name", "stock", "alert_threshold", "price"}),
                required_on_create=frozenset({"partner_id", "name"}),
            ),
            read=("VIEW_PRODUCTS",),
            insert=("MANAGE_STOCK",),
            update=("MANAGE_STOCK",),
            delete=("MANAGE_STOCK",),
            rules=enforce_rules_product,
            scope="partner",
        ),
        TablePolicy(
            name="stock_movements",
            model=StockMovement,
            label="stock_movement",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"product_id", "type", "quantity", "new_stock", "reason"}),
                required_on_create=frozenset({"product_id", "type"}),
            ),
            read=("VIEW_PRODUCTS",),
            insert=("MANAGE_STOCK",),
            scope="partner",
            append_only=True,
        ),
        TablePolicy(
            name="deliveries",
            model=Delivery,
            label="delivery",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"partner_id", "customer_name", "address", "status", "amount"}),
            ),
            read=("VIEW_DELIVERIES",),
            insert=("MANAGE_DELIVERIES",),
            update=("MANAGE_DELIVERIES",),
            delete=("MANAGE_DELIVERIES",),
            rules=enforce_rules_delivery,
            scope="partner",
        ),
        TablePolicy(
            name="transactions",
            model=Transaction,
            label="transaction",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"type", "amount", "category", "description", "operation_date"}),
                required_on_create=frozenset({"type", "amount", "operation_date"}),
            ),
            read=("VIEW_ACCOUNTING",),
            insert=("MANAGE_ACCOUNTING",),
            update=("MANAGE_ACCOUNTING",),
            delete=("MANAGE_ACCOUNTING",),
            rules=enforce_rules_transaction,
        ),
        TablePolicy(
            name="standard_orders",
            model=StandardOrder,
            label="standard_order",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"pickup_location", "delivery_location", "delivery_amount", "operation_date"}),
                required_on_create=frozenset({"delivery_amount", "operation_date"}),
            ),
            read=("VIEW_ACCOUNTING",),
            insert=("MANAGE_ACCOUNTING",),
            update=("MANAGE_ACCOUNTING",),
            delete=("MANAGE_ACCOUNTING",),
            rules=enforce_rules_standard_order,
        ),
        TablePolicy(
            name="partner_delivery_fees",
            model=PartnerDeliveryFee,
            label="partner_fee",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({
                    "partner_id", "turnover", "total_delivery_fee", "total_packages_delivered", "operation_date",
                }),
                required_on_create=frozenset({"partner_id", "operation_date"}),
            ),
            read=("VIEW_ACCOUNTING", "VIEW_PARTNERS", "VIEW_PARTNER_SPACE"),
            insert=("MANAGE_ACCOUNTING",),
            update=("MANAGE_ACCOUNTING",),
            delete=("MANAGE_ACCOUNTING",),
            rules=enforce_rules_partner_fee,
            scope="partner",
        ),
        TablePolicy(
            name="salaries",
            model=Salary,
            label="salary",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"user_id", "beneficiary_name", "amount", "payment_date", "notes"}),
                required_on_create=frozenset({"amount", "payment_date"}),
            ),
            read=("VIEW_SALARIES",),
            insert=("MANAGE_SALARIES",),
            update=("MANAGE_SALARIES",),
            delete=("MANAGE_SALARIES",),
            rules=enforce_rules_salary,
            create_rules=enforce_rules_salary_create,
            default_order="payment_date",
        ),
        TablePolicy(
            name="bank_deposits",
            model=BankDeposit,
            label="bank_deposit",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"date", "reference", "amount", "receipt_photo_url"}),
                required_on_create=frozenset({"date", "amount"}),
            ),
            read=("VIEW_DOCUMENTS",),
            insert=("MANAGE_DOCUMENTS",),
            update=("MANAGE_DOCUMENTS",),
            delete=("DELETE_DOCUMENTS",),
            rules=enforce_rules_bank_deposit,
            stamp_user=True,
        ),
        TablePolicy(
            name="documents",
            model=Document,
            label="document",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"title", "description", "file_url", "file_type"}),
                required_on_create=frozenset({"title"}),
            ),
            read=("VIEW_DOCUMENTS",),
            insert=("MANAGE_DOCUMENTS",),
            update=("MANAGE_DOCUMENTS",),
            delete=("DELETE_DOCUMENTS",),
            stamp_user=True,
        ),
        TablePolicy(
            name="profiles",
            model=Profile,
            label="user",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"full_name", "role", "partner_id", "is_active"}),
            ),
            # Everyone reads their own profile; MANAGE_USERS lifts the owner scope
            read=(),
            update=("MANAGE_USERS",),
            delete=("MANAGE_USERS",),
            scope="owner",
        ),
        TablePolicy(
            name="activity_log",
            model=ActivityLogEntry,
            label="activity",
            validation=ModelValidationPolicy(
                writable_fields=frozenset({"action", "details"}),
                required_on_create=frozenset({"action"}),
            ),
            read=("VIEW_ACTIVITY_LOG",),
            # any signed-in profile may journal its own actions
            insert=(),
            rules=enforce_rules_activity,
            append_only=True,
        ),
    )
}


def get_policy(table: str) -> TablePolicy:
    policy = TABLES.get(table)
    if policy is None:
        raise NotFoundError(f"Unknown table: {table}")
    return policy


def can_read(viewer: Viewer, policy: TablePolicy) -> bool:
    if policy.scope == "owner":
        return True
    return viewer.can_any(policy.read)


def _partner_scope_clause(policy: TablePolicy, partner_id: str | None):
    model = policy.model
    if policy.name == "partners":
        return model.id == partner_id
    if policy.name == "stock_movements":
        product_ids = db.session.query(Product.id).filter(Product.partner_id == partner_id)
        return model.product_id.in_(product_ids)
    return model.partner_id == partner_id


def _scoped_query(policy: TablePolicy, viewer: Viewer):
    query = db.session.query(policy.model)
    if policy.scope == "partner" and viewer.is_partner:
        query = query.filter(_partner_scope_clause(policy, viewer.partner_id))
    elif policy.scope == "owner" and not viewer.can("MANAGE_USERS"):
        query = query.filter(policy.model.id == viewer.user_id)
    return query


def event_visible(viewer: Viewer, change: ChangeEvent) -> bool:
    """Same visibility rules as select(), applied to a change event."""
    policy = TABLES.get(change.table)
    if policy is None or not can_read(viewer, policy):
        return False
    if policy.scope == "partner" and viewer.is_partner:
        return viewer.partner_id is not None and change.partner_id == viewer.partner_id
    if policy.scope == "owner" and not viewer.can("MANAGE_USERS"):
        return change.owner_id == viewer.user_id
    return True


def _parse_filters(policy: TablePolicy, filters: dict | None) -> list:
    clauses = []
    if not filters:
        return clauses
    cols = columns_by_key(policy.model)
    for key, raw in filters.items():
        col = cols.get(key)
        if col is None:
            raise ValidationError(f"Unknown column: {key}")
        if raw is None or (isinstance(raw, str) and raw.lower() == "null"):
            clauses.append(getattr(policy.model, key).is_(None))
            continue
        clauses.append(getattr(policy.model, key) == coerce_value(col, raw))
    return clauses


def select(
    table: str,
    *,
    profile: Profile,
    order: str | None = None,
    desc: bool | None = None,
    limit: int | None = None,
    filters: dict | None = None,
) -> list[dict]:
    """
    Bulk read of one table, ordered (created_at ascending by default).

    Unknown tables raise NotFoundError; tables the profile may not read
    return an empty list.
    """
    policy = get_policy(table)
    viewer = viewer_for(profile)
    if not can_read(viewer, policy):
        return []

    query = _scoped_query(policy, viewer)
    for clause in _parse_filters(policy, filters):
        query = query.filter(clause)

    order_key = order or policy.default_order
    cols = columns_by_key(policy.model)
    if order_key not in cols:
        raise ValidationError(f"Unknown column: {order_key}")
    order_col = getattr(policy.model, order_key)
    id_col = policy.model.id
    if desc:
        query = query.order_by(order_col.desc(), id_col.desc())
    else:
        query = query.order_by(order_col.asc(), id_col.asc())

    if limit is not None:
        if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
            raise ValidationError("limit must be a positive integer")
        query = query.limit(min(limit, MAX_SELECT_LIMIT))

    return [row.to_dict() for row in query.all()]


def _require_write(viewer: Viewer, policy: TablePolicy, codes: tuple, verb: str) -> None:
    if policy.append_only and verb != "insert":
        raise PermissionDeniedError(f"{policy.name} is append-only")
    if codes and not viewer.can_any(codes):
        raise PermissionDeniedError(f"Not allowed to {verb} {policy.name}")
    if not codes and verb != "insert":
        raise PermissionDeniedError(f"Not allowed to {verb} {policy.name}")


def _check_partner_write(viewer: Viewer, policy: TablePolicy, partner_id) -> None:
    if policy.scope == "partner" and viewer.is_partner and partner_id != viewer.partner_id:
        raise PermissionDeniedError("Partners can only write their own rows")


def _check_partner_reference(partner_id) -> None:
    if partner_id and db.session.get(Partner, partner_id) is None:
        raise ValidationError("partner_id must reference an existing partner")


def _load_visible(policy: TablePolicy, viewer: Viewer, row_id: str):
    row = _scoped_query(policy, viewer).filter(policy.model.id == row_id).first()
    if row is None:
        raise NotFoundError(f"{policy.label} not found")
    return row


def _journal(profile: Profile, policy: TablePolicy, verb: str, row: dict, extra: dict | None = None) -> None:
    details = {"table": policy.name, "id": row.get("id")}
    label = activity_service.row_label(row)
    if label:
        details["name"] = label
    if extra:
        details.update(extra)
    activity_service.log_activity(actor=profile, action=f"{policy.label}_{verb}", details=details)


def insert(table: str, *, profile: Profile, payload: dict) -> dict:
    """Insert one row and return it as stored."""
    policy = get_policy(table)
    viewer = viewer_for(profile)
    _require_write(viewer, policy, policy.insert, "insert")

    if policy.name == "stock_movements":
        payload = dict(payload or {})
        unknown = sorted(set(payload) - policy.validation.writable_fields)
        if unknown:
            raise ValidationError(f"Field not allowed: {unknown[0]}")
        return inventory_service.record_stock_movement(
            actor=profile,
            product_id=payload.get("product_id"),
            type=payload.get("type"),
            quantity=payload.get("quantity"),
            new_stock=payload.get("new_stock"),
            reason=payload.get("reason"),
        )

    if policy.name == "profiles":
        raise PermissionDeniedError("Accounts are created by sign-up or invitation")

    patch = validate_payload(model=policy.model, payload=payload, policy=policy.validation, partial=False)
    if policy.rules:
        policy.rules(patch)
    if policy.create_rules:
        policy.create_rules(patch)

    if policy.name == "partners":
        if viewer.is_partner:
            raise PermissionDeniedError("Partners cannot create partners")
        row = partner_service.create_partner(actor=profile, patch=patch)
        db.session.commit()
        return row.to_dict()

    if policy.name == "products":
        row = inventory_service.create_product(actor=profile, patch=patch)
        db.session.commit()
        return row.to_dict()

    if policy.name == "activity_log":
        row = activity_service.log_activity(actor=profile, action=patch["action"], details=patch.get("details"))
        db.session.commit()
        return row.to_dict()

    if policy.scope == "partner":
        _check_partner_write(viewer, policy, patch.get("partner_id"))
        _check_partner_reference(patch.get("partner_id"))
    if policy.stamp_user:
        patch["user_id"] = profile.id

    row = policy.model(**patch)
    db.session.add(row)
    db.session.flush()
    data = row.to_dict()
    _journal(profile, policy, "created", data)
    db.session.commit()
    return row.to_dict()


def update(table: str, *, profile: Profile, row_id: str, payload: dict) -> dict:
    """Apply a partial update and return the stored row."""
    policy = get_policy(table)
    viewer = viewer_for(profile)
    _require_write(viewer, policy, policy.update, "update")

    if isinstance(payload, dict) and "id" in payload and payload["id"] != row_id:
        raise ValidationError("id cannot be changed")
    payload = {k: v for k, v in (payload or {}).items() if k != "id"}
    patch = validate_payload(model=policy.model, payload=payload, policy=policy.validation, partial=True)
    if not patch:
        raise ValidationError("Nothing to update")
    if policy.rules:
        policy.rules(patch)

    row = _load_visible(policy, viewer, row_id)

    if policy.name == "products":
        inventory_service.update_product(actor=profile, product=row, patch=patch)
    elif policy.name == "partners":
        if "partner_code" in patch:
            partner_service.change_partner_code(row, patch.pop("partner_code"))
        for key, value in patch.items():
            setattr(row, key, value)
    elif policy.name == "profiles":
        auth_service.apply_profile_changes(row, patch)
        if row.id == profile.id and (patch.get("is_active") is False or patch["role"] != row.role):
            raise ValidationError("You cannot change your own role or deactivate yourself")
        for key, value in patch.items():
            setattr(row, key, value)
    else:
        if policy.scope == "partner" and "partner_id" in patch:
            _check_partner_write(viewer, policy, patch["partner_id"])
            _check_partner_reference(patch["partner_id"])
        if policy.create_rules:
            merged = {**row.to_dict(), **patch}
            policy.create_rules(merged)
        for key, value in patch.items():
            setattr(row, key, value)

    db.session.flush()
    data = row.to_dict()
    _journal(profile, policy, "updated", data, {"fields": sorted(payload)})
    db.session.commit()
    return row.to_dict()


def delete(table: str, *, profile: Profile, row_id: str) -> None:
    policy = get_policy(table)
    viewer = viewer_for(profile)
    _require_write(viewer, policy, policy.delete, "delete")

    if policy.name == "partners":
        _load_visible(policy, viewer, row_id)
        partner_service.delete_partner_and_dependents(actor=profile, partner_id=row_id)
        return
    if policy.name == "profiles":
        auth_service.delete_user(actor=profile, user_id=row_id)
        return

    row = _load_visible(policy, viewer, row_id)
    data = row.to_dict()
    if policy.name == "products":
        inventory_service.delete_product(actor=profile, product=row)
    else:
        db.session.delete(row)
    _journal(profile, policy, "deleted", data)
    db.session.commit()
