# Overview: Service-layer operations for stock; the only code path that changes products.stock.

from __future__ import annotations

from ..extensions import db
from ..models import Partner, Product, Profile, StockMovement
from ..permissions import Role
from ..validation import (
    STOCK_MOVEMENT_TYPES,
    ConflictError,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
)
from . import activity_service
from .concurrency import lock_for_update, run_with_retry
from .permission_service import PermissionDeniedError, require_permission

"""
Stock invariants (authoritative)

- products.stock changes only together with an appended StockMovement.
- new_stock = previous_stock + quantity for "in", - quantity for "out";
  "adjustment" sets an absolute level and quantity is the distance moved.
- Stock never goes negative.
- Movements are append-only.
"""

INITIAL_STOCK_REASON = "Stock initial"
MANUAL_CORRECTION_REASON = "Correction manuelle"


def _check_partner_scope(actor: Profile | None, partner_id: str | None) -> None:
    if actor is not None and actor.role == Role.PARTNER.value and partner_id != actor.partner_id:
        raise PermissionDeniedError("Partners can only manage their own products")


def _require_partner(partner_id) -> None:
    if not partner_id or db.session.get(Partner, partner_id) is None:
        raise ValidationError("partner_id must reference an existing partner")


def _parse_quantity(value, field: str = "quantity") -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if not number.is_integer():
        raise ValidationError(f"{field} must be an integer")
    return int(number)


def compute_new_stock(previous: int, movement_type: str, quantity: int) -> int:
    if movement_type == "in":
        return previous + quantity
    if movement_type == "out":
        return previous - quantity
    raise ValidationError("type must be in or out")


def _append_movement(
    product: Product,
    *,
    movement_type: str,
    quantity: int,
    new_stock: int,
    reason: str | None,
    actor: Profile | None,
) -> StockMovement:
    if new_stock < 0:
        raise ConflictError(
            f"Insufficient stock for {product.name}: {product.stock} available, {quantity} requested"
        )
    movement = StockMovement(
        product=product,
        type=movement_type,
        quantity=quantity,
        previous_stock=product.stock,
        new_stock=new_stock,
        reason=(reason or "").strip() or None,
        user_id=actor.id if actor is not None else None,
    )
    product.stock = new_stock
    db.session.add(movement)
    return movement


def set_stock_level(product: Product, target: int, *, actor: Profile | None, reason: str | None) -> StockMovement | None:
    """Stage an adjustment movement to an absolute level; None when nothing moves."""
    if target < 0:
        raise ValidationError("stock must be >= 0")
    if target == product.stock:
        return None
    return _append_movement(
        product,
        movement_type="adjustment",
        quantity=abs(target - product.stock),
        new_stock=target,
        reason=reason,
        actor=actor,
    )


def create_product(*, actor: Profile, patch: dict) -> Product:
    """Stage a product; a non-zero initial stock is recorded as an adjustment from 0."""
    _check_partner_scope(actor, patch.get("partner_id"))
    _require_partner(patch.get("partner_id"))
    initial_stock = patch.pop("stock", None) or 0

    product = Product(stock=0, **patch)
    db.session.add(product)
    db.session.flush()
    set_stock_level(product, initial_stock, actor=actor, reason=INITIAL_STOCK_REASON)

    activity_service.log_activity(
        actor=actor,
        action="product_created",
        details={"table": "products", "id": product.id, "name": product.name, "stock": initial_stock},
    )
    return product


def record_stock_movement(
    *,
    actor: Profile,
    product_id: str,
    type: str,
    quantity=None,
    new_stock=None,
    reason: str | None = None,
) -> dict:
    """
    Record one stock movement and update the product atomically.

    "in"/"out" take a positive quantity; "adjustment" takes the counted
    level as new_stock. Returns the movement row.
    """
    require_permission(actor, "MANAGE_STOCK")

    movement_type = (type or "").strip().lower()
    if movement_type not in STOCK_MOVEMENT_TYPES:
        raise ValidationError("type must be in, out or adjustment")
    if not product_id:
        raise ValidationError("product_id is required")

    if movement_type == "adjustment":
        target = _parse_quantity(new_stock, "new_stock")
    else:
        amount = _parse_quantity(quantity)
        if amount <= 0:
            raise ValidationError("quantity must be > 0")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError("Product not found")
        _check_partner_scope(actor, product.partner_id)

        if movement_type == "adjustment":
            movement = set_stock_level(product, target, actor=actor, reason=reason)
            if movement is None:
                raise ValidationError("Stock is already at this level")
        else:
            movement = _append_movement(
                product,
                movement_type=movement_type,
                quantity=amount,
                new_stock=compute_new_stock(product.stock, movement_type, amount),
                reason=reason,
                actor=actor,
            )

        db.session.flush()
        activity_service.log_activity(
            actor=actor,
            action="stock_movement_recorded",
            details={
                "product_id": product.id,
                "name": product.name,
                "type": movement.type,
                "quantity": movement.quantity,
                "previous_stock": movement.previous_stock,
                "new_stock": movement.new_stock,
            },
        )
        db.session.commit()
        return movement.to_dict()

    return run_with_retry(_op)


def update_product(*, actor: Profile, product: Product, patch: dict) -> Product:
    """Stage a product edit; a changed stock value becomes an adjustment movement."""
    _check_partner_scope(actor, product.partner_id)
    if "partner_id" in patch:
        _check_partner_scope(actor, patch["partner_id"])
        _require_partner(patch["partner_id"])
    enforce_rules_product(patch)

    target = patch.pop("stock", None)
    for key, value in patch.items():
        setattr(product, key, value)
    if target is not None:
        set_stock_level(product, target, actor=actor, reason=MANUAL_CORRECTION_REASON)
    return product


def delete_product(*, actor: Profile, product: Product) -> None:
    """Stage a product delete together with its movement history."""
    _check_partner_scope(actor, product.partner_id)
    for movement in db.session.query(StockMovement).filter_by(product_id=product.id).all():
        db.session.delete(movement)
    db.session.delete(product)
