# Overview: Stock view derivations; visible products, low stock and movement form checks.

from __future__ import annotations

from ..permissions import Role
from .forms import REQUIRED_FIELDS_MESSAGE, FormValidationError

MOVEMENT_TYPES = ("in", "out", "adjustment")


def is_low_stock(product: dict) -> bool:
    """Stock at or below a positive alert threshold."""
    try:
        threshold = int(product.get("alert_threshold") or 0)
        stock = int(product.get("stock") or 0)
    except (TypeError, ValueError):
        return False
    return threshold > 0 and stock <= threshold


def visible_products(products: list[dict], role, partner_id=None) -> list[dict]:
    """Partners see their own products; other roles see all."""
    if Role.parse(role) is Role.PARTNER:
        return [p for p in products if p.get("partner_id") == partner_id]
    return list(products)


def search_products(products: list[dict], term: str | None) -> list[dict]:
    needle = (term or "").strip().lower()
    if not needle:
        return list(products)
    return [p for p in products if needle in (p.get("name") or "").lower()]


def low_stock_products(products: list[dict]) -> list[dict]:
    return [p for p in products if is_low_stock(p)]


def visible_movements(movements: list[dict], products: list[dict], role, partner_id=None) -> list[dict]:
    """Movements of the products the role can see, order kept."""
    if Role.parse(role) is not Role.PARTNER:
        return list(movements)
    own = {p.get("id") for p in visible_products(products, role, partner_id)}
    return [m for m in movements if m.get("product_id") in own]


def product_stats(products: list[dict]) -> dict:
    return {
        "product_count": len(products),
        "total_stock": sum(int(p.get("stock") or 0) for p in products),
        "low_stock": len(low_stock_products(products)),
    }


def validate_product_form(form: dict) -> dict:
    """Product form to an insert payload; name and partner are required."""
    if not (form.get("name") or "").strip() or not form.get("partner_id"):
        raise FormValidationError(REQUIRED_FIELDS_MESSAGE)
    payload = {
        "name": form["name"].strip(),
        "partner_id": form["partner_id"],
    }
    for key, cast in (("stock", int), ("alert_threshold", int), ("price", float)):
        value = form.get(key)
        if value in (None, ""):
            continue
        try:
            payload[key] = cast(value)
        except (TypeError, ValueError):
            raise FormValidationError(f"{key} must be a number", field=key)
        if payload[key] < 0:
            raise FormValidationError(f"{key} cannot be negative", field=key)
    return payload


def validate_movement_form(form: dict, products: list[dict]) -> dict:
    """
    Check a stock movement form against the cached product.

    Returns the record_stock_movement parameters. An "out" larger than the
    current stock is rejected here before any write.
    """
    product_id = form.get("product_id")
    movement_type = form.get("type") or "in"
    raw_quantity = form.get("quantity")

    if movement_type not in MOVEMENT_TYPES:
        raise FormValidationError(f"Unknown movement type: {movement_type}", field="type")

    if movement_type == "adjustment":
        raw_target = form.get("new_stock")
        if not product_id or raw_target in (None, ""):
            raise FormValidationError(REQUIRED_FIELDS_MESSAGE)
        try:
            target = int(raw_target)
        except (TypeError, ValueError):
            raise FormValidationError("new_stock must be a whole number", field="new_stock")
        if target < 0:
            raise FormValidationError("Le stock ne peut pas être négatif", field="new_stock")
        params = {"product_id": product_id, "type": movement_type, "new_stock": target}
    else:
        if not product_id or raw_quantity in (None, "", 0, "0"):
            raise FormValidationError(REQUIRED_FIELDS_MESSAGE)
        try:
            quantity = int(raw_quantity)
        except (TypeError, ValueError):
            raise FormValidationError("quantity must be a whole number", field="quantity")
        if quantity <= 0:
            raise FormValidationError("quantity must be positive", field="quantity")
        params = {"product_id": product_id, "type": movement_type, "quantity": quantity}

    product = next((p for p in products if p.get("id") == product_id), None)
    if product is None:
        raise FormValidationError("Produit introuvable", field="product_id")
    if movement_type == "out" and int(product.get("stock") or 0) - params["quantity"] < 0:
        raise FormValidationError("Stock insuffisant pour cette sortie", field="quantity")

    reason = (form.get("reason") or "").strip()
    if reason:
        params["reason"] = reason
    return params
