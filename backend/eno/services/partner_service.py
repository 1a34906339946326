# Overview: Service-layer operations for partners; code generation, cascading delete and code repair.

"""
Partner code invariants

- A code is the configured prefix (PAT) followed by at least three digits.
- A new code is the highest numeric suffix in use (ids and codes) plus one.
- Codes are unique across partners; id is assigned once and never changes.
"""

from __future__ import annotations

import re

from flask import current_app

from ..extensions import db
from ..models import (
    Delivery,
    Invitation,
    Partner,
    PartnerDeliveryFee,
    Product,
    Profile,
    StockMovement,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from . import activity_service, session_service
from .permission_service import require_permission


def _prefix() -> str:
    return current_app.config.get("ENO_PARTNER_CODE_PREFIX", "PAT")


def code_pattern(prefix: str | None = None) -> re.Pattern:
    return re.compile(rf"^{re.escape(prefix or _prefix())}(\d{{3,}})$")


def format_code(number: int, prefix: str | None = None) -> str:
    return f"{prefix or _prefix()}{number:03d}"


def _codes_in_use() -> set[str]:
    codes: set[str] = set()
    for partner_id, partner_code in db.session.query(Partner.id, Partner.partner_code).all():
        codes.add(partner_id)
        if partner_code:
            codes.add(partner_code)
    return codes


def _max_suffix(codes) -> int:
    pattern = code_pattern()
    highest = 0
    for code in codes:
        match = pattern.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def generate_partner_code() -> str:
    """Next free partner code (PAT001 when there are none)."""
    return format_code(_max_suffix(_codes_in_use()) + 1)


def create_partner(*, actor: Profile, patch: dict) -> Partner:
    """
    Insert a partner. A client-supplied code (from generate_partner_code) is
    checked; otherwise one is generated. id and partner_code start equal.
    """
    id_code = patch.pop("id", None)
    given_code = patch.pop("partner_code", None)
    if id_code and given_code and id_code != given_code:
        raise ValidationError("id and partner_code must match for a new partner")
    code = id_code or given_code
    if code:
        if not code_pattern().match(code):
            raise ValidationError(f"Partner code must look like {format_code(1)}")
        if code in _codes_in_use():
            raise ConflictError(f"Partner code {code} is already used")
    else:
        code = generate_partner_code()

    partner = Partner(id=code, partner_code=code, **patch)
    db.session.add(partner)
    activity_service.log_activity(
        actor=actor,
        action="partner_created",
        details={"table": "partners", "id": code, "name": partner.name},
    )
    return partner


def change_partner_code(partner: Partner, new_code: str | None) -> None:
    if new_code is None:
        partner.partner_code = None
        return
    if not code_pattern().match(new_code):
        raise ValidationError(f"Partner code must look like {format_code(1)}")
    clash = db.session.query(Partner.id).filter(
        Partner.id != partner.id,
        db.or_(Partner.partner_code == new_code, Partner.id == new_code),
    ).first()
    if clash:
        raise ConflictError(f"Partner code {new_code} is already used")
    partner.partner_code = new_code


def delete_partner_and_dependents(*, actor: Profile, partner_id: str) -> dict:
    """
    Delete a partner and everything hanging off it in one transaction:
    stock movements of its products, the products, delivery fees,
    deliveries and pending invitations. Linked partner accounts are
    deactivated and signed out.

    Rows are deleted through the ORM so subscribers see each DELETE.
    """
    require_permission(actor, "MANAGE_PARTNERS")

    partner = db.session.get(Partner, partner_id)
    if partner is None:
        raise NotFoundError("Partner not found")

    counts = {"stock_movements": 0, "products": 0, "partner_delivery_fees": 0, "deliveries": 0, "profiles": 0}

    products = db.session.query(Product).filter_by(partner_id=partner_id).all()
    product_ids = [p.id for p in products]
    if product_ids:
        movements = db.session.query(StockMovement).filter(StockMovement.product_id.in_(product_ids)).all()
        for movement in movements:
            db.session.delete(movement)
        counts["stock_movements"] = len(movements)
    for product in products:
        db.session.delete(product)
    counts["products"] = len(products)

    for fee in db.session.query(PartnerDeliveryFee).filter_by(partner_id=partner_id).all():
        db.session.delete(fee)
        counts["partner_delivery_fees"] += 1

    for delivery in db.session.query(Delivery).filter_by(partner_id=partner_id).all():
        db.session.delete(delivery)
        counts["deliveries"] += 1

    db.session.query(Invitation).filter_by(partner_id=partner_id).delete(synchronize_session=False)

    for profile in db.session.query(Profile).filter_by(partner_id=partner_id).all():
        profile.partner_id = None
        profile.is_active = False
        session_service.revoke_all_user_sessions(profile.id, reason="Partner deleted")
        counts["profiles"] += 1

    db.session.delete(partner)
    activity_service.log_activity(
        actor=actor,
        action="partner_deleted",
        details={"table": "partners", "id": partner_id, "name": partner.name, "deleted": counts},
    )
    db.session.commit()
    return {"partner_id": partner_id, "deleted": counts}


def reassign_partner_codes(*, actor: Profile) -> list[dict]:
    """
    Repair partner codes: missing, malformed or duplicated codes get fresh
    ones; valid unique codes are kept. Partners are visited oldest first so
    the earliest holder of a duplicate keeps it. Ids never change.

    Returns the updated partners.
    """
    require_permission(actor, "MANAGE_SETTINGS")

    pattern = code_pattern()
    partners = db.session.query(Partner).order_by(Partner.created_at, Partner.id).all()

    # Ids are permanent, so they are reserved up front
    reserved = {p.id for p in partners}
    next_number = _max_suffix(reserved | {p.partner_code for p in partners if p.partner_code}) + 1

    kept: set[str] = set()
    needs_code: list[Partner] = []
    for partner in partners:
        code = partner.partner_code
        valid = bool(code and pattern.match(code))
        owned_by_other = code in reserved and code != partner.id
        if valid and code not in kept and not owned_by_other:
            kept.add(code)
        else:
            needs_code.append(partner)

    updated = []
    for partner in needs_code:
        # A partner whose own id is a free valid code gets it back
        if pattern.match(partner.id) and partner.id not in kept:
            new_code = partner.id
        else:
            new_code = format_code(next_number)
            next_number += 1
        kept.add(new_code)
        partner.partner_code = new_code
        updated.append(partner)

    if updated:
        activity_service.log_activity(
            actor=actor,
            action="partner_codes_reassigned",
            details={"partners": [{"id": p.id, "partner_code": p.partner_code} for p in updated]},
        )
    db.session.commit()
    return [p.to_dict() for p in updated]
