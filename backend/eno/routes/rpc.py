# Overview: Flask API routes for remote procedures; one POST endpoint dispatching by name.

from __future__ import annotations

from flask import Blueprint, request, g

from ..services import (
    auth_service,
    inventory_service,
    maintenance_service,
    partner_service,
    permission_service,
)
from ..services.permission_service import require_permission
from ..decorators import require_auth
from ..validation import NotFoundError, ValidationError
from .errors import SERVICE_ERRORS, service_error_response, unexpected_error_response


rpc_bp = Blueprint("rpc", __name__, url_prefix="/api/rpc")


def _required(params: dict, key: str):
    value = params.get(key)
    if value in (None, ""):
        raise ValidationError(f"{key} is required")
    return value


def _generate_partner_code(profile, params):
    require_permission(profile, "MANAGE_PARTNERS")
    return partner_service.generate_partner_code()


def _delete_partner_and_dependents(profile, params):
    return partner_service.delete_partner_and_dependents(
        actor=profile, partner_id=_required(params, "partner_id"),
    )


def _reset_accounting_data(profile, params):
    return maintenance_service.reset_accounting_data(actor=profile)


def _reassign_partner_codes(profile, params):
    return partner_service.reassign_partner_codes(actor=profile)


def _delete_user_by_id(profile, params):
    return auth_service.delete_user(actor=profile, user_id=_required(params, "user_id"))


def _invite_user(profile, params):
    invitation, token = auth_service.invite_user(
        actor=profile,
        email=_required(params, "email"),
        role=params.get("role") or "partner",
        partner_id=params.get("partner_id"),
        full_name=params.get("full_name"),
    )
    # No mail delivery: the inviter forwards the token
    return {"invitation": invitation.to_dict(), "token": token}


def _record_stock_movement(profile, params):
    return inventory_service.record_stock_movement(
        actor=profile,
        product_id=_required(params, "product_id"),
        type=_required(params, "type"),
        quantity=params.get("quantity"),
        new_stock=params.get("new_stock"),
        reason=params.get("reason"),
    )


def _set_user_permissions(profile, params):
    updated = permission_service.set_user_permissions(
        actor=profile,
        user_id=_required(params, "user_id"),
        permissions=params.get("permissions") or [],
    )
    return updated.to_dict()


PROCEDURES = {
    "generate_partner_code": _generate_partner_code,
    "delete_partner_and_dependents": _delete_partner_and_dependents,
    "reset_accounting_data": _reset_accounting_data,
    "reassign_partner_codes": _reassign_partner_codes,
    "delete_user_by_id": _delete_user_by_id,
    "invite_user": _invite_user,
    "record_stock_movement": _record_stock_movement,
    "set_user_permissions": _set_user_permissions,
}


def call_procedure(name: str, profile, params: dict | None):
    procedure = PROCEDURES.get(name)
    if procedure is None:
        raise NotFoundError(f"Unknown procedure: {name}")
    if params is not None and not isinstance(params, dict):
        raise ValidationError("Parameters must be a JSON object")
    return procedure(profile, params or {})


@rpc_bp.post("/<name>")
@require_auth
def rpc_route(name: str):
    """Call a remote procedure. Body: JSON object of named parameters."""
    params = request.get_json(silent=True)
    try:
        result = call_procedure(name, g.current_user, params)
        return {"data": result}, 200
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Procedure %s failed", name)
