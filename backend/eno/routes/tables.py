# Overview: Flask API routes for generic table access; parses query strings and returns JSON rows.

from flask import Blueprint, request, g

from ..services import table_service
from ..decorators import require_auth
from .errors import SERVICE_ERRORS, service_error_response, unexpected_error_response


tables_bp = Blueprint("tables", __name__, url_prefix="/api/tables")

_RESERVED_ARGS = {"order", "desc", "limit"}


@tables_bp.get("/<table>")
@require_auth
def select_route(table: str):
    """
    Bulk read.

    Query params:
    - order: column to sort by (default created_at)
    - desc: 1/true for descending
    - limit: max rows
    - any other key: equality filter on that column
    """
    desc = request.args.get("desc", "").lower() in {"1", "true", "yes"}
    filters = {k: v for k, v in request.args.items() if k not in _RESERVED_ARGS}
    limit = request.args.get("limit", type=int)
    if request.args.get("limit") and limit is None:
        return {"error": "limit must be a positive integer"}, 400
    try:
        rows = table_service.select(
            table,
            profile=g.current_user,
            order=request.args.get("order"),
            desc=desc,
            limit=limit,
            filters=filters,
        )
        return {"rows": rows, "count": len(rows)}, 200
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to read table %s", table)


@tables_bp.post("/<table>")
@require_auth
def insert_route(table: str):
    payload = request.get_json(silent=True)
    try:
        row = table_service.insert(table, profile=g.current_user, payload=payload)
        return {"row": row}, 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to insert into %s", table)


@tables_bp.patch("/<table>/<row_id>")
@require_auth
def update_route(table: str, row_id: str):
    payload = request.get_json(silent=True)
    try:
        row = table_service.update(table, profile=g.current_user, row_id=row_id, payload=payload)
        return {"row": row}, 200
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to update %s/%s", table, row_id)


@tables_bp.delete("/<table>/<row_id>")
@require_auth
def delete_route(table: str, row_id: str):
    try:
        table_service.delete(table, profile=g.current_user, row_id=row_id)
        return {"deleted": row_id}, 200
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to delete %s/%s", table, row_id)
