# Overview: Maps service-layer exceptions to JSON error responses.

from flask import current_app

from ..extensions import db
from ..services.permission_service import PermissionDeniedError
from ..validation import ConflictError, NotFoundError, ValidationError


SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError, PermissionDeniedError)

_STATUS = (
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ValidationError, 400),
)


def service_error_response(exc: Exception):
    """Roll back the failed unit of work and describe the error."""
    db.session.rollback()
    for exc_type, status in _STATUS:
        if isinstance(exc, exc_type):
            return {"error": str(exc)}, status
    return {"error": str(exc)}, 400


def unexpected_error_response(message: str, *args):
    db.session.rollback()
    current_app.logger.exception(message, *args)
    return {"error": "Internal server error"}, 500
