# Overview: System health endpoint.

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Partner, Product, Profile
from ..permissions import Role
from ..services.realtime import REALTIME_TABLES, get_feed
from eno.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "partners": db.session.query(Partner).count(),
            "products": db.session.query(Product).count(),
            "profiles": db.session.query(Profile).count(),
        }
        return {"status": "healthy", "latency_ms": _elapsed_ms(start_time), "details": details}
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Database error"}


def check_accounts_health() -> dict:
    """Degraded until a CEO account has been bootstrapped."""
    start_time = time.time()
    try:
        has_ceo = db.session.query(Profile.id).filter_by(role=Role.CEO.value, is_active=True).first() is not None
        if not has_ceo:
            return {
                "status": "degraded",
                "latency_ms": _elapsed_ms(start_time),
                "warning": "No active CEO account; run `flask users create-ceo`",
            }
        return {"status": "healthy", "latency_ms": _elapsed_ms(start_time)}
    except Exception:
        current_app.logger.exception("Account health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Account check error"}


def check_realtime_health() -> dict:
    feed = get_feed()
    return {
        "status": "healthy",
        "details": {"subscribers": {table: feed.listener_count(table) for table in sorted(REALTIME_TABLES)}},
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "accounts": check_accounts_health(),
        "realtime": check_realtime_health(),
    }
    statuses = [check["status"] for check in checks.values()]

    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": checks,
    }, http_status
