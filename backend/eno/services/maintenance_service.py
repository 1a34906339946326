# Overview: Service-layer operations for maintenance; accounting reset and session cleanup.

from __future__ import annotations

from ..extensions import db
from ..models import PartnerDeliveryFee, Profile, Salary, StandardOrder, Transaction
from . import activity_service, session_service
from .permission_service import require_permission


# Tables wiped by an accounting reset; partners, stock and documents are kept
ACCOUNTING_MODELS = (
    ("transactions", Transaction),
    ("standard_orders", StandardOrder),
    ("partner_delivery_fees", PartnerDeliveryFee),
    ("salaries", Salary),
)


def reset_accounting_data(*, actor: Profile) -> dict:
    """
    Delete every accounting entry in one transaction.

    Rows go through the ORM so subscribers receive one DELETE per row.
    Returns the count per table.
    """
    require_permission(actor, "MANAGE_SETTINGS")

    counts = {}
    for table, model in ACCOUNTING_MODELS:
        rows = db.session.query(model).all()
        for row in rows:
            db.session.delete(row)
        counts[table] = len(rows)

    activity_service.log_activity(actor=actor, action="accounting_reset", details={"deleted": counts})
    db.session.commit()
    return counts


def cleanup_sessions(*, retention_days: int = 30) -> int:
    """Purge expired or revoked sessions created more than retention_days ago."""
    return session_service.cleanup_expired_sessions(retention_days=retention_days)
