# Overview: Append-only activity journal written alongside the change it records.

from __future__ import annotations

from ..extensions import db
from ..models import ActivityLogEntry


def log_activity(*, actor, action: str, details: dict | None = None) -> ActivityLogEntry:
    """
    Stage an activity entry in the current transaction.

    The caller commits; an entry never outlives a rolled back change.
    """
    entry = ActivityLogEntry(
        user_id=actor.id if actor is not None else None,
        user_full_name=(actor.full_name or actor.email) if actor is not None else None,
        action=action,
        details=details or {},
    )
    db.session.add(entry)
    return entry


def row_label(row: dict) -> str | None:
    for key in ("name", "title", "full_name", "reference", "beneficiary_name", "email"):
        if row.get(key):
            return str(row[key])
    return None
