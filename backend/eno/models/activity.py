from __future__ import annotations

from ..extensions import db
from eno.time_utils import to_utc_z
from ._base import new_id, TIMESTAMP_DEFAULT


class ActivityLogEntry(db.Model):
    """
    Append-only record of who did what.

    - Written inside the same DB transaction as the change it records.
    - user_full_name is a snapshot: it survives renames and user deletion.
    """
    __tablename__ = "activity_log"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), nullable=True, index=True)
    user_full_name = db.Column(db.String(255), nullable=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_full_name": self.user_full_name,
            "action": self.action,
            "details": self.details or {},
            "created_at": to_utc_z(self.created_at),
        }
