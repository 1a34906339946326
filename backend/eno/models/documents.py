from __future__ import annotations

from ..extensions import db
from eno.time_utils import to_utc_z
from ._base import new_id, TIMESTAMP_DEFAULT


class Document(db.Model):
    """Archived document; the file itself lives behind file_url."""
    __tablename__ = "documents"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    file_url = db.Column(db.String(1024), nullable=True)
    file_type = db.Column(db.String(64), nullable=True)
    user_id = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "file_url": self.file_url,
            "file_type": self.file_type,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
