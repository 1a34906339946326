from __future__ import annotations

from ..extensions import db
from eno.time_utils import to_utc_z
from ._base import new_id, TIMESTAMP_DEFAULT


class Profile(db.Model):
    """
    Dashboard account: credentials plus the role and partner linkage
    every access decision is based on.

    A profile with role "partner" must carry partner_id; its reads are
    scoped to rows of that partner.
    """
    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, index=True)
    partner_id = db.Column(db.String(32), db.ForeignKey("partners.id", ondelete="SET NULL"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    granted_permissions = db.relationship(
        "UserPermission",
        backref="profile",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Profile id={self.id} email={self.email!r} role={self.role}>"

    @property
    def permissions(self) -> list[str]:
        return sorted(p.permission for p in self.granted_permissions)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "partner_id": self.partner_id,
            "permissions": self.permissions,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class UserPermission(db.Model):
    """Extra capability granted to one profile on top of its role."""
    __tablename__ = "user_permissions"
    __table_args__ = (
        db.UniqueConstraint("user_id", "permission", name="uq_user_permissions"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)


class SessionToken(db.Model):
    """
    Bearer session issued at login.

    SECURITY NOTES:
    - Tokens stored hashed (SHA-256), never in plaintext
    - 24-hour absolute timeout, 2-hour idle timeout
    - Revocable on logout, user deletion or deactivation
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship("Profile", backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
        }


class Invitation(db.Model):
    """
    Pending account invitation (partners are invited by the CEO).

    The plaintext token is returned once to the inviter; only its hash is stored.
    """
    __tablename__ = "invitations"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(16), nullable=False)
    partner_id = db.Column(db.String(32), db.ForeignKey("partners.id", ondelete="CASCADE"), nullable=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)
    invited_by = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=TIMESTAMP_DEFAULT)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "partner_id": self.partner_id,
            "invited_by": self.invited_by,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "accepted_at": to_utc_z(self.accepted_at) if self.accepted_at else None,
        }
