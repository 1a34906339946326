# Overview: Service-layer operations for accounts; sign-up, login, invitations and user deletion.

"""
Account lifecycle

- Passwords hashed with bcrypt (cost factor 12).
- Self sign-up only bootstraps the first CEO; every other account comes
  from an invitation issued by someone with the matching capability.
- Invitation tokens are returned once and stored hashed, like sessions.
"""

from __future__ import annotations

import re
from datetime import timedelta

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Invitation, Partner, Profile, Salary
from ..permissions import Role
from ..validation import ConflictError, NotFoundError, ValidationError
from eno.time_utils import utcnow
from . import activity_service, session_service
from .permission_service import PermissionDeniedError, require_permission


INVITATION_TTL = timedelta(days=7)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # malformed stored hash
        return False


def normalize_email(email) -> str:
    value = (email or "").strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValidationError("A valid email is required")
    return value


def _validate_role_linkage(role: Role, partner_id: str | None) -> None:
    if role is Role.PARTNER:
        if not partner_id:
            raise ValidationError("partner_id is required for partner accounts")
        if db.session.get(Partner, partner_id) is None:
            raise NotFoundError("Partner not found")
    elif partner_id:
        raise ValidationError("partner_id is only allowed for partner accounts")


def ceo_exists() -> bool:
    return db.session.query(Profile.id).filter_by(role=Role.CEO.value).first() is not None


def create_profile(
    *,
    email: str,
    password: str,
    full_name: str | None,
    role,
    partner_id: str | None = None,
) -> Profile:
    """Create an account without committing. Email is unique across profiles."""
    email = normalize_email(email)
    role = Role.parse(role)
    _validate_role_linkage(role, partner_id)

    if db.session.query(Profile.id).filter_by(email=email).first():
        raise ConflictError("An account with this email already exists")

    profile = Profile(
        email=email,
        full_name=(full_name or "").strip() or None,
        password_hash=hash_password(password),
        role=role.value,
        partner_id=partner_id if role is Role.PARTNER else None,
        is_active=True,
    )
    db.session.add(profile)
    return profile


def sign_up(*, email: str, password: str, full_name: str | None = None, invitation_token: str | None = None) -> Profile:
    """
    Register an account.

    With an invitation token the account takes the invited role. Without
    one, sign-up is only open while no CEO exists and creates that CEO.
    """
    if invitation_token:
        return accept_invitation(token=invitation_token, password=password, full_name=full_name, email=email)

    if ceo_exists():
        raise PermissionDeniedError("Self-registration is disabled. Ask an administrator for an invitation.")

    profile = create_profile(email=email, password=password, full_name=full_name, role=Role.CEO)
    db.session.flush()
    activity_service.log_activity(actor=profile, action="ceo_account_created", details={"email": profile.email})
    db.session.commit()
    return profile


def ensure_ceo(*, email: str, password: str, full_name: str | None = None) -> tuple[Profile, bool]:
    """Create the CEO account if none exists. Returns (profile, created)."""
    existing = db.session.query(Profile).filter_by(role=Role.CEO.value).order_by(Profile.created_at).first()
    if existing is not None:
        return existing, False
    return sign_up(email=email, password=password, full_name=full_name), True


def authenticate(email: str, password: str) -> Profile | None:
    """
    Returns the Profile if credentials are valid and the account is active.
    Updates last_login_at on success.
    """
    try:
        email = normalize_email(email)
    except ValidationError:
        return None

    profile = db.session.query(Profile).filter_by(email=email, is_active=True).first()
    if not profile or not verify_password(password, profile.password_hash):
        return None

    profile.last_login_at = utcnow()
    db.session.commit()
    return profile


def update_own_account(profile: Profile, *, full_name=None, password=None) -> Profile:
    """Self-service update: display name and password only."""
    changed = {}
    if full_name is not None:
        name = str(full_name).strip()
        if not name:
            raise ValidationError("full_name cannot be blank")
        profile.full_name = name
        changed["full_name"] = name
    if password is not None:
        profile.password_hash = hash_password(password)
        changed["password"] = True
    if not changed:
        raise ValidationError("Nothing to update")

    activity_service.log_activity(
        actor=profile,
        action="profile_updated",
        details={"fields": sorted(changed)},
    )
    db.session.commit()
    return profile


def invite_user(
    *,
    actor: Profile,
    email: str,
    role="partner",
    partner_id: str | None = None,
    full_name: str | None = None,
) -> tuple[Invitation, str]:
    """
    Issue an invitation. Returns (invitation, plaintext_token).

    Inviting a partner needs INVITE_PARTNERS; any other role needs MANAGE_USERS.
    """
    role = Role.parse(role)
    require_permission(actor, "INVITE_PARTNERS" if role is Role.PARTNER else "MANAGE_USERS")

    email = normalize_email(email)
    _validate_role_linkage(role, partner_id)
    if db.session.query(Profile.id).filter_by(email=email).first():
        raise ConflictError("An account with this email already exists")

    token = session_service.generate_token()
    now = utcnow()
    invitation = Invitation(
        email=email,
        full_name=(full_name or "").strip() or None,
        role=role.value,
        partner_id=partner_id,
        token_hash=session_service.hash_token(token),
        invited_by=actor.id,
        created_at=now,
        expires_at=now + INVITATION_TTL,
    )
    db.session.add(invitation)
    activity_service.log_activity(
        actor=actor,
        action="user_invited",
        details={"email": email, "role": role.value, "partner_id": partner_id},
    )
    db.session.commit()
    return invitation, token


def accept_invitation(*, token: str, password: str, full_name: str | None = None, email: str | None = None) -> Profile:
    invitation = db.session.query(Invitation).filter_by(
        token_hash=session_service.hash_token(token or ""),
    ).first()
    if invitation is None or invitation.accepted_at is not None:
        raise NotFoundError("Invitation not found or already used")
    if invitation.expires_at < utcnow():
        raise ValidationError("Invitation has expired")
    if email and normalize_email(email) != invitation.email:
        raise ValidationError("Email does not match the invitation")

    profile = create_profile(
        email=invitation.email,
        password=password,
        full_name=full_name or invitation.full_name,
        role=invitation.role,
        partner_id=invitation.partner_id,
    )
    invitation.accepted_at = utcnow()
    db.session.flush()
    activity_service.log_activity(
        actor=profile,
        action="invitation_accepted",
        details={"invitation_id": invitation.id, "role": invitation.role},
    )
    db.session.commit()
    return profile


def apply_profile_changes(profile: Profile, patch: dict) -> None:
    """Validate role/partner linkage for an administrative profile update."""
    role = Role.parse(patch.get("role", profile.role))
    partner_id = patch.get("partner_id", profile.partner_id) if role is Role.PARTNER else None
    _validate_role_linkage(role, partner_id)
    patch["role"] = role.value
    patch["partner_id"] = partner_id


def delete_user(*, actor: Profile, user_id: str) -> dict:
    """
    Delete an account. Sessions and grants go with it; salary rows keep
    their history with user_id cleared.
    """
    require_permission(actor, "MANAGE_USERS")
    if actor.id == user_id:
        raise ConflictError("You cannot delete your own account")

    profile = db.session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("User not found")

    snapshot = {"user_id": profile.id, "email": profile.email, "role": profile.role}
    for salary in db.session.query(Salary).filter_by(user_id=profile.id).all():
        salary.user_id = None
    db.session.delete(profile)
    activity_service.log_activity(actor=actor, action="user_deleted", details=snapshot)
    db.session.commit()
    return snapshot
