# Overview: Service-layer operations for capabilities; resolves and enforces what a profile may do.

"""
Capability checks

- Fail closed: a capability must come from the role table or a grant.
- Effective set = role defaults + grantable extras stored in user_permissions.
- The data service is the authoritative boundary; clients only use the
  same table to hide actions.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Profile, UserPermission
from ..permissions import GRANTABLE_PERMISSIONS, Role, capabilities_for
from ..validation import NotFoundError, ValidationError
from . import activity_service, realtime


class PermissionDeniedError(Exception):
    """Raised when a profile lacks a required capability."""
    pass


@dataclass(frozen=True)
class Viewer:
    """Immutable access snapshot of a profile, safe to keep outside a DB session."""
    user_id: str
    role: Role
    partner_id: str | None
    capabilities: frozenset

    @property
    def is_partner(self) -> bool:
        return self.role is Role.PARTNER

    def can(self, code: str) -> bool:
        return code in self.capabilities

    def can_any(self, codes) -> bool:
        return any(code in self.capabilities for code in codes)


def get_user_permissions(profile: Profile) -> frozenset:
    return capabilities_for(profile.role, profile.permissions)


def viewer_for(profile: Profile) -> Viewer:
    return Viewer(
        user_id=profile.id,
        role=Role.parse(profile.role),
        partner_id=profile.partner_id,
        capabilities=get_user_permissions(profile),
    )


def has_permission(profile: Profile, code: str) -> bool:
    return code in get_user_permissions(profile)


def require_permission(profile: Profile, code: str) -> None:
    if not has_permission(profile, code):
        raise PermissionDeniedError(f"Missing permission: {code}")


def set_user_permissions(*, actor: Profile, user_id: str, permissions) -> Profile:
    """
    Replace a profile's extra grants wholesale.

    Only grantable capabilities are accepted; role defaults are implicit and
    never stored.
    """
    require_permission(actor, "MANAGE_USERS")

    if not isinstance(permissions, (list, tuple, set, frozenset)):
        raise ValidationError("permissions must be a list")
    requested = {str(p).strip().upper() for p in permissions}
    unknown = sorted(requested - set(GRANTABLE_PERMISSIONS))
    if unknown:
        raise ValidationError(f"Permissions cannot be granted: {', '.join(unknown)}")

    profile = db.session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("User not found")

    for grant in list(profile.granted_permissions):
        if grant.permission not in requested:
            profile.granted_permissions.remove(grant)
    existing = {grant.permission for grant in profile.granted_permissions}
    for code in sorted(requested - existing):
        profile.granted_permissions.append(UserPermission(permission=code))

    db.session.flush()
    realtime.record_change(db.session, "UPDATE", profile)
    activity_service.log_activity(
        actor=actor,
        action="user_permissions_updated",
        details={"user_id": profile.id, "permissions": sorted(requested)},
    )
    db.session.commit()
    return profile
