# Overview: Closed role set and the capability table derived from it.

from enum import Enum

from .helpers import get_all_permission_codes


class Role(str, Enum):
    CEO = "ceo"
    ACCOUNTANT = "accountant"
    SECRETARY = "secretary"
    PARTNER = "partner"

    @classmethod
    def parse(cls, value) -> "Role":
        """Return the Role for value; raises ValueError on anything else."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


# Capabilities the CEO does not hold: the partner space only makes sense
# with a partner linkage, and the CEO never receives low-stock alerts.
_CEO_EXCLUDED = {"VIEW_PARTNER_SPACE", "RECEIVE_LOW_STOCK_ALERTS"}

DEFAULT_ROLE_PERMISSIONS = {
    Role.CEO: frozenset(code for code in get_all_permission_codes() if code not in _CEO_EXCLUDED),
    Role.ACCOUNTANT: frozenset({
        "VIEW_NOTIFICATIONS",
        "RECEIVE_LOW_STOCK_ALERTS",
        "VIEW_ACCOUNTING",
        "MANAGE_ACCOUNTING",
        "VIEW_SALARIES",
        "MANAGE_SALARIES",
        "VIEW_DOCUMENTS",
        "MANAGE_DOCUMENTS",
        "MANAGE_PARTNERS",
        "VIEW_PRODUCTS",
        "VIEW_STOCK",
        "MANAGE_STOCK",
        "VIEW_DELIVERIES",
        "MANAGE_DELIVERIES",
    }),
    Role.SECRETARY: frozenset({
        "VIEW_NOTIFICATIONS",
        "RECEIVE_LOW_STOCK_ALERTS",
        "VIEW_PARTNERS",
        "MANAGE_PARTNERS",
        "VIEW_PRODUCTS",
        "MANAGE_STOCK",
        "VIEW_DELIVERIES",
        "MANAGE_DELIVERIES",
    }),
    Role.PARTNER: frozenset({
        "VIEW_NOTIFICATIONS",
        "RECEIVE_LOW_STOCK_ALERTS",
        "VIEW_PARTNER_SPACE",
        "VIEW_PRODUCTS",
        "MANAGE_STOCK",
        "VIEW_DELIVERIES",
    }),
}

# Per-user grants allowed on top of a role (the permissions dialog)
GRANTABLE_PERMISSIONS = (
    "MANAGE_PARTNERS",
    "MANAGE_STOCK",
    "VIEW_ACCOUNTING",
    "MANAGE_ACCOUNTING",
    "MANAGE_SALARIES",
    "MANAGE_USERS",
    "EXPORT_DATA",
)


def capabilities_for(role, extra=()) -> frozenset:
    """Effective capability set: the role's defaults plus grantable extras."""
    base = DEFAULT_ROLE_PERMISSIONS[Role.parse(role)]
    granted = {code for code in extra if code in GRANTABLE_PERMISSIONS}
    return base | granted
