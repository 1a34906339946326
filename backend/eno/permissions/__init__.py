# Overview: Role and capability package.
# Re-exports all public APIs so callers import from eno.permissions.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    DASHBOARD_PERMISSIONS,
    ACCOUNTING_PERMISSIONS,
    DOCUMENT_PERMISSIONS,
    PARTNER_PERMISSIONS,
    STOCK_PERMISSIONS,
    DELIVERY_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import Role, DEFAULT_ROLE_PERMISSIONS, GRANTABLE_PERMISSIONS, capabilities_for
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
)
from .navigation import MenuItem, MENU_ITEMS, menu_for

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DASHBOARD_PERMISSIONS",
    "ACCOUNTING_PERMISSIONS",
    "DOCUMENT_PERMISSIONS",
    "PARTNER_PERMISSIONS",
    "STOCK_PERMISSIONS",
    "DELIVERY_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "Role",
    "DEFAULT_ROLE_PERMISSIONS",
    "GRANTABLE_PERMISSIONS",
    "capabilities_for",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "MenuItem",
    "MENU_ITEMS",
    "menu_for",
]
