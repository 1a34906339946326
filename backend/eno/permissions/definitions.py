# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- DASHBOARD --

DASHBOARD_PERMISSIONS = [
    (
        "VIEW_STATISTICS",
        "View Statistics",
        "Open the statistics page and the company-wide dashboard",
        PermissionCategory.DASHBOARD,
    ),
    (
        "VIEW_NOTIFICATIONS",
        "View Notifications",
        "Open the notifications page",
        PermissionCategory.DASHBOARD,
    ),
    (
        "RECEIVE_LOW_STOCK_ALERTS",
        "Receive Low Stock Alerts",
        "Get an alert when a visible product falls to its alert threshold",
        PermissionCategory.DASHBOARD,
    ),
    (
        "VIEW_ACTIVITY_LOG",
        "View Activity Log",
        "Read the journal of actions performed on the platform",
        PermissionCategory.DASHBOARD,
    ),
]


# -- ACCOUNTING --

ACCOUNTING_PERMISSIONS = [
    (
        "VIEW_ACCOUNTING",
        "View Accounting",
        "Read transactions, standard orders and partner delivery fees",
        PermissionCategory.ACCOUNTING,
    ),
    (
        "MANAGE_ACCOUNTING",
        "Manage Accounting",
        "Create, edit and delete accounting entries",
        PermissionCategory.ACCOUNTING,
    ),
    (
        "VIEW_SALARIES",
        "View Salaries",
        "Read salary payments",
        PermissionCategory.ACCOUNTING,
    ),
    (
        "MANAGE_SALARIES",
        "Manage Salaries",
        "Record, edit and delete salary payments",
        PermissionCategory.ACCOUNTING,
    ),
    (
        "EXPORT_DATA",
        "Export Reports",
        "Export data as XLSX workbooks or PDF reports",
        PermissionCategory.ACCOUNTING,
    ),
]


# -- DOCUMENTS --

DOCUMENT_PERMISSIONS = [
    (
        "VIEW_DOCUMENTS",
        "View Documents",
        "Read archived documents and bank deposits",
        PermissionCategory.DOCUMENTS,
    ),
    (
        "MANAGE_DOCUMENTS",
        "Manage Documents",
        "Archive documents and record bank deposits",
        PermissionCategory.DOCUMENTS,
    ),
    (
        "DELETE_DOCUMENTS",
        "Delete Documents",
        "Delete archived documents and bank deposits",
        PermissionCategory.DOCUMENTS,
    ),
]


# -- PARTNERS --

PARTNER_PERMISSIONS = [
    (
        "VIEW_PARTNERS",
        "View Partners",
        "Open the partners page with per-partner statistics",
        PermissionCategory.PARTNERS,
    ),
    (
        "MANAGE_PARTNERS",
        "Manage Partners",
        "Create, edit and delete partners (delete cascades to their data)",
        PermissionCategory.PARTNERS,
    ),
    (
        "INVITE_PARTNERS",
        "Invite Partners",
        "Send a partner an invitation to open a dashboard account",
        PermissionCategory.PARTNERS,
    ),
    (
        "VIEW_PARTNER_SPACE",
        "View Partner Space",
        "Open the partner's own stock and settlement view",
        PermissionCategory.PARTNERS,
    ),
]


# -- STOCK --

STOCK_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "Read products and stock movements (partners see their own)",
        PermissionCategory.STOCK,
    ),
    (
        "VIEW_STOCK",
        "View Stock",
        "Open the stock management page",
        PermissionCategory.STOCK,
    ),
    (
        "MANAGE_STOCK",
        "Manage Stock",
        "Create products and record stock movements",
        PermissionCategory.STOCK,
    ),
]


# -- DELIVERIES --

DELIVERY_PERMISSIONS = [
    (
        "VIEW_DELIVERIES",
        "View Deliveries",
        "Read deliveries (partners see their own)",
        PermissionCategory.DELIVERIES,
    ),
    (
        "MANAGE_DELIVERIES",
        "Manage Deliveries",
        "Create, edit and delete deliveries",
        PermissionCategory.DELIVERIES,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "List, edit and delete dashboard accounts and their permissions",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "MANAGE_SETTINGS",
        "Manage Settings",
        "Reset accounting data and reassign partner codes",
        PermissionCategory.SYSTEM,
    ),
]


# -- COMBINED --

PERMISSION_DEFINITIONS = (
    DASHBOARD_PERMISSIONS
    + ACCOUNTING_PERMISSIONS
    + DOCUMENT_PERMISSIONS
    + PARTNER_PERMISSIONS
    + STOCK_PERMISSIONS
    + DELIVERY_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
