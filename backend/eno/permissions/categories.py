# Overview: Capability category constants for grouping related capabilities.


class PermissionCategory:
    """Capability categories for organization and UI display."""
    DASHBOARD = "DASHBOARD"
    ACCOUNTING = "ACCOUNTING"
    DOCUMENTS = "DOCUMENTS"
    PARTNERS = "PARTNERS"
    STOCK = "STOCK"
    DELIVERIES = "DELIVERIES"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
