# Overview: Sidebar menu derived from the capability table.

from __future__ import annotations

from dataclasses import dataclass

from .roles import capabilities_for


@dataclass(frozen=True)
class MenuItem:
    key: str
    label: str
    path: str
    capability: str | None = None
    shows_unread_badge: bool = False

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "path": self.path,
            "badge": self.shows_unread_badge,
        }


MENU_ITEMS = (
    MenuItem("home", "Accueil", "/dashboard"),
    MenuItem("statistics", "Statistiques", "/dashboard/statistics", "VIEW_STATISTICS"),
    MenuItem("accounting", "Comptabilité", "/dashboard/accounting", "VIEW_ACCOUNTING"),
    MenuItem("documents", "Dossiers", "/dashboard/documents", "VIEW_DOCUMENTS"),
    MenuItem("salaries", "Salaires", "/dashboard/salaries", "VIEW_SALARIES"),
    MenuItem("users", "Utilisateurs", "/dashboard/users", "MANAGE_USERS"),
    MenuItem("partners", "Partenaires", "/dashboard/partners", "VIEW_PARTNERS"),
    MenuItem("stock", "Stock", "/dashboard/stock", "VIEW_STOCK"),
    MenuItem("partner-view", "Mon Stock", "/dashboard/partner-view", "VIEW_PARTNER_SPACE"),
    MenuItem("notifications", "Notifications", "/dashboard/notifications", "VIEW_NOTIFICATIONS", True),
    MenuItem("activity-log", "Journal", "/dashboard/activity-log", "VIEW_ACTIVITY_LOG"),
    MenuItem("export", "Exporter", "/dashboard/export", "EXPORT_DATA"),
    MenuItem("settings", "Paramètres", "/dashboard/settings", "MANAGE_SETTINGS"),
)


def menu_for(role, extra_permissions=()) -> list[MenuItem]:
    caps = capabilities_for(role, extra_permissions)
    return [item for item in MENU_ITEMS if item.capability is None or item.capability in caps]
