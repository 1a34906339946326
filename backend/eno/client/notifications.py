# Overview: Low-stock alerts derived from the synchronized product collection.

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Callable

from ..dashboard.stock import is_low_stock
from ..permissions import Role
from ..time_utils import to_utc_z, utcnow
from .auth import AuthProvider
from .store import DataStore

logger = logging.getLogger(__name__)

LOW_STOCK_TITLE = "⚠️ Alerte de stock faible"


def low_stock_message(product: dict) -> str:
    return f'Le stock pour "{product.get("name")}" est bas ({product.get("stock")} restants).'


@dataclass
class Notification:
    id: str
    product_id: str
    title: str
    message: str
    created_at: str = field(default_factory=lambda: to_utc_z(utcnow()))
    read: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class LowStockNotifier:
    """
    Raises one alert per product each time it enters the low-stock state.

    CEOs get no alerts; accountants and secretaries watch every product;
    partners watch their own. The set of alerted product ids is cleared
    when the notifier starts (a new session) and an id leaves the set as
    soon as its product recovers, so the next crossing alerts again.
    """

    def __init__(self, store: DataStore, auth: AuthProvider):
        self.store = store
        self.auth = auth
        self._lock = threading.RLock()
        self._alerted: set[str] = set()
        self._notifications: list[Notification] = []
        self._alert_listeners: list[Callable[[Notification], None]] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def notifications(self) -> list[Notification]:
        with self._lock:
            return list(self._notifications)

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._notifications if not n.read)

    def on_alert(self, listener: Callable[[Notification], None]) -> None:
        with self._lock:
            self._alert_listeners.append(listener)

    def start(self) -> None:
        self.stop()
        with self._lock:
            self._alerted.clear()
            self._notifications.clear()
        self._unsubscribe = self.store.on_change(self._on_store_change)
        self.scan()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_store_change(self, table: str) -> None:
        if table == "products":
            self.scan()

    def _watches(self, role: Role, partner_id, product: dict) -> bool:
        if role in (Role.ACCOUNTANT, Role.SECRETARY):
            return True
        if role is Role.PARTNER:
            return partner_id is not None and product.get("partner_id") == partner_id
        return False

    def scan(self, products: list[dict] | None = None) -> list[Notification]:
        """Check products and return the alerts raised by this pass."""
        role = self.auth.role
        if role is None or role is Role.CEO:
            return []
        partner_id = self.auth.partner_id
        if products is None:
            products = self.store.products

        raised: list[Notification] = []
        with self._lock:
            present = {p.get("id") for p in products}
            self._alerted &= present
            for product in products:
                product_id = product.get("id")
                if not is_low_stock(product):
                    self._alerted.discard(product_id)
                    continue
                if not self._watches(role, partner_id, product) or product_id in self._alerted:
                    continue
                self._alerted.add(product_id)
                notification = Notification(
                    id=f"low-stock-{product_id}-{len(self._notifications) + 1}",
                    product_id=product_id,
                    title=LOW_STOCK_TITLE,
                    message=low_stock_message(product),
                )
                self._notifications.insert(0, notification)
                raised.append(notification)
            listeners = list(self._alert_listeners)

        for notification in raised:
            logger.info("Low stock alert: %s", notification.message)
            for listener in listeners:
                try:
                    listener(notification)
                except Exception:
                    logger.exception("Alert listener failed")
        return raised

    def mark_as_read(self, notification_id: str) -> bool:
        with self._lock:
            for notification in self._notifications:
                if notification.id == notification_id:
                    notification.read = True
                    return True
        return False

    def mark_all_as_read(self) -> int:
        with self._lock:
            unread = [n for n in self._notifications if not n.read]
            for notification in unread:
                notification.read = True
        return len(unread)
