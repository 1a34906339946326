# Overview: Home page figures shared by every role.

from __future__ import annotations

from .ceo import total_deliveries
from .partners import recent_partners
from .stock import low_stock_products


def home_stats(store) -> dict:
    deliveries = store.deliveries
    return {
        "active_products": len(store.products),
        "active_partners": len(store.partners),
        "low_stock_products": len(low_stock_products(store.products)),
        "pending_deliveries": sum(1 for d in deliveries if d.get("status") == "pending"),
        "total_deliveries": total_deliveries(store.partner_delivery_fees, store.standard_orders),
        "recent_partners": recent_partners(store.partners),
    }
