# Overview: In-process change feed; turns committed ORM changes into per-table change events.

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from flask import current_app, has_app_context
from sqlalchemy import event

"""
Change feed invariants

- Events are collected at flush time and published only after the
  transaction commits; a rollback discards them.
- One event per row change: INSERT carries new, DELETE carries old,
  UPDATE carries new plus the old primary key.
- Listeners run on the committing thread, outside the feed lock.
"""

logger = logging.getLogger(__name__)

FEED_EXTENSION_KEY = "eno_change_feed"
_PENDING_KEY = "eno_pending_changes"

# Tables whose row changes are published to subscribers
REALTIME_TABLES = frozenset({
    "partners",
    "products",
    "transactions",
    "deliveries",
    "stock_movements",
    "bank_deposits",
    "standard_orders",
    "partner_delivery_fees",
    "salaries",
    "profiles",
    "activity_log",
    "documents",
})


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str
    new: dict | None = None
    old: dict | None = None
    # Row scope captured at flush time so subscribers can be filtered without a DB round-trip
    partner_id: str | None = field(default=None, compare=False)
    owner_id: str | None = field(default=None, compare=False)

    @property
    def row(self) -> dict:
        return self.new if self.new is not None else (self.old or {})

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "event_type": self.event_type,
            "new": self.new,
            "old": self.old,
        }


class ChangeFeed:
    """Thread-safe publish/subscribe registry keyed by table name."""

    def __init__(self):
        self._lock = threading.RLock()
        self._listeners: dict[str, list[Callable[[ChangeEvent], Any]]] = {}

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], Any]) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(table, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(table, [])
                if callback in listeners:
                    listeners.remove(callback)

        return unsubscribe

    def listener_count(self, table: str) -> int:
        with self._lock:
            return len(self._listeners.get(table, []))

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            listeners = list(self._listeners.get(change.table, []))
        for callback in listeners:
            try:
                callback(change)
            except Exception:
                # A broken subscriber must not undo an already committed write
                logger.exception("Change listener failed for table %s", change.table)


def _scope_of(obj) -> tuple[str | None, str | None]:
    table = obj.__tablename__
    if table == "partners":
        return obj.id, None
    if table == "stock_movements":
        product = obj.product
        return (product.partner_id if product is not None else None), None
    if table == "profiles":
        return obj.partner_id, obj.id
    return getattr(obj, "partner_id", None), None


def _snapshot(event_type: str, obj) -> ChangeEvent:
    partner_id, owner_id = _scope_of(obj)
    row = obj.to_dict()
    if event_type == "INSERT":
        return ChangeEvent(obj.__tablename__, event_type, new=row, partner_id=partner_id, owner_id=owner_id)
    if event_type == "UPDATE":
        return ChangeEvent(obj.__tablename__, event_type, new=row, old={"id": obj.id},
                           partner_id=partner_id, owner_id=owner_id)
    return ChangeEvent(obj.__tablename__, event_type, old=row, partner_id=partner_id, owner_id=owner_id)


def _is_tracked(obj) -> bool:
    return getattr(obj, "__tablename__", None) in REALTIME_TABLES


def record_change(session, event_type: str, obj) -> None:
    """Queue an event for a change the ORM does not see (e.g. child rows of a profile)."""
    session.info.setdefault(_PENDING_KEY, []).append(_snapshot(event_type, obj))


def _after_flush(session, flush_context) -> None:
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        if _is_tracked(obj):
            pending.append(_snapshot("INSERT", obj))
    for obj in session.dirty:
        if _is_tracked(obj) and session.is_modified(obj, include_collections=False):
            pending.append(_snapshot("UPDATE", obj))
    for obj in session.deleted:
        if _is_tracked(obj):
            pending.append(_snapshot("DELETE", obj))


def _after_commit(session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending or not has_app_context():
        return
    feed = current_app.extensions.get(FEED_EXTENSION_KEY)
    if feed is None:
        return
    for change in pending:
        feed.publish(change)


def _after_soft_rollback(session, previous_transaction) -> None:
    session.info.pop(_PENDING_KEY, None)


def install_session_hooks(session) -> None:
    """Attach the flush/commit hooks once per session registry."""
    if event.contains(session, "after_flush", _after_flush):
        return
    event.listen(session, "after_flush", _after_flush)
    event.listen(session, "after_commit", _after_commit)
    event.listen(session, "after_soft_rollback", _after_soft_rollback)


def get_feed() -> ChangeFeed:
    return current_app.extensions[FEED_EXTENSION_KEY]
