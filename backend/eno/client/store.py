# Overview: Client-side data synchronization; bulk-loads tracked tables and keeps them fresh from change events.

"""
DataStore invariants

- Local collections only change after a confirmed remote read, a confirmed
  remote write's change event, or a full refetch. Mutation methods never
  touch local state themselves.
- A failed bulk load changes nothing: previous collections are kept and
  last_error is set.
- stock_movements are kept newest first; every other table in fetch order
  with inserts appended.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from .base import DataClient, DataServiceError, Subscription

logger = logging.getLogger(__name__)

TRACKED_TABLES = (
    "partners",
    "products",
    "transactions",
    "deliveries",
    "stock_movements",
    "bank_deposits",
    "standard_orders",
    "partner_delivery_fees",
    "salaries",
)

# Tables read and kept newest first
_NEWEST_FIRST = {"stock_movements"}

DEFAULT_REFRESH_INTERVAL = 60.0

# Longest stop() waits for an in-flight periodic refresh
STOP_TIMEOUT = 5.0

ChangeListener = Callable[[str], Any]


class DataStore:
    """
    In-memory copy of the tables a signed-in profile can see.

    start() loads everything, subscribes to every table and starts the
    periodic refresh; stop() tears all of it down and empties the
    collections. Listeners registered with on_change() receive the table
    name each time that collection changes.
    """

    def __init__(
        self,
        client: DataClient,
        *,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        max_workers: int | None = None,
    ):
        self.client = client
        self.refresh_interval = refresh_interval
        self.max_workers = max_workers or len(TRACKED_TABLES)

        self._lock = threading.RLock()
        self._collections: dict[str, list[dict]] = {table: [] for table in TRACKED_TABLES}
        self._listeners: list[ChangeListener] = []
        self._subscriptions: list[Subscription] = []
        self._timer: threading.Thread | None = None
        self._stop = threading.Event()
        self._generation = 0

        # True until the first load finishes
        self.loading = True
        self.is_refreshing = False
        self.last_error: Exception | None = None

    # -- collections --

    def collection(self, table: str) -> list[dict]:
        if table not in self._collections:
            raise KeyError(f"Untracked table: {table}")
        with self._lock:
            return list(self._collections[table])

    def snapshot(self) -> dict[str, list[dict]]:
        with self._lock:
            return {table: list(rows) for table, rows in self._collections.items()}

    @property
    def partners(self) -> list[dict]:
        return self.collection("partners")

    @property
    def products(self) -> list[dict]:
        return self.collection("products")

    @property
    def transactions(self) -> list[dict]:
        return self.collection("transactions")

    @property
    def deliveries(self) -> list[dict]:
        return self.collection("deliveries")

    @property
    def stock_movements(self) -> list[dict]:
        return self.collection("stock_movements")

    @property
    def bank_deposits(self) -> list[dict]:
        return self.collection("bank_deposits")

    @property
    def standard_orders(self) -> list[dict]:
        return self.collection("standard_orders")

    @property
    def partner_delivery_fees(self) -> list[dict]:
        return self.collection("partner_delivery_fees")

    @property
    def salaries(self) -> list[dict]:
        return self.collection("salaries")

    # -- listeners --

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, tables) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for table in tables:
            for listener in listeners:
                try:
                    listener(table)
                except Exception:
                    logger.exception("Change listener failed for %s", table)

    # -- loading --

    def _read(self, table: str) -> list[dict]:
        if table in _NEWEST_FIRST:
            return self.client.select(table, order="created_at", desc=True)
        return self.client.select(table)

    def fetch_all(self, *, manual: bool = False) -> bool:
        """
        Bulk-read every tracked table concurrently.

        Returns True when all reads succeeded and the collections were
        replaced; False when any read failed (collections unchanged).
        """
        with self._lock:
            generation = self._generation
        if manual:
            self.is_refreshing = True
        else:
            self.loading = True
        try:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="eno-fetch") as pool:
                futures = {table: pool.submit(self._read, table) for table in TRACKED_TABLES}
                # result() re-raises the first failure
                results = {table: future.result() for table, future in futures.items()}
        except Exception as e:
            self.last_error = e
            logger.error("Error fetching data: %s", e)
            return False
        finally:
            self.loading = False
            self.is_refreshing = False

        with self._lock:
            if generation != self._generation:
                # stopped while reading; the session these rows belong to is gone
                return False
            for table, rows in results.items():
                self._collections[table] = list(rows or [])
            self.last_error = None
        self._notify(TRACKED_TABLES)
        return True

    def refresh(self) -> bool:
        return self.fetch_all(manual=True)

    # -- change events --

    def apply_event(self, change: dict) -> None:
        """Splice one {"table", "event_type", "new", "old"} event into its collection."""
        table = change.get("table")
        if table not in self._collections:
            return
        event_type = change.get("event_type")
        new = change.get("new") or {}
        old = change.get("old") or {}

        with self._lock:
            rows = self._collections[table]
            if event_type == "INSERT":
                index = _index_of(rows, new.get("id"))
                if index is not None:
                    rows[index] = new
                elif table in _NEWEST_FIRST:
                    rows.insert(0, new)
                else:
                    rows.append(new)
            elif event_type == "UPDATE":
                index = _index_of(rows, new.get("id"))
                if index is None:
                    return
                rows[index] = new
            elif event_type == "DELETE":
                row_id = old.get("id")
                self._collections[table] = [row for row in rows if row.get("id") != row_id]
            else:
                logger.warning("Ignoring unknown event type %r on %s", event_type, table)
                return
        self._notify((table,))

    # -- lifecycle --

    def start(self) -> bool:
        """Initial load, one subscription per table, then the refresh timer."""
        self.stop()
        loaded = self.fetch_all()
        subscriptions = []
        for table in TRACKED_TABLES:
            try:
                subscriptions.append(self.client.subscribe(table, self.apply_event))
            except DataServiceError as e:
                # tables outside the profile's read rights stay empty
                logger.debug("No subscription for %s: %s", table, e)
        with self._lock:
            self._subscriptions = subscriptions

        if self.refresh_interval and self.refresh_interval > 0:
            self._stop = threading.Event()
            self._timer = threading.Thread(
                target=self._refresh_loop, args=(self._stop,), name="eno-refresh", daemon=True,
            )
            self._timer.start()
        logger.debug("Data store started (%d subscriptions)", len(subscriptions))
        return loaded

    def _refresh_loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.refresh_interval):
            self.fetch_all()

    def stop(self) -> None:
        self._stop.set()
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
            timer, self._timer = self._timer, None
            self._generation += 1
            had_rows = any(self._collections.values())
            self._collections = {table: [] for table in TRACKED_TABLES}
        for subscription in subscriptions:
            subscription.unsubscribe()
        if timer is not None and timer is not threading.current_thread():
            # an in-flight read finishes first; its rows are discarded by the generation check
            timer.join(STOP_TIMEOUT)
        if had_rows:
            self._notify(TRACKED_TABLES)

    @property
    def running(self) -> bool:
        with self._lock:
            return bool(self._subscriptions)

    # -- mutations --
    # Each issues one remote write. The local collection changes when the
    # change event arrives, not here.

    def _add(self, table: str, row: dict) -> dict:
        return self.client.insert(table, row)

    def _update(self, table: str, row_id: str, updates: dict) -> None:
        self.client.update(table, row_id, updates)

    def _delete(self, table: str, row_id: str) -> None:
        self.client.delete(table, row_id)

    def add_partner(self, partner: dict) -> dict:
        code = self.client.rpc("generate_partner_code")
        return self._add("partners", {**partner, "id": code, "partner_code": code})

    def update_partner(self, partner_id: str, updates: dict) -> None:
        self._update("partners", partner_id, updates)

    def delete_partner(self, partner_id: str) -> dict:
        return self.client.rpc("delete_partner_and_dependents", {"partner_id": partner_id})

    def add_product(self, product: dict) -> dict:
        return self._add("products", product)

    def update_product(self, product_id: str, updates: dict) -> None:
        self._update("products", product_id, updates)

    def delete_product(self, product_id: str) -> None:
        self._delete("products", product_id)

    def add_transaction(self, transaction: dict) -> dict:
        return self._add("transactions", transaction)

    def update_transaction(self, transaction_id: str, updates: dict) -> None:
        self._update("transactions", transaction_id, updates)

    def delete_transaction(self, transaction_id: str) -> None:
        self._delete("transactions", transaction_id)

    def add_delivery(self, delivery: dict) -> dict:
        return self._add("deliveries", delivery)

    def update_delivery(self, delivery_id: str, updates: dict) -> None:
        self._update("deliveries", delivery_id, updates)

    def delete_delivery(self, delivery_id: str) -> None:
        self._delete("deliveries", delivery_id)

    def add_standard_order(self, order: dict) -> dict:
        return self._add("standard_orders", order)

    def update_standard_order(self, order_id: str, updates: dict) -> None:
        self._update("standard_orders", order_id, updates)

    def delete_standard_order(self, order_id: str) -> None:
        self._delete("standard_orders", order_id)

    def add_partner_delivery_fee(self, fee: dict) -> dict:
        return self._add("partner_delivery_fees", fee)

    def update_partner_delivery_fee(self, fee_id: str, updates: dict) -> None:
        self._update("partner_delivery_fees", fee_id, updates)

    def delete_partner_delivery_fee(self, fee_id: str) -> None:
        self._delete("partner_delivery_fees", fee_id)

    def add_stock_movement(self, movement: dict) -> dict:
        """Apply a movement through record_stock_movement; stock and history change together."""
        params = {
            key: movement.get(key)
            for key in ("product_id", "type", "quantity", "new_stock", "reason")
            if movement.get(key) is not None
        }
        return self.client.rpc("record_stock_movement", params)

    def add_bank_deposit(self, deposit: dict) -> dict:
        return self._add("bank_deposits", deposit)

    def add_salary(self, salary: dict) -> dict:
        return self._add("salaries", salary)

    def update_salary(self, salary_id: str, updates: dict) -> None:
        self._update("salaries", salary_id, updates)

    def delete_salary(self, salary_id: str) -> None:
        self._delete("salaries", salary_id)

    def reset_accounting(self) -> dict:
        counts = self.client.rpc("reset_accounting_data")
        self.fetch_all()
        return counts

    def reassign_partner_codes(self) -> list:
        updated = self.client.rpc("reassign_partner_codes")
        self.fetch_all()
        return updated


def _index_of(rows: list[dict], row_id) -> int | None:
    for index, row in enumerate(rows):
        if row.get("id") == row_id:
            return index
    return None
