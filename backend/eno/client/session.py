# Overview: Per-session bundle wiring the client, auth provider, data store and notifier together.

from __future__ import annotations

import logging

from .auth import SIGNED_IN, SIGNED_OUT, AuthProvider
from .base import DataClient
from .notifications import LowStockNotifier
from .store import DEFAULT_REFRESH_INTERVAL, DataStore

logger = logging.getLogger(__name__)


class DashboardSession:
    """
    Explicitly constructed services for one dashboard user.

    Signing in starts the store and the notifier; signing out stops both
    and clears the cached rows.
    """

    def __init__(self, client: DataClient, *, refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
                 max_workers: int | None = None):
        self.client = client
        self.auth = AuthProvider(client)
        self.store = DataStore(client, refresh_interval=refresh_interval, max_workers=max_workers)
        self.notifier = LowStockNotifier(self.store, self.auth)
        self._unsubscribe = self.auth.on_auth_state_change(self._on_auth_event)

    @classmethod
    def from_app(cls, app, **kwargs) -> "DashboardSession":
        """In-process session against a Flask app; refresh interval comes from its config."""
        from .local import LocalClient

        kwargs.setdefault("refresh_interval", float(app.config.get("ENO_REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL)))
        return cls(LocalClient(app), **kwargs)

    def _on_auth_event(self, event: str, session) -> None:
        if event == SIGNED_IN:
            self.store.start()
            self.notifier.start()
        elif event == SIGNED_OUT:
            self.notifier.stop()
            self.store.stop()

    def sign_in(self, email: str, password: str) -> dict:
        return self.auth.sign_in(email, password)

    def sign_out(self) -> None:
        self.auth.sign_out()

    def close(self) -> None:
        self._unsubscribe()
        self.notifier.stop()
        self.store.stop()
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
