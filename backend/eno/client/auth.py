# Overview: Client-side auth session provider; holds the current session and announces changes.

from __future__ import annotations

import logging
import threading
from typing import Callable

from ..permissions import Role
from .base import DataClient

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"

AuthListener = Callable[[str, "dict | None"], None]


class AuthProvider:
    """
    Wraps a DataClient's auth calls.

    Listeners get (event, session) where session is the payload returned
    by the data service ({"user", "capabilities", "menu", "session"}) or
    None after sign-out.
    """

    def __init__(self, client: DataClient):
        self.client = client
        self._session: dict | None = None
        self._listeners: list[AuthListener] = []
        self._lock = threading.RLock()

    @property
    def session(self) -> dict | None:
        with self._lock:
            return self._session

    @property
    def user(self) -> dict | None:
        session = self.session
        return session["user"] if session else None

    @property
    def role(self) -> Role | None:
        user = self.user
        return Role.parse(user["role"]) if user else None

    @property
    def partner_id(self) -> str | None:
        user = self.user
        return user.get("partner_id") if user else None

    @property
    def capabilities(self) -> frozenset:
        session = self.session
        return frozenset(session.get("capabilities") or ()) if session else frozenset()

    def can(self, code: str) -> bool:
        return code in self.capabilities

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
            session = self._session
        for listener in listeners:
            try:
                listener(event, session)
            except Exception:
                logger.exception("Auth listener failed on %s", event)

    def _set(self, session: dict | None, event: str) -> None:
        with self._lock:
            self._session = session
        self._emit(event)

    def sign_in(self, email: str, password: str) -> dict:
        session = self.client.sign_in(email, password)
        logger.info("Signed in as %s", session["user"].get("email"))
        self._set(session, SIGNED_IN)
        return session

    def sign_up(self, email: str, password: str, full_name: str | None = None,
                invitation_token: str | None = None) -> dict:
        session = self.client.sign_up(email, password, full_name=full_name, invitation_token=invitation_token)
        self._set(session, SIGNED_IN)
        return session

    def sign_out(self) -> None:
        if self.session is None:
            return
        try:
            self.client.sign_out()
        finally:
            self._set(None, SIGNED_OUT)

    def restore(self) -> dict | None:
        """Re-read the session from the data service; signs out locally if it expired."""
        session = self.client.get_session()
        if session is None:
            if self.session is not None:
                self._set(None, SIGNED_OUT)
            return None
        self._set(session, SIGNED_IN)
        return session

    def update_user(self, *, full_name: str | None = None, password: str | None = None) -> dict:
        changes = {k: v for k, v in (("full_name", full_name), ("password", password)) if v is not None}
        result = self.client.update_user(**changes)
        with self._lock:
            if self._session is not None:
                self._session = {**self._session, "user": result["user"]}
        self._emit(USER_UPDATED)
        return result["user"]
