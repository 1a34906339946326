# Overview: In-process DataClient that calls the Flask services directly inside an app context.

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any

from flask import Flask

from ..extensions import db
from ..permissions import menu_for
from ..routes.rpc import call_procedure
from ..services import auth_service, permission_service, session_service, table_service
from ..services.permission_service import PermissionDeniedError
from ..services.realtime import get_feed
from ..validation import ConflictError, NotFoundError, ValidationError
from .base import ChangeCallback, DataClient, DataServiceError, Subscription

logger = logging.getLogger(__name__)

_STATUS = (
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ValidationError, 400),
    (ValueError, 400),
)


class LocalClient(DataClient):
    """
    Same services and access rules as the HTTP API, without a socket.

    The client holds a bearer token like a remote one would; every call
    validates it, so sign-out, expiry and deactivation behave the same.
    """

    def __init__(self, app: Flask):
        self.app = app
        self._token: str | None = None
        self._lock = threading.RLock()

    @contextmanager
    def _context(self):
        with self.app.app_context():
            try:
                yield
            except DataServiceError:
                db.session.rollback()
                raise
            except tuple(exc for exc, _ in _STATUS) as e:
                db.session.rollback()
                status = next(code for exc, code in _STATUS if isinstance(e, exc))
                raise DataServiceError(str(e), status) from e
            except Exception as e:
                db.session.rollback()
                logger.exception("Data service call failed")
                raise DataServiceError(str(e) or e.__class__.__name__, 500) from e

    def _current(self):
        with self._lock:
            token = self._token
        context = session_service.validate_session(token) if token else None
        if context is None:
            raise DataServiceError("Authentication required", 401)
        return context

    @staticmethod
    def _payload(profile, session, token=None) -> dict:
        body = {
            "user": profile.to_dict(),
            "capabilities": sorted(permission_service.get_user_permissions(profile)),
            "menu": [item.to_dict() for item in menu_for(profile.role, profile.permissions)],
            "session": session.to_dict(),
        }
        if token is not None:
            body["token"] = token
        return body

    def _open(self, profile) -> dict:
        session, token = session_service.create_session(profile.id, user_agent="eno-local-client")
        with self._lock:
            self._token = token
        return self._payload(profile, session, token)

    # -- auth --

    def sign_in(self, email: str, password: str) -> dict:
        with self._context():
            profile = auth_service.authenticate(email, password)
            if profile is None:
                raise DataServiceError("Invalid credentials", 401)
            return self._open(profile)

    def sign_up(self, email: str, password: str, full_name: str | None = None,
                invitation_token: str | None = None) -> dict:
        with self._context():
            profile = auth_service.sign_up(
                email=email, password=password, full_name=full_name, invitation_token=invitation_token,
            )
            return self._open(profile)

    def sign_out(self) -> None:
        with self._lock:
            token, self._token = self._token, None
        if token:
            with self._context():
                session_service.revoke_session(token)

    def get_session(self) -> dict | None:
        with self._lock:
            if self._token is None:
                return None
        with self._context():
            try:
                context = self._current()
            except DataServiceError:
                return None
            return self._payload(context.user, context.session)

    def update_user(self, **changes) -> dict:
        with self._context():
            profile = auth_service.update_own_account(
                self._current().user,
                full_name=changes.get("full_name"),
                password=changes.get("password"),
            )
            return {"user": profile.to_dict()}

    # -- tables --

    def select(self, table: str, *, order: str | None = None, desc: bool = False,
               limit: int | None = None, filters: dict | None = None) -> list[dict]:
        with self._context():
            return table_service.select(
                table, profile=self._current().user, order=order, desc=desc, limit=limit, filters=filters,
            )

    def insert(self, table: str, row: dict) -> dict:
        with self._context():
            return table_service.insert(table, profile=self._current().user, payload=dict(row))

    def update(self, table: str, row_id: str, patch: dict) -> dict:
        with self._context():
            return table_service.update(table, profile=self._current().user, row_id=row_id, payload=dict(patch))

    def delete(self, table: str, row_id: str) -> None:
        with self._context():
            table_service.delete(table, profile=self._current().user, row_id=row_id)

    # -- procedures and change events --

    def rpc(self, name: str, params: dict | None = None) -> Any:
        with self._context():
            return call_procedure(name, self._current().user, params)

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        with self._context():
            policy = table_service.get_policy(table)
            viewer = permission_service.viewer_for(self._current().user)
            if not table_service.can_read(viewer, policy):
                raise PermissionDeniedError("Permission denied")
            feed = get_feed()

        def deliver(change) -> None:
            if table_service.event_visible(viewer, change):
                callback(change.to_dict())

        unsubscribe = feed.subscribe(table, deliver)
        logger.debug("Subscribed to %s", table)
        return Subscription(table, unsubscribe)
