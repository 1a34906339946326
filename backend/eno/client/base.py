# Overview: Transport-neutral contract between the dashboard client and the data service.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable


class DataServiceError(Exception):
    """A remote call failed. status is the HTTP-equivalent code when known."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        return f"DataServiceError({self.message!r}, status={self.status})"


class Subscription:
    """Handle returned by DataClient.subscribe; unsubscribe() is idempotent."""

    def __init__(self, table: str, closer: Callable[[], None]):
        self.table = table
        self._closer = closer
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._closer()


ChangeCallback = Callable[[dict], Any]


class DataClient(ABC):
    """
    What the dashboard needs from the data service.

    Rows and change events are plain dicts shaped like the server JSON.
    Change events look like {"table", "event_type", "new", "old"}.
    Every failure surfaces as DataServiceError.
    """

    # -- auth --

    @abstractmethod
    def sign_in(self, email: str, password: str) -> dict:
        """Returns the session payload ({"user", "capabilities", "menu", "session"})."""

    @abstractmethod
    def sign_up(self, email: str, password: str, full_name: str | None = None,
                invitation_token: str | None = None) -> dict:
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...

    @abstractmethod
    def get_session(self) -> dict | None:
        """Current session payload, or None when signed out or expired."""

    @abstractmethod
    def update_user(self, **changes) -> dict:
        ...

    # -- tables --

    @abstractmethod
    def select(self, table: str, *, order: str | None = None, desc: bool = False,
               limit: int | None = None, filters: dict | None = None) -> list[dict]:
        ...

    @abstractmethod
    def insert(self, table: str, row: dict) -> dict:
        ...

    @abstractmethod
    def update(self, table: str, row_id: str, patch: dict) -> dict:
        ...

    @abstractmethod
    def delete(self, table: str, row_id: str) -> None:
        ...

    # -- procedures and change events --

    @abstractmethod
    def rpc(self, name: str, params: dict | None = None) -> Any:
        ...

    @abstractmethod
    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        ...

    def close(self) -> None:
        """Release transport resources."""
