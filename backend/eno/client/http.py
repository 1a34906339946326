# Overview: DataClient over the JSON API using httpx; table streams are read on background threads.

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Iterable, Iterator

import httpx

from .base import ChangeCallback, DataClient, DataServiceError, Subscription

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_TIMEOUT = 2.0


def iter_sse_events(lines: Iterable[str]) -> Iterator[dict]:
    """
    Decode a server-sent event stream into JSON payloads.

    Comment lines (": keep-alive") are skipped; multi-line data fields are
    joined with newlines. Malformed payloads are logged and dropped.
    """
    data: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                chunk = "\n".join(data)
                data = []
                try:
                    yield json.loads(chunk)
                except ValueError:
                    logger.warning("Dropping malformed event payload: %r", chunk[:200])
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data.append(value[1:] if value.startswith(" ") else value)


class HttpClient(DataClient):
    """
    Talks to a running Eno Livraison API.

    Pass transport=httpx.WSGITransport(app=...) to drive a Flask app in
    process without a socket. Other keyword arguments (timeout, ...) go to
    httpx.Client unchanged, so its defaults apply.

    unsubscribe() waits up to close_timeout seconds for the stream reader to
    finish. With an in-process transport the reader stops at the next
    keep-alive line instead of being interrupted.
    """

    def __init__(self, base_url: str, *, transport=None, close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
                 **client_options):
        self.base_url = base_url.rstrip("/")
        self.close_timeout = close_timeout
        self._client = httpx.Client(base_url=self.base_url, transport=transport, **client_options)
        # The server generator runs on the reader thread and cannot be closed from another one
        self._in_process = isinstance(transport, httpx.WSGITransport)
        self._token: str | None = None
        self._lock = threading.RLock()
        self._streams: list[Subscription] = []

    @property
    def token(self) -> str | None:
        with self._lock:
            return self._token

    def _headers(self) -> dict:
        token = self.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise DataServiceError(f"Network error: {e}") from e
        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}
        if response.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else None
            raise DataServiceError(message or response.reason_phrase, response.status_code)
        return body

    def _remember(self, body: dict) -> dict:
        token = body.get("token")
        if token:
            with self._lock:
                self._token = token
        return body

    # -- auth --

    def sign_in(self, email: str, password: str) -> dict:
        return self._remember(self._request("POST", "/api/auth/login", json={"email": email, "password": password}))

    def sign_up(self, email: str, password: str, full_name: str | None = None,
                invitation_token: str | None = None) -> dict:
        payload = {"email": email, "password": password, "full_name": full_name}
        if invitation_token:
            payload["invitation_token"] = invitation_token
        return self._remember(self._request("POST", "/api/auth/signup", json=payload))

    def sign_out(self) -> None:
        if self.token is None:
            return
        try:
            self._request("POST", "/api/auth/logout")
        except DataServiceError as e:
            # An expired session is already signed out server-side
            if e.status != 401:
                raise
        finally:
            with self._lock:
                self._token = None

    def get_session(self) -> dict | None:
        if self.token is None:
            return None
        try:
            return self._request("GET", "/api/auth/session")
        except DataServiceError as e:
            if e.status == 401:
                return None
            raise

    def update_user(self, **changes) -> dict:
        return self._request("PATCH", "/api/auth/user", json=changes)

    # -- tables --

    def select(self, table: str, *, order: str | None = None, desc: bool = False,
               limit: int | None = None, filters: dict | None = None) -> list[dict]:
        params = dict(filters or {})
        if order:
            params["order"] = order
        if desc:
            params["desc"] = "true"
        if limit is not None:
            params["limit"] = limit
        return self._request("GET", f"/api/tables/{table}", params=params).get("rows", [])

    def insert(self, table: str, row: dict) -> dict:
        return self._request("POST", f"/api/tables/{table}", json=row)["row"]

    def update(self, table: str, row_id: str, patch: dict) -> dict:
        return self._request("PATCH", f"/api/tables/{table}/{row_id}", json=patch)["row"]

    def delete(self, table: str, row_id: str) -> None:
        self._request("DELETE", f"/api/tables/{table}/{row_id}")

    # -- procedures and change events --

    def rpc(self, name: str, params: dict | None = None) -> Any:
        return self._request("POST", f"/api/rpc/{name}", json=params or {}).get("data")

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        stop = threading.Event()
        headers = self._headers()
        opened: list[httpx.Response] = []

        def lines(response: httpx.Response) -> Iterator[str]:
            # Keep-alive comments pass through here, so a stopped stream ends within one heartbeat
            for line in response.iter_lines():
                if stop.is_set():
                    return
                yield line

        def run() -> None:
            try:
                with self._client.stream("GET", f"/api/realtime/{table}", headers=headers, timeout=None) as response:
                    opened.append(response)
                    if response.status_code >= 400:
                        logger.warning("Realtime stream for %s refused (%s)", table, response.status_code)
                        return
                    for payload in iter_sse_events(lines(response)):
                        if stop.is_set():
                            break
                        try:
                            callback(payload)
                        except Exception:
                            logger.exception("Change callback for %s failed", table)
            except httpx.HTTPError:
                if not stop.is_set():
                    logger.exception("Realtime stream for %s dropped", table)
            logger.debug("Realtime stream for %s ended", table)

        thread = threading.Thread(target=run, name=f"eno-realtime-{table}", daemon=True)

        def close() -> None:
            stop.set()
            with self._lock:
                self._streams = [s for s in self._streams if s.active]
            if threading.current_thread() is thread:
                return
            if opened and not self._in_process:
                # Unblocks a reader waiting on the socket
                try:
                    opened[0].close()
                except (httpx.HTTPError, RuntimeError) as e:
                    logger.debug("Closing realtime stream for %s: %s", table, e)
            thread.join(self.close_timeout)
            if thread.is_alive():
                logger.warning("Realtime reader for %s still running after %.1fs", table, self.close_timeout)

        thread.start()
        subscription = Subscription(table, close)
        with self._lock:
            self._streams.append(subscription)
        return subscription

    def close(self) -> None:
        with self._lock:
            streams, self._streams = self._streams, []
        for subscription in streams:
            subscription.unsubscribe()
        self._client.close()
