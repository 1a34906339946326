# Overview: Server-sent event stream of committed row changes, one stream per table.

import json
import queue
import time

from flask import Blueprint, Response, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from ..services import permission_service, session_service, table_service
from ..services.realtime import get_feed
from ..decorators import require_auth
from ..validation import NotFoundError


realtime_bp = Blueprint("realtime", __name__, url_prefix="/api/realtime")


def format_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, separators=(',', ':'))}\n\n"


@realtime_bp.get("/<table>")
@require_auth
def stream_route(table: str):
    """
    Stream INSERT/UPDATE/DELETE events for one table.

    Each message is a JSON object {"table", "event_type", "new", "old"}.
    Events outside the subscriber's row scope are not sent. Comment lines
    keep idle connections open. The bearer session is re-checked once per
    heartbeat; the stream ends after logout, expiry or deactivation.
    """
    try:
        policy = table_service.get_policy(table)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    viewer = permission_service.viewer_for(g.current_user)
    if not table_service.can_read(viewer, policy):
        return {"error": "Permission denied"}, 403

    app = current_app._get_current_object()
    logger = app.logger
    token = g.token
    heartbeat = float(app.config.get("ENO_SSE_HEARTBEAT_SECONDS", 15.0))
    inbox: queue.Queue = queue.Queue()
    unsubscribe = get_feed().subscribe(table, inbox.put)

    def session_alive() -> bool:
        # The generator runs after the request context is gone
        with app.app_context():
            try:
                return session_service.validate_session(token, touch=False) is not None
            except SQLAlchemyError:
                logger.exception("Could not re-check the session of the %s stream", table)
                return True

    def generate():
        checked_at = time.monotonic()
        try:
            yield ": connected\n\n"
            while True:
                try:
                    change = inbox.get(timeout=heartbeat)
                except queue.Empty:
                    change = None
                if time.monotonic() - checked_at >= heartbeat:
                    if not session_alive():
                        logger.info("Closing %s stream: session ended", table)
                        return
                    checked_at = time.monotonic()
                if change is None:
                    yield ": keep-alive\n\n"
                elif table_service.event_visible(viewer, change):
                    yield format_sse(change.to_dict())
        finally:
            unsubscribe()
            logger.debug("Realtime stream for %s closed", table)

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
