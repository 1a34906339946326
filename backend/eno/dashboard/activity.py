# Overview: Activity journal helpers; action types and filters.

from __future__ import annotations

ALL = "all"
RECENT_LIMIT = 100


def load_recent(client, limit: int = RECENT_LIMIT) -> list[dict]:
    """Newest journal entries first."""
    return client.select("activity_log", order="created_at", desc=True, limit=limit)


def action_types(logs: list[dict]) -> list[str]:
    """Distinct actions in first-seen order."""
    seen: dict[str, None] = {}
    for log in logs:
        action = log.get("action")
        if action is not None:
            seen.setdefault(action, None)
    return list(seen)


def filter_logs(logs: list[dict], *, user_id: str = ALL, action: str = ALL) -> list[dict]:
    return [
        log for log in logs
        if (user_id == ALL or log.get("user_id") == user_id)
        and (action == ALL or log.get("action") == action)
    ]


def prepend_entry(logs: list[dict], change: dict) -> list[dict]:
    """Apply an activity_log INSERT event to a newest-first list."""
    if change.get("event_type") != "INSERT" or not change.get("new"):
        return logs
    return [change["new"], *logs]
