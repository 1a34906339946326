# Overview: Column helpers shared by every Eno table model.

from __future__ import annotations

import uuid

from eno.time_utils import utcnow


def new_id() -> str:
    return str(uuid.uuid4())


def iso_date(value) -> str | None:
    return value.isoformat() if value is not None else None


# Python-side timestamp defaults: change events are built right after flush and
# must not trigger a reload of server-generated columns.
TIMESTAMP_DEFAULT = utcnow
