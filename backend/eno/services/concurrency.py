# Overview: Row locking and retry helpers for stock writes that read a level and then change it.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """SELECT ... FOR UPDATE on the product row (a no-op on SQLite)."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func, rolling back and retrying when the database reports a lock
    conflict or a stale row. The last failure propagates.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as e:
            db.session.rollback()
            if attempt == attempts:
                raise
            logger.warning("Retrying stock write after %s (attempt %d/%d)", type(e).__name__, attempt, attempts)
            time.sleep(backoff_base * (2 ** (attempt - 1)))
