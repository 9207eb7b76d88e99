# Overview: Service-layer operations for concurrency; bounded retry around stock row writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import WriteConflict
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _configured_attempts() -> int:
    try:
        return int(current_app.config.get("WRITE_RETRY_ATTEMPTS", 3))
    except RuntimeError:
        # Outside an app context (plain unit use)
        return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.02):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Each attempt starts from a rolled-back session, so `func` re-reads the
    row it is about to change.

    - StaleDataError (version_id mismatch: another writer changed the row)
      is retried; once attempts are exhausted it surfaces as WriteConflict.
    - OperationalError (lock timeout, deadlock victim) is retried; once
      attempts are exhausted the original error propagates and is treated
      as an unexpected persistence failure by the caller.
    - Anything else rolls back and propagates immediately.
    """
    if attempts is None:
        attempts = _configured_attempts()
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except StaleDataError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise WriteConflict(
                    "The record was changed by someone else; please reload and try again",
                    details={"attempts": attempts},
                ) from exc
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
        except Exception:
            db.session.rollback()
            raise
        time.sleep(backoff_base * (2 ** attempt))

