# Overview: Shared concurrency helpers for service-layer writes.

from __future__ import annotations

import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking to a read that precedes a write.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Status changes that must not race (payment settlement, delivery) use a
    conditional UPDATE instead; see claim_status.
    """
    return query.with_for_update()


def claim_status(model, row_id: str, *, from_statuses, to_status: str, **values) -> bool:
    """
    Move a row to to_status only if it is currently in one of from_statuses.

    Issued as a single UPDATE ... WHERE status IN (...), so two concurrent
    callers cannot both win. Returns True if this caller made the change.
    Does not commit.
    """
    result = db.session.execute(
        update(model)
        .where(model.id == row_id, model.status.in_(list(from_statuses)))
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock-related failures.

    Retries on OperationalError (SQLite "database is locked", deadlocks).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc

