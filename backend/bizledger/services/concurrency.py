# Overview: Transaction helpers; row locks, commit-or-rollback, and retry on lock/version conflicts.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger("bizledger.concurrency")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func() as one all-or-nothing transaction.

    Commits when func returns, rolls back on any exception. Lock contention
    (OperationalError) and optimistic version conflicts (StaleDataError)
    are retried with exponential backoff; everything else propagates after
    the rollback.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Transaction conflict (attempt %s/%s): %s", attempt + 1, attempts, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
