# Overview: Explicit transaction scopes and retry handling for ledger writes.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError

from ..extensions import db


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute func inside one database transaction.

    Commits when func returns, rolls back on any exception and re-raises it.
    OperationalError (SQLite "database is locked") is retried with
    exponential backoff; every other error propagates after the rollback.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
