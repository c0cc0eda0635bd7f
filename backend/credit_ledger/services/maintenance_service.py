# Overview: Service-layer operations for administrative maintenance of the payment log.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import PaymentTransaction
from credit_ledger.time_utils import utcnow
from .payment_service import TRANSACTION_CANCELLED


def purge_payment_transactions(*, cancelled_only: bool = False, retention_days: int | None = None) -> int:
    """
    Bulk delete payment transactions.

    This is the only path that hard-deletes the payment log. With
    cancelled_only, completed payments are kept; with retention_days, only
    rows whose transaction_date is older than the window are removed.
    Installment balances are not touched.
    """
    q = db.session.query(PaymentTransaction)
    if cancelled_only:
        q = q.filter(PaymentTransaction.status == TRANSACTION_CANCELLED)
    if retention_days is not None:
        cutoff = utcnow() - timedelta(days=retention_days)
        q = q.filter(PaymentTransaction.transaction_date < cutoff)

    deleted = q.delete(synchronize_session=False)
    db.session.commit()
    return deleted
