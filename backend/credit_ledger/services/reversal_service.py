# Overview: Service-layer operations for payment reversals; undoes one logged payment on an installment.

"""
Reversal Service

WHY: Payments entered by mistake must be undone without losing the audit
trail. The transaction is flipped to "cancelled", never deleted.

SCHEDULE: a reverted installment that becomes pending again goes back to
its original_due_date. The scheduler is not re-run here.

KNOWN GAP: any completed transaction of the installment can be reverted,
even when newer payments exist on it. paid_amount is reduced by the
reverted amount only, so it can drift from what the remaining completed
transactions add up to.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import IntegrityError, NotFoundError, ValidationError
from ..models import Installment, PaymentTransaction
from .concurrency import run_in_transaction
from .installment_service import STATUS_PAID, STATUS_PENDING, compute_balance
from .payment_service import TRANSACTION_CANCELLED


def revert_payment(installment_id: int, transaction_id: int) -> Installment:
    """
    Revert one payment transaction of an installment.

    Raises:
        NotFoundError: transaction or installment missing
        IntegrityError: transaction belongs to another installment
        ValidationError: transaction already cancelled
    """
    def _op():
        transaction = db.session.query(PaymentTransaction).filter_by(id=transaction_id).first()
        if not transaction:
            raise NotFoundError(f"Payment transaction {transaction_id} not found")

        installment = db.session.query(Installment).filter_by(id=installment_id).first()
        if not installment:
            raise NotFoundError(f"Installment {installment_id} not found")

        if transaction.installment_id != installment.id:
            raise IntegrityError(
                f"Payment transaction {transaction_id} does not belong to installment {installment_id}",
                details={"transaction_installment_id": transaction.installment_id},
            )

        if transaction.status == TRANSACTION_CANCELLED:
            raise ValidationError(f"Payment transaction {transaction_id} is already cancelled")

        installment.paid_amount_cents = max(0, installment.paid_amount_cents - transaction.amount_cents)
        installment.balance_cents = compute_balance(installment.amount_cents, installment.paid_amount_cents)
        installment.status = STATUS_PAID if installment.balance_cents == 0 else STATUS_PENDING

        if installment.status == STATUS_PENDING:
            installment.paid_date = None
            installment.notes = None
            installment.due_date = installment.original_due_date or installment.due_date

        transaction.status = TRANSACTION_CANCELLED
        return installment

    return run_in_transaction(_op)
