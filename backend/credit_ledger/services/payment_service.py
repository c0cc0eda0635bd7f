# Overview: Service-layer operations for installment payments; encapsulates business logic and database work.

"""
Payment Recording Service

WHY: Collect installment payments while keeping the installment balances
and the payment transaction audit log reconcilable.

DESIGN PRINCIPLES:
- Partial payments are accepted but never persisted as a status: the row
  stays "pending" until its balance reaches zero
- No overpayment: a payment can never exceed the remaining balance
- Append-only log: every payment writes a "completed" PaymentTransaction
- A payment that closes an installment re-anchors the remaining pending
  installments on the month after the payment
- Installment update, transaction insert and reschedule writes commit or
  roll back together
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import ValidationError
from ..models import Installment, PaymentTransaction
from credit_ledger.time_utils import parse_iso_datetime, utcnow
from .concurrency import run_in_transaction
from .installment_service import (
    STATUS_PAID,
    STATUS_PENDING,
    apply_reschedule,
    compute_balance,
    require_installment,
)


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "cash"
METHOD_CREDIT_CARD = "credit_card"
METHOD_DEBIT_CARD = "debit_card"
METHOD_BANK_TRANSFER = "bank_transfer"
METHOD_CHECK = "check"

VALID_PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_CREDIT_CARD,
    METHOD_DEBIT_CARD,
    METHOD_BANK_TRANSFER,
    METHOD_CHECK,
]

TRANSACTION_COMPLETED = "completed"
TRANSACTION_CANCELLED = "cancelled"

EARLY_PAYMENT_NOTE = "Pago adelantado"
MARKED_AS_PAID_REFERENCE = "Marcado como pagado"


def _parse_payment_date(payment_date) -> datetime:
    if payment_date is None or payment_date == "":
        return utcnow()
    if isinstance(payment_date, datetime):
        return payment_date
    try:
        return parse_iso_datetime(payment_date)
    except (AttributeError, TypeError, ValueError):
        raise ValidationError(f"payment_date must be an ISO-8601 datetime, got {payment_date!r}")


def _validate_cents(value, label: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer amount of cents")
    if value <= 0:
        raise ValidationError(f"{label} must be greater than 0")


def _log_payment_transaction(
    installment: Installment,
    amount_cents: int,
    payment_method: str,
    reference: str | None,
    transaction_date: datetime,
) -> PaymentTransaction:
    """Append a completed transaction to the payment log."""
    transaction = PaymentTransaction(
        sale_id=installment.sale_id,
        installment_id=installment.id,
        amount_cents=amount_cents,
        payment_method=payment_method,
        payment_reference=reference,
        transaction_date=transaction_date,
        status=TRANSACTION_COMPLETED,
    )
    db.session.add(transaction)
    db.session.flush()
    return transaction


def _result(installment: Installment, transaction: PaymentTransaction | None, updates) -> dict:
    return {
        "installment": installment,
        "transaction": transaction,
        "rescheduled": updates[0] if updates else None,
    }


# =============================================================================
# PAYMENTS
# =============================================================================

def record_payment(
    installment_id: int,
    amount_cents: int,
    payment_method: str,
    reference: str | None = None,
    payment_date=None,
) -> dict:
    """
    Record a full or partial payment against one installment.

    Args:
        installment_id: Installment being paid
        amount_cents: Amount received (1..remaining balance)
        payment_method: cash, credit_card, debit_card, bank_transfer, check
        reference: Transfer id, check number, free text (optional)
        payment_date: ISO-8601 business date of the payment (default: now)

    Returns:
        {"installment", "transaction", "rescheduled"} where rescheduled is
        the first ScheduleUpdate applied, or None

    Raises:
        NotFoundError: installment missing
        ValidationError: non-positive amount, overpayment, bad method
    """
    def _op():
        _validate_cents(amount_cents, "Payment amount")
        if payment_method not in VALID_PAYMENT_METHODS:
            raise ValidationError(
                f"Invalid payment method: {payment_method}. Must be one of {VALID_PAYMENT_METHODS}"
            )

        installment = require_installment(installment_id)

        remaining = installment.amount_cents - installment.paid_amount_cents
        if amount_cents > remaining:
            raise ValidationError(
                f"Payment exceeds the remaining balance. Maximum: {max(0, remaining)}",
                details={"remaining_cents": max(0, remaining)},
            )

        paid_at = _parse_payment_date(payment_date)

        installment.paid_amount_cents += amount_cents
        installment.balance_cents = compute_balance(installment.amount_cents, installment.paid_amount_cents)
        installment.status = STATUS_PAID if installment.balance_cents == 0 else STATUS_PENDING
        if installment.status == STATUS_PAID:
            installment.paid_date = paid_at

        if paid_at.date() < installment.due_date:
            installment.notes = EARLY_PAYMENT_NOTE

        transaction = _log_payment_transaction(
            installment,
            amount_cents=amount_cents,
            payment_method=payment_method,
            reference=reference,
            transaction_date=paid_at,
        )

        updates = []
        if installment.status == STATUS_PAID:
            updates = apply_reschedule(installment.sale_id)

        return _result(installment, transaction, updates)

    return run_in_transaction(_op)


def mark_as_paid(installment_id: int, payment_date=None) -> dict:
    """
    Close an installment regardless of its remaining balance.

    Any remainder is logged as a synthetic cash transaction so the payment
    log still adds up to paid_amount.
    """
    def _op():
        installment = require_installment(installment_id)
        paid_at = _parse_payment_date(payment_date)

        remaining = installment.amount_cents - installment.paid_amount_cents

        installment.paid_amount_cents = installment.amount_cents
        installment.balance_cents = 0
        installment.status = STATUS_PAID
        installment.paid_date = paid_at

        transaction = None
        if remaining > 0:
            transaction = _log_payment_transaction(
                installment,
                amount_cents=remaining,
                payment_method=METHOD_CASH,
                reference=MARKED_AS_PAID_REFERENCE,
                transaction_date=paid_at,
            )

        updates = apply_reschedule(installment.sale_id)
        return _result(installment, transaction, updates)

    return run_in_transaction(_op)


# =============================================================================
# LATE FEES
# =============================================================================

def apply_late_fee(installment_id: int, fee_cents: int) -> Installment:
    """
    Add a flat late fee to an installment's amount.

    balance_cents is left as is; it catches up with the fee on
    the next payment event on this installment.
    """
    def _op():
        _validate_cents(fee_cents, "Late fee")
        installment = require_installment(installment_id)

        installment.amount_cents += fee_cents
        installment.late_fee_cents = fee_cents
        installment.late_fee_applied = True
        return installment

    return run_in_transaction(_op)
