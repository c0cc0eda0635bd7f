# Overview: Service-layer operations for installments; reads, manual edits and cascade rescheduling.

"""
Installment Service

WHY: Manual edits (due date, status, paid date) must keep the remaining
pending installments on a monthly cadence, exactly like payments do.

READ API: the notification layer only reads through get_overdue,
get_upcoming and get_installment; it never writes installment state.
"""

from __future__ import annotations

from datetime import date, timedelta

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Customer, Installment, PaymentTransaction, Sale
from credit_ledger.time_utils import parse_iso_date, parse_iso_datetime, today as utc_today
from .concurrency import run_in_transaction
from .schedule_service import ScheduleUpdate, schedule_all_pending_monthly


STATUS_PENDING = "pending"
STATUS_PAID = "paid"
VALID_STATUSES = [STATUS_PENDING, STATUS_PAID]

UPDATABLE_FIELDS = [
    "due_date", "status", "amount_cents", "paid_amount_cents", "balance_cents",
    "days_overdue", "late_fee_cents", "late_fee_applied", "notes", "paid_date",
]
RESCHEDULE_TRIGGERS = {"due_date", "status", "paid_date"}


def compute_balance(amount_cents: int, paid_amount_cents: int) -> int:
    return max(0, amount_cents - paid_amount_cents)


# =============================================================================
# READS
# =============================================================================

def get_installment(installment_id: int) -> Installment | None:
    return db.session.query(Installment).filter_by(id=installment_id).first()


def require_installment(installment_id: int) -> Installment:
    installment = get_installment(installment_id)
    if not installment:
        raise NotFoundError(f"Installment {installment_id} not found")
    return installment


def get_installments_by_sale(sale_id: int) -> list[Installment]:
    """All installments of a sale by fixed position, regardless of due dates."""
    return (
        db.session.query(Installment)
        .filter_by(sale_id=sale_id)
        .order_by(Installment.installment_number)
        .all()
    )


def list_installments() -> list[Installment]:
    return db.session.query(Installment).order_by(Installment.sale_id, Installment.installment_number).all()


def _with_sale_context(rows) -> list[dict]:
    result = []
    for installment, sale_number, customer_id, customer_name in rows:
        data = installment.to_dict()
        data["sale_number"] = sale_number
        data["customer_id"] = customer_id
        data["customer_name"] = customer_name
        result.append(data)
    return result


def _sale_context_query():
    return (
        db.session.query(Installment, Sale.sale_number, Sale.customer_id, Customer.name)
        .join(Sale, Installment.sale_id == Sale.id)
        .join(Customer, Sale.customer_id == Customer.id)
    )


def get_overdue(today: date | None = None) -> list[dict]:
    """Pending installments past their due date that still owe money."""
    day = today or utc_today()
    rows = (
        _sale_context_query()
        .filter(
            Installment.status != STATUS_PAID,
            Installment.due_date < day,
            Installment.balance_cents > 0,
        )
        .order_by(Installment.due_date, Installment.id)
        .all()
    )
    return _with_sale_context(rows)


def get_upcoming(limit: int = 5, today: date | None = None) -> list[dict]:
    """Pending installments due within the upcoming window (today inclusive)."""
    day = today or utc_today()
    window_end = day + timedelta(days=current_app.config.get("UPCOMING_WINDOW_DAYS", 3))
    rows = (
        _sale_context_query()
        .filter(
            Installment.status == STATUS_PENDING,
            Installment.due_date >= day,
            Installment.due_date <= window_end,
            Installment.balance_cents > 0,
        )
        .order_by(Installment.due_date, Installment.id)
        .limit(limit)
        .all()
    )
    return _with_sale_context(rows)


def get_transactions_by_sale(sale_id: int) -> list[PaymentTransaction]:
    return (
        db.session.query(PaymentTransaction)
        .filter_by(sale_id=sale_id)
        .order_by(PaymentTransaction.transaction_date.desc(), PaymentTransaction.id.desc())
        .all()
    )


# =============================================================================
# RESCHEDULING
# =============================================================================

def apply_reschedule(sale_id: int) -> list[ScheduleUpdate]:
    """
    Recompute pending due dates for a sale and stage the changes on the session.

    Must run inside the caller's transaction. Failures are logged and
    swallowed: the payment or edit that triggered the reschedule still
    commits, only the schedule stays stale.
    """
    try:
        installments = get_installments_by_sale(sale_id)
        updates = schedule_all_pending_monthly(installments)
        by_id = {inst.id: inst for inst in installments}
        for update in updates:
            by_id[update.installment_id].due_date = update.new_due_date
    except Exception:
        current_app.logger.exception("Failed to reschedule installments for sale %s", sale_id)
        return []

    if updates:
        current_app.logger.info(
            "Rescheduled %d pending installment(s) of sale %s", len(updates), sale_id
        )
    return updates


def reschedule_sale(sale_id: int) -> list[ScheduleUpdate]:
    """Standalone reschedule (CLI / repair); idempotent."""
    def _op():
        if not db.session.query(Sale.id).filter_by(id=sale_id).first():
            raise NotFoundError(f"Sale {sale_id} not found")
        return apply_reschedule(sale_id)

    return run_in_transaction(_op)


# =============================================================================
# MANUAL WRITES
# =============================================================================

def _coerce_field(key: str, value):
    if key == "due_date":
        try:
            parsed = parse_iso_date(value)
        except (AttributeError, TypeError, ValueError):
            raise ValidationError(f"due_date must be an ISO-8601 date, got {value!r}")
        if parsed is None:
            raise ValidationError("due_date cannot be empty")
        return parsed
    if key == "paid_date":
        if value is None or value == "":
            return None
        try:
            return parse_iso_datetime(value)
        except (AttributeError, TypeError, ValueError):
            raise ValidationError(f"paid_date must be an ISO-8601 datetime, got {value!r}")
    if key == "status":
        if value not in VALID_STATUSES:
            raise ValidationError(f"Invalid status: {value}. Must be one of {VALID_STATUSES}")
        return value
    if key in ("amount_cents", "paid_amount_cents", "balance_cents", "days_overdue", "late_fee_cents"):
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError(f"{key} must be a non-negative integer")
        return value
    if key == "late_fee_applied":
        return bool(value)
    return value


def update_installment(installment_id: int, fields: dict) -> Installment:
    """
    Persist a manual edit of an installment.

    Unknown keys are ignored. balance_cents follows amount/paid_amount; an
    explicit balance that disagrees with them is rejected. When due_date,
    status or paid_date actually change, the sale is rescheduled.
    """
    def _op():
        installment = require_installment(installment_id)

        changed = set()
        for key in UPDATABLE_FIELDS:
            if key not in fields:
                continue
            value = _coerce_field(key, fields[key])
            if getattr(installment, key) != value:
                setattr(installment, key, value)
                changed.add(key)

        expected_balance = compute_balance(installment.amount_cents, installment.paid_amount_cents)
        if "balance_cents" in fields and fields["balance_cents"] != expected_balance:
            raise ValidationError(
                f"balance_cents must equal amount_cents - paid_amount_cents ({expected_balance})"
            )
        installment.balance_cents = expected_balance

        if changed & RESCHEDULE_TRIGGERS:
            db.session.flush()
            apply_reschedule(installment.sale_id)

        return installment

    return run_in_transaction(_op)


def create_installment(data: dict) -> Installment:
    """Add an installment row by hand; the original_* baseline defaults to the given values."""
    def _op():
        sale = db.session.query(Sale).filter_by(id=data.get("sale_id")).first()
        if not sale:
            raise NotFoundError(f"Sale {data.get('sale_id')} not found")

        number = data.get("installment_number")
        if not isinstance(number, int) or number < 1:
            raise ValidationError("installment_number must be a positive integer")
        if db.session.query(Installment.id).filter_by(sale_id=sale.id, installment_number=number).first():
            raise ValidationError(f"Sale {sale.id} already has installment {number}")

        due_date = _coerce_field("due_date", data.get("due_date"))
        amount = _coerce_field("amount_cents", data.get("amount_cents"))
        paid_amount = _coerce_field("paid_amount_cents", data.get("paid_amount_cents", 0))
        status = _coerce_field("status", data.get("status", STATUS_PENDING))

        original_due = data.get("original_due_date")
        installment = Installment(
            sale_id=sale.id,
            installment_number=number,
            original_installment_number=data.get("original_installment_number") or number,
            due_date=due_date,
            original_due_date=_coerce_field("due_date", original_due) if original_due else due_date,
            amount_cents=amount,
            paid_amount_cents=paid_amount,
            balance_cents=compute_balance(amount, paid_amount),
            status=status,
            paid_date=_coerce_field("paid_date", data.get("paid_date")),
            days_overdue=data.get("days_overdue") or 0,
            late_fee_cents=data.get("late_fee_cents") or 0,
            late_fee_applied=bool(data.get("late_fee_applied")),
            notes=data.get("notes"),
        )
        db.session.add(installment)
        db.session.flush()
        return installment

    return run_in_transaction(_op)


def delete_installment(installment_id: int) -> None:
    """Remove one installment together with its payment transactions."""
    def _op():
        installment = require_installment(installment_id)
        db.session.delete(installment)

    run_in_transaction(_op)
