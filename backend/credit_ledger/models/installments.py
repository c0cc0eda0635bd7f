from __future__ import annotations

from ..extensions import db
from credit_ledger.time_utils import to_iso_date, to_utc_z, today


class Installment(db.Model):
    """
    One monthly portion of an installment sale.

    POSITION:
    installment_number is assigned once (1..N) and never reordered. due_date
    moves over time (rescheduling, manual edits), so every ordering uses
    installment_number, never due_date.

    BASELINE:
    original_installment_number / original_due_date keep the values the row
    was created with; reverting a payment walks due_date back to them.

    STATUS: only "pending" or "paid" are stored. A partially paid row stays
    pending; "overdue" is derived from due_date and status.
    """
    __tablename__ = "installments"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "installment_number", name="uq_installments_sale_number"),
        db.Index("ix_installments_status_due", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)

    installment_number = db.Column(db.Integer, nullable=False)
    original_installment_number = db.Column(db.Integer, nullable=True)

    due_date = db.Column(db.Date, nullable=False)
    original_due_date = db.Column(db.Date, nullable=True)

    # Amounts (all in cents); balance = max(0, amount - paid_amount)
    amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)  # pending, paid
    paid_date = db.Column(db.DateTime(timezone=True), nullable=True)

    days_overdue = db.Column(db.Integer, nullable=False, default=0)
    late_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    late_fee_applied = db.Column(db.Boolean, nullable=False, default=False)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transactions = db.relationship(
        "PaymentTransaction",
        backref="installment",
        cascade="all, delete",
        lazy=True,
    )

    @property
    def is_overdue(self) -> bool:
        return self.status != "paid" and self.balance_cents > 0 and self.due_date < today()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "installment_number": self.installment_number,
            "original_installment_number": self.original_installment_number,
            "due_date": to_iso_date(self.due_date),
            "original_due_date": to_iso_date(self.original_due_date),
            "amount_cents": self.amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "balance_cents": self.balance_cents,
            "status": self.status,
            "paid_date": to_utc_z(self.paid_date),
            "days_overdue": self.days_overdue,
            "is_overdue": self.is_overdue,
            "late_fee_cents": self.late_fee_cents,
            "late_fee_applied": self.late_fee_applied,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
