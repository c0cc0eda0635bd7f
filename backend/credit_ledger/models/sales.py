from __future__ import annotations

from ..extensions import db
from credit_ledger.time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale document, paid either in cash or in monthly installments.

    Both sale_number and reference_code are globally unique, in independent
    namespaces, and never change once the sale exists.

    PAYMENT STATUS:
    - paid: cash sales, and installment sales closed by the user
    - unpaid: installment sales still being collected
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_customer_date", "customer_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Human-readable sale number (e.g., "VTA-001-20230515")
    sale_number = db.Column(db.String(64), nullable=False, unique=True)
    # Secondary numeric code handed to the customer
    reference_code = db.Column(db.String(32), nullable=False, unique=True)

    # Business date of the sale (UTC-naive)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Amounts (all in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_type = db.Column(db.String(16), nullable=False)  # cash, installments
    payment_method = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)  # paid, unpaid
    status = db.Column(db.String(16), nullable=False, default="completed")  # completed, pending

    number_of_installments = db.Column(db.Integer, nullable=True)
    installment_amount_cents = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        cascade="all, delete",
        lazy=True,
        order_by="SaleItem.id",
    )
    installments = db.relationship(
        "Installment",
        backref="sale",
        cascade="all, delete",
        lazy=True,
        order_by="Installment.installment_number",
    )
    payment_transactions = db.relationship(
        "PaymentTransaction",
        backref="sale",
        cascade="all, delete",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "sale_number": self.sale_number,
            "reference_code": self.reference_code,
            "date": to_utc_z(self.date),
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payment_type": self.payment_type,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "status": self.status,
            "number_of_installments": self.number_of_installments,
            "installment_amount_cents": self.installment_amount_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """
    Line item on a sale.

    product_name is a snapshot taken at sale time so the line still reads
    correctly after the catalog product is renamed or deleted.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "product_name": self.product_name,
        }


class PaymentTransaction(db.Model):
    """
    Append-only ledger of installment payments.

    WHY: Installment balances are mutable; this table is the audit trail
    they must stay reconcilable with.

    STATUS:
    - completed: money received
    - cancelled: payment reverted (row kept for audit)

    Rows are never updated except for the completed -> cancelled flip, and
    only deleted by the administrative purge or with their sale/installment.
    """
    __tablename__ = "payment_transactions"
    __table_args__ = (
        db.Index("ix_payment_txns_sale_date", "sale_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_id = db.Column(
        db.Integer,
        db.ForeignKey("installments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    payment_reference = db.Column(db.String(255), nullable=True)

    # Business time of the payment
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)  # completed, cancelled

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "installment_id": self.installment_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "transaction_date": to_utc_z(self.transaction_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
