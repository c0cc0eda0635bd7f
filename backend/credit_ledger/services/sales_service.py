# Overview: Service-layer operations for the sale ledger; creation, backup import, reads and edits.

"""
Sales Service - Sale ledger creation and backup import

WHY: A sale, its line items and its installment schedule are one unit.
They are written in a single transaction so an installment sale can never
exist without its schedule.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Customer, Installment, PaymentTransaction, Product, Sale, SaleItem
from credit_ledger.time_utils import parse_iso_date, parse_iso_datetime, utcnow
from .concurrency import run_in_transaction
from .identifier_service import (
    ensure_unique_reference_code,
    ensure_unique_sale_number,
    generate_unique_reference_code,
    generate_unique_sale_number,
)
from .schedule_service import initial_schedule


PAYMENT_TYPE_CASH = "cash"
PAYMENT_TYPE_INSTALLMENTS = "installments"
VALID_PAYMENT_TYPES = [PAYMENT_TYPE_CASH, PAYMENT_TYPE_INSTALLMENTS]

UNCATALOGUED_PRODUCT_NAME = "Producto sin catálogo"

UPDATABLE_SALE_FIELDS = ["customer_id", "date", "payment_method", "payment_status", "status", "notes"]


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def split_total(total_cents: int, count: int) -> int:
    """Per-installment amount: the total divided evenly, rounded half up."""
    return round_half_up(Decimal(total_cents) / Decimal(count))


def _placeholder_product_name(product_id: int | None) -> str:
    if product_id is not None:
        return f"Producto {product_id}"
    return UNCATALOGUED_PRODUCT_NAME


def _catalog_product(product_id: int | None) -> Product | None:
    if product_id is None:
        return None
    return db.session.query(Product).filter_by(id=product_id).first()


def _parse_sale_date(value: str | None):
    if not value:
        return utcnow()
    try:
        return parse_iso_datetime(value)
    except (AttributeError, TypeError, ValueError):
        raise ValidationError(f"date must be an ISO-8601 datetime, got {value!r}")


def _schedule_anchor(raw_date, sale_date):
    """Calendar day written in the input; the UTC-converted sale date when there is none."""
    if isinstance(raw_date, str) and raw_date.strip():
        try:
            return parse_iso_date(raw_date)
        except ValueError:
            pass
    return sale_date.date()


def _add_installments(sale: Sale, anchor_date, count: int, amount_cents: int) -> list[Installment]:
    installments = []
    for number, due in enumerate(initial_schedule(anchor_date, count), start=1):
        installment = Installment(
            installment_number=number,
            original_installment_number=number,
            due_date=due,
            original_due_date=due,
            amount_cents=amount_cents,
            paid_amount_cents=0,
            balance_cents=amount_cents,
            status="pending",
            days_overdue=0,
            late_fee_cents=0,
            late_fee_applied=False,
        )
        sale.installments.append(installment)
        installments.append(installment)
    return installments


def _validate_items(items: list[dict]) -> None:
    if not items:
        raise ValidationError("A sale needs at least one item")
    for item in items:
        quantity = item.get("quantity")
        unit_price = item.get("unit_price_cents")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError("Item quantity must be a positive integer")
        if not isinstance(unit_price, int) or isinstance(unit_price, bool) or unit_price < 0:
            raise ValidationError("Item unit_price_cents must be a non-negative integer")


def create_sale(data: dict) -> Sale:
    """
    Create a sale with its items and, for installment sales, its schedule.

    data:
        customer_id, items [{product_id, quantity, unit_price_cents, product_name}],
        payment_type (cash | installments), number_of_installments,
        payment_method, discount_cents, tax_cents, date (ISO-8601), notes

    Catalog problems never abort the sale: a missing product gets a
    placeholder name and no stock movement.
    """
    items = data.get("items") or []
    payment_type = data.get("payment_type")
    number_of_installments = data.get("number_of_installments")

    if payment_type not in VALID_PAYMENT_TYPES:
        raise ValidationError(f"Invalid payment type: {payment_type}. Must be one of {VALID_PAYMENT_TYPES}")
    _validate_items(items)
    if payment_type == PAYMENT_TYPE_INSTALLMENTS:
        if not isinstance(number_of_installments, int) or number_of_installments < 1:
            raise ValidationError("number_of_installments must be a positive integer for installment sales")

    discount_cents = data.get("discount_cents") or 0
    tax_cents = data.get("tax_cents") or 0
    for label, value in (("discount_cents", discount_cents), ("tax_cents", tax_cents)):
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError(f"{label} must be a non-negative integer")

    def _op():
        customer = db.session.query(Customer).filter_by(id=data.get("customer_id")).first()
        if not customer:
            raise NotFoundError(f"Customer {data.get('customer_id')} not found")

        subtotal = sum(item["quantity"] * item["unit_price_cents"] for item in items)
        total = subtotal - discount_cents + tax_cents
        if total < 0:
            raise ValidationError(
                "discount_cents cannot exceed subtotal plus tax",
                details={"subtotal_cents": subtotal, "discount_cents": discount_cents, "tax_cents": tax_cents},
            )
        sale_date = _parse_sale_date(data.get("date"))

        installment_amount = None
        if payment_type == PAYMENT_TYPE_INSTALLMENTS:
            installment_amount = split_total(total, number_of_installments)

        sale = Sale(
            customer_id=customer.id,
            sale_number=generate_unique_sale_number(),
            reference_code=generate_unique_reference_code(),
            date=sale_date,
            subtotal_cents=subtotal,
            discount_cents=discount_cents,
            tax_cents=tax_cents,
            total_cents=total,
            payment_type=payment_type,
            payment_method=data.get("payment_method"),
            payment_status="paid" if payment_type == PAYMENT_TYPE_CASH else "unpaid",
            status="completed",
            number_of_installments=number_of_installments if payment_type == PAYMENT_TYPE_INSTALLMENTS else None,
            installment_amount_cents=installment_amount,
            notes=data.get("notes"),
        )
        db.session.add(sale)

        for item in items:
            product = _catalog_product(item.get("product_id"))
            product_name = (
                (product.name if product else None)
                or item.get("product_name")
                or _placeholder_product_name(item.get("product_id"))
            )
            sale.items.append(SaleItem(
                product_id=item.get("product_id"),
                quantity=item["quantity"],
                unit_price_cents=item["unit_price_cents"],
                line_total_cents=item["quantity"] * item["unit_price_cents"],
                product_name=product_name,
            ))

            if product and product.stock is not None:
                product.stock = max(0, product.stock - item["quantity"])

        if payment_type == PAYMENT_TYPE_INSTALLMENTS:
            anchor = _schedule_anchor(data.get("date"), sale_date)
            _add_installments(sale, anchor, number_of_installments, installment_amount)

        db.session.flush()
        return sale

    return run_in_transaction(_op)


def import_sale_from_backup(record: dict) -> Sale:
    """
    Recreate a sale from a normalized backup record (see backup_schema).

    Keeps the backup's date, sale number and reference code when they are
    still free. Unknown customers are recreated as placeholders. Stock is
    not touched: the backup already reflects it.
    """
    customer_id = record.get("customer_id")
    if customer_id is None:
        raise ValidationError("customer_id is required to import a sale")

    def _op():
        customer = db.session.query(Customer).filter_by(id=customer_id).first()
        if not customer:
            customer = Customer(
                id=customer_id,
                name=record.get("customer_name") or f"Cliente {customer_id}",
            )
            db.session.add(customer)
            db.session.flush()

        raw_date = record.get("date") or utcnow().isoformat()
        sale_date = _parse_sale_date(raw_date)

        total = record.get("total_cents")
        if total is None:
            total = record.get("subtotal_cents") or 0

        payment_type = record.get("payment_type") or PAYMENT_TYPE_CASH
        count = record.get("number_of_installments")
        installment_amount = record.get("installment_amount_cents")
        if installment_amount is None and count:
            installment_amount = split_total(total, count)

        sale = Sale(
            customer_id=customer.id,
            sale_number=ensure_unique_sale_number(record.get("sale_number")),
            reference_code=ensure_unique_reference_code(record.get("reference_code")),
            date=sale_date,
            subtotal_cents=record.get("subtotal_cents") or 0,
            discount_cents=0,
            tax_cents=0,
            total_cents=total,
            payment_type=payment_type,
            payment_method=record.get("payment_method"),
            payment_status=record.get("payment_status") or "unpaid",
            status=record.get("status") or "completed",
            number_of_installments=count,
            installment_amount_cents=installment_amount,
            notes=record.get("notes"),
        )
        db.session.add(sale)

        for item in record.get("items") or []:
            product_name = item.get("product_name")
            if not product_name:
                product = _catalog_product(item.get("product_id"))
                product_name = product.name if product else None
            sale.items.append(SaleItem(
                product_id=item.get("product_id"),
                quantity=item.get("quantity") or 0,
                unit_price_cents=item.get("unit_price_cents") or 0,
                line_total_cents=(item.get("quantity") or 0) * (item.get("unit_price_cents") or 0),
                product_name=product_name or _placeholder_product_name(item.get("product_id")),
            ))

        if payment_type == PAYMENT_TYPE_INSTALLMENTS and count:
            _add_installments(sale, _schedule_anchor(raw_date, sale_date), count, installment_amount)

        db.session.flush()
        return sale

    return run_in_transaction(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def list_sales() -> list[Sale]:
    return db.session.query(Sale).order_by(Sale.date.desc(), Sale.id.desc()).all()


def get_sale_with_details(sale_id: int) -> dict:
    """Sale plus its items, installments (by position) and transactions (newest first)."""
    sale = get_sale(sale_id)
    transactions = (
        db.session.query(PaymentTransaction)
        .filter_by(sale_id=sale_id)
        .order_by(PaymentTransaction.transaction_date.desc(), PaymentTransaction.id.desc())
        .all()
    )
    return {
        "sale": sale.to_dict(),
        "items": [item.to_dict() for item in sale.items],
        "installments": [inst.to_dict() for inst in sale.installments],
        "transactions": [txn.to_dict() for txn in transactions],
    }


def update_sale(sale_id: int, fields: dict) -> Sale:
    """Update the mutable sale fields; sale_number and reference_code never change."""
    def _op():
        sale = get_sale(sale_id)
        for key in UPDATABLE_SALE_FIELDS:
            if key not in fields:
                continue
            value = fields[key]
            if key == "date":
                value = _parse_sale_date(value)
            elif key == "customer_id":
                if not db.session.query(Customer).filter_by(id=value).first():
                    raise NotFoundError(f"Customer {value} not found")
            setattr(sale, key, value)
        return sale

    return run_in_transaction(_op)


def delete_sale(sale_id: int) -> None:
    """Delete a sale together with its items, installments and payment transactions."""
    def _op():
        sale = get_sale(sale_id)
        db.session.delete(sale)

    run_in_transaction(_op)
