# Overview: Pure normalization of loosely typed backup sale records into canonical import records.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from credit_ledger.errors import ValidationError
from credit_ledger.time_utils import parse_iso_datetime


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        raise ValidationError(f"Invalid integer: {value!r}")


def _to_cents(value: Any) -> int | None:
    """Backups store currency units ("150", 150, 149.99); the ledger stores cents."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    text = str(value).strip().replace("$", "").replace(",", "")
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _normalize_date(value: Any) -> str | None:
    text = _to_text(value)
    if text is None:
        return None
    try:
        parse_iso_datetime(text)
    except ValueError:
        raise ValidationError(f"date must be an ISO-8601 date or datetime, got {text!r}")
    return text


def _normalize_item(raw: dict[str, Any]) -> dict[str, Any]:
    quantity = _to_int(raw.get("quantity")) or 0
    unit_price_cents = _to_cents(raw.get("unit_price")) or 0
    return {
        "product_id": _to_int(raw.get("product_id")),
        "quantity": quantity,
        "unit_price_cents": unit_price_cents,
        "product_name": _to_text(raw.get("product_name")),
    }


def normalize_backup_sale(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Map a backup sale record to the canonical shape import_sale_from_backup expects.

    Missing amounts default to zero (total falls back to subtotal), an
    unknown payment_type is treated as cash, and cash sales are always paid.
    """
    customer_id = _to_int(raw.get("customer_id"))
    if customer_id is None:
        raise ValidationError("customer_id is required to import a sale")

    payment_type = "installments" if raw.get("payment_type") == "installments" else "cash"
    payment_status = "paid" if (raw.get("payment_status") == "paid" or payment_type == "cash") else "unpaid"

    subtotal_cents = _to_cents(raw.get("subtotal")) or 0
    total_cents = _to_cents(raw.get("total_amount"))
    if total_cents is None:
        total_cents = subtotal_cents

    number_of_installments = _to_int(raw.get("number_of_installments")) or None
    if payment_type == "installments" and number_of_installments is not None and number_of_installments < 1:
        raise ValidationError("number_of_installments must be at least 1")

    items = raw.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    return {
        "customer_id": customer_id,
        "customer_name": _to_text(raw.get("customer_name")),
        "sale_number": _to_text(raw.get("sale_number")),
        "reference_code": _to_text(raw.get("reference_code")),
        "date": _normalize_date(raw.get("date")),
        "subtotal_cents": subtotal_cents,
        "total_cents": total_cents,
        "payment_type": payment_type,
        "payment_method": _to_text(raw.get("payment_method")),
        "payment_status": payment_status,
        "status": "pending" if raw.get("status") == "pending" else "completed",
        "number_of_installments": number_of_installments,
        "installment_amount_cents": _to_cents(raw.get("installment_amount")),
        "notes": _to_text(raw.get("notes")),
        "items": [_normalize_item(item) for item in items if isinstance(item, dict)],
    }
