# Overview: Service-layer operations for customers buying on credit.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Customer, Sale
from .concurrency import run_in_transaction


CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "notes", "is_active"}


def _apply_customer_patch(customer: Customer, patch: dict) -> None:
    for key, value in patch.items():
        if key not in CUSTOMER_MUTABLE_FIELDS:
            continue
        if key == "name" and (not isinstance(value, str) or not value.strip()):
            raise ValidationError("name cannot be empty")
        if key == "is_active":
            value = bool(value)
        setattr(customer, key, value)


def get_customer(customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def list_customers(include_inactive: bool = False) -> list[Customer]:
    q = db.session.query(Customer)
    if not include_inactive:
        q = q.filter(Customer.is_active.is_(True))
    return q.order_by(Customer.name.asc(), Customer.id.asc()).all()


def create_customer(patch: dict) -> Customer:
    if not isinstance(patch.get("name"), str) or not patch["name"].strip():
        raise ValidationError("name required")

    def _op():
        customer = Customer(name=patch["name"].strip())
        _apply_customer_patch(customer, {k: v for k, v in patch.items() if k != "name"})
        db.session.add(customer)
        db.session.flush()
        return customer

    return run_in_transaction(_op)


def update_customer(customer_id: int, patch: dict) -> Customer:
    def _op():
        customer = get_customer(customer_id)
        _apply_customer_patch(customer, patch)
        return customer

    return run_in_transaction(_op)


def delete_customer(customer_id: int) -> list[str]:
    """
    Delete a customer together with all of their sales.

    Each sale takes its items, installments and payment log with it.
    Returns the sale numbers that were removed.
    """
    def _op():
        customer = get_customer(customer_id)
        sales = db.session.query(Sale).filter_by(customer_id=customer.id).all()
        removed = [sale.sale_number for sale in sales]
        for sale in sales:
            db.session.delete(sale)
        db.session.flush()
        db.session.delete(customer)
        return removed

    return run_in_transaction(_op)
