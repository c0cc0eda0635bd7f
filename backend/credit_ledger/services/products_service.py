# Overview: Service-layer operations for the product catalog used by sale items.

"""
Products Service

Sale items snapshot the product name and decrement tracked stock; a NULL
stock means the product is sold without stock movement.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Product
from .concurrency import run_in_transaction


PRODUCT_MUTABLE_FIELDS = {"name", "description", "price_cents", "stock", "is_active"}


def _apply_product_patch(product: Product, patch: dict) -> None:
    for key, value in patch.items():
        if key not in PRODUCT_MUTABLE_FIELDS:
            continue
        if key == "name" and (not isinstance(value, str) or not value.strip()):
            raise ValidationError("name cannot be empty")
        if key == "price_cents":
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValidationError("price_cents must be a non-negative integer")
        if key == "stock" and value is not None:
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValidationError("stock must be a non-negative integer or null")
        if key == "is_active":
            value = bool(value)
        setattr(product, key, value)


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(active_only: bool = False) -> list[Product]:
    q = db.session.query(Product)
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(patch: dict) -> Product:
    if not isinstance(patch.get("name"), str) or not patch["name"].strip():
        raise ValidationError("name required")

    def _op():
        product = Product(name=patch["name"].strip(), price_cents=0)
        _apply_product_patch(product, {k: v for k, v in patch.items() if k != "name"})
        db.session.add(product)
        db.session.flush()
        return product

    return run_in_transaction(_op)


def update_product(product_id: int, patch: dict) -> Product:
    def _op():
        product = get_product(product_id)
        _apply_product_patch(product, patch)
        return product

    return run_in_transaction(_op)


def delete_product(product_id: int) -> None:
    """Remove a catalog product; sale items keep their name snapshot."""
    def _op():
        db.session.delete(get_product(product_id))

    run_in_transaction(_op)
