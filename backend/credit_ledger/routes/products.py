# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/credit_ledger/routes/products.py
"""
Product catalog routes.

Sales look products up by id to snapshot their name and move stock.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/")
def list_products_route():
    """
    List catalog products by name.

    Query params:
    - active_only: 1 to hide inactive products
    """
    active_only = request.args.get("active_only", "0") in ("1", "true")
    products = products_service.list_products(active_only=active_only)
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify({"product": products_service.get_product(product_id).to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code


@products_bp.post("/")
def create_product_route():
    try:
        data = request.get_json() or {}
        product = products_service.create_product(data)
        return jsonify({"product": product.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    try:
        data = request.get_json() or {}
        product = products_service.update_product(product_id, data)
        return jsonify({"product": product.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
        return jsonify({"deleted": product_id}), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
