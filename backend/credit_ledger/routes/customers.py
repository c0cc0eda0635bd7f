# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

# backend/credit_ledger/routes/customers.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import customers_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/")
def list_customers_route():
    """
    List customers by name.

    Query params:
    - include_inactive: 1 to include archived customers
    """
    include_inactive = request.args.get("include_inactive", "0") in ("1", "true")
    customers = customers_service.list_customers(include_inactive=include_inactive)
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        return jsonify({"customer": customers_service.get_customer(customer_id).to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code


@customers_bp.post("/")
def create_customer_route():
    """
    Create a customer.

    Request body:
    {
        "name": "Ana Torres",
        "phone": "555-0101",  (optional)
        "email": "...",  (optional)
        "notes": "..."  (optional)
    }
    """
    try:
        data = request.get_json() or {}
        customer = customers_service.create_customer(data)
        return jsonify({"customer": customer.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.patch("/<int:customer_id>")
def update_customer_route(customer_id: int):
    try:
        data = request.get_json() or {}
        customer = customers_service.update_customer(customer_id, data)
        return jsonify({"customer": customer.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    """Delete a customer and every sale recorded for them."""
    try:
        removed = customers_service.delete_customer(customer_id)
        return jsonify({"deleted": customer_id, "deleted_sales": removed}), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
