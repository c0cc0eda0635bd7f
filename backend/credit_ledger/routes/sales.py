# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/credit_ledger/routes/sales.py
"""
Sales API Routes

DESIGN:
- Create installment or cash sales (schedule generated server-side)
- Import sales from backups (normalized before they reach the ledger)
- Read a sale with its items, installments and payment log
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import backup_schema, installment_service, sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
def create_sale_route():
    """
    Create a sale.

    Request body:
    {
        "customer_id": 1,
        "items": [{"product_id": 3, "quantity": 2, "unit_price_cents": 7500}],
        "payment_type": "installments",
        "number_of_installments": 3,
        "discount_cents": 0,  (optional)
        "tax_cents": 0,  (optional)
        "date": "2023-05-15T10:00:00Z",  (optional, default now)
        "notes": "..."  (optional)
    }

    Returns:
        201: Sale with its installment schedule
        400: Invalid input
        404: Customer not found
    """
    try:
        data = request.get_json() or {}

        if not data.get("customer_id"):
            return jsonify({"error": "customer_id required"}), 400

        sale = sales_service.create_sale(data)

        return jsonify({
            "sale": sale.to_dict(),
            "installments": [i.to_dict() for i in sale.installments],
        }), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/import")
def import_sale_route():
    """
    Import one sale from a backup record.

    Amounts in the backup are currency units; they are converted to cents
    by the backup normalizer.
    """
    try:
        raw = request.get_json() or {}
        record = backup_schema.normalize_backup_sale(raw)
        sale = sales_service.import_sale_from_backup(record)

        return jsonify({
            "sale": sale.to_dict(),
            "installments": [i.to_dict() for i in sale.installments],
        }), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to import sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
def list_sales_route():
    sales = sales_service.list_sales()
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Get sale with items, installments and payment transactions."""
    try:
        return jsonify(sales_service.get_sale_with_details(sale_id)), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code


@sales_bp.patch("/<int:sale_id>")
def update_sale_route(sale_id: int):
    try:
        data = request.get_json() or {}
        sale = sales_service.update_sale(sale_id, data)
        return jsonify({"sale": sale.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """Delete a sale with its items, installments and payment log."""
    try:
        sales_service.delete_sale(sale_id)
        return jsonify({"deleted": sale_id}), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>/installments")
def get_sale_installments_route(sale_id: int):
    installments = installment_service.get_installments_by_sale(sale_id)
    return jsonify({
        "sale_id": sale_id,
        "installments": [i.to_dict() for i in installments],
    }), 200


@sales_bp.get("/<int:sale_id>/transactions")
def get_sale_transactions_route(sale_id: int):
    transactions = installment_service.get_transactions_by_sale(sale_id)
    return jsonify({
        "sale_id": sale_id,
        "transactions": [t.to_dict() for t in transactions],
    }), 200
