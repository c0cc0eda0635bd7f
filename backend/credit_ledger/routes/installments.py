# Overview: Flask API routes for installment operations; parses input and returns JSON responses.

# backend/credit_ledger/routes/installments.py
"""
Installment API Routes

DESIGN:
- Record full or partial payments, force-close installments
- Apply late fees
- Revert a payment (transaction is cancelled, never deleted)
- Manual edits that keep the remaining schedule monthly
- Overdue / upcoming feeds for the notification layer
"""

from datetime import date

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError, ValidationError
from ..services import installment_service, payment_service, reversal_service


installments_bp = Blueprint("installments", __name__, url_prefix="/api/installments")


def _payment_result_to_dict(result: dict) -> dict:
    rescheduled = result["rescheduled"]
    transaction = result["transaction"]
    return {
        "installment": result["installment"].to_dict(),
        "transaction": transaction.to_dict() if transaction else None,
        "rescheduled": rescheduled.to_dict() if rescheduled else None,
    }


def _today_arg() -> date | None:
    value = request.args.get("today")
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("today must be an ISO-8601 date")


# =============================================================================
# QUERIES
# =============================================================================

@installments_bp.get("/")
def list_installments_route():
    installments = installment_service.list_installments()
    return jsonify({"installments": [i.to_dict() for i in installments]}), 200


@installments_bp.get("/overdue")
def get_overdue_route():
    """Pending installments past due that still owe money."""
    try:
        return jsonify({"installments": installment_service.get_overdue(today=_today_arg())}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code


@installments_bp.get("/upcoming")
def get_upcoming_route():
    """
    Pending installments due within the upcoming window.

    Query params:
    - limit: max rows (default: 5)
    - today: ISO date to evaluate against (default: today, UTC)
    """
    try:
        limit = request.args.get("limit", 5, type=int)
        rows = installment_service.get_upcoming(limit=limit, today=_today_arg())
        return jsonify({"installments": rows}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code


@installments_bp.get("/<int:installment_id>")
def get_installment_route(installment_id: int):
    installment = installment_service.get_installment(installment_id)
    if not installment:
        return jsonify({"error": "Installment not found"}), 404
    return jsonify({"installment": installment.to_dict()}), 200


# =============================================================================
# MANUAL WRITES
# =============================================================================

@installments_bp.post("/")
def create_installment_route():
    try:
        data = request.get_json() or {}
        installment = installment_service.create_installment(data)
        return jsonify({"installment": installment.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create installment")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.patch("/<int:installment_id>")
def update_installment_route(installment_id: int):
    """
    Edit an installment.

    Changing due_date, status or paid_date reschedules the remaining
    pending installments of the sale.
    """
    try:
        data = request.get_json() or {}
        installment = installment_service.update_installment(installment_id, data)
        return jsonify({"installment": installment.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update installment")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.delete("/<int:installment_id>")
def delete_installment_route(installment_id: int):
    try:
        installment_service.delete_installment(installment_id)
        return jsonify({"deleted": installment_id}), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete installment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@installments_bp.post("/<int:installment_id>/payments")
def record_payment_route(installment_id: int):
    """
    Record a payment on an installment.

    Request body:
    {
        "amount_cents": 5000,
        "payment_method": "cash",
        "reference": "TRF-123",  (optional)
        "payment_date": "2023-06-10T12:00:00Z"  (optional, default now)
    }

    Returns:
        201: Updated installment, logged transaction, first reschedule applied
        400: Invalid amount or method, overpayment
        404: Installment not found
    """
    try:
        data = request.get_json() or {}

        amount_cents = data.get("amount_cents")
        payment_method = data.get("payment_method")

        if amount_cents is None or not payment_method:
            return jsonify({"error": "amount_cents and payment_method required"}), 400

        result = payment_service.record_payment(
            installment_id,
            amount_cents,
            payment_method,
            reference=data.get("reference"),
            payment_date=data.get("payment_date"),
        )
        return jsonify(_payment_result_to_dict(result)), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.post("/<int:installment_id>/mark-paid")
def mark_as_paid_route(installment_id: int):
    try:
        data = request.get_json(silent=True) or {}
        result = payment_service.mark_as_paid(installment_id, payment_date=data.get("payment_date"))
        return jsonify(_payment_result_to_dict(result)), 200

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark installment as paid")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.post("/<int:installment_id>/late-fee")
def apply_late_fee_route(installment_id: int):
    try:
        data = request.get_json() or {}
        fee_cents = data.get("fee_cents")

        if fee_cents is None:
            return jsonify({"error": "fee_cents required"}), 400

        installment = payment_service.apply_late_fee(installment_id, fee_cents)
        return jsonify({"installment": installment.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to apply late fee")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.post("/<int:installment_id>/payments/<int:transaction_id>/revert")
def revert_payment_route(installment_id: int, transaction_id: int):
    """
    Revert one payment of an installment.

    Returns:
        200: Updated installment
        400: Transaction already cancelled
        404: Installment or transaction not found
        409: Transaction belongs to another installment
    """
    try:
        installment = reversal_service.revert_payment(installment_id, transaction_id)
        return jsonify({"installment": installment.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to revert payment")
        return jsonify({"error": "Internal server error"}), 500
