# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

"""
Payment API

SECURITY:
- All operations attributed to the acting user
- Settling a completed payment is refused (409)
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import payment_service
from ..services.payment_service import PaymentError
from ..services.workflow_service import WorkflowError
from ..validation import ConflictError, NotFoundError, ValidationError
from .responses import workflow_error_response


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("")
@require_auth
def list_payments_route():
    try:
        payments = payment_service.list_payments(status=request.args.get("status"))
        return jsonify({"items": payments, "count": len(payments)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@payments_bp.get("/<payment_id>")
@require_auth
def get_payment_route(payment_id: str):
    try:
        payment = payment_service.get_payment(payment_id)
        transactions = payment_service.list_transactions(payment_id=payment_id)
        return jsonify({
            "payment": payment.to_dict(),
            "transactions": [t.to_dict() for t in transactions],
        }), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@payments_bp.patch("/<payment_id>")
@require_auth
def update_payment_route(payment_id: str):
    """
    Request body (any subset):
    {"bank_name": "...", "account_number": "...", "payment_code": "...", "qr_code_url": "..."}
    """
    try:
        payment = payment_service.update_payment_details(payment_id, request.get_json(silent=True))
        return jsonify({"payment": payment.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<payment_id>/mark-paid")
@require_auth
def mark_paid_route(payment_id: str):
    """
    Settle a payment: payment completed, order processing, one approved
    transaction per order item.

    Returns:
        200: settlement
        400: payment has no (valid) order link
        404: payment not found
        409: payment already completed
    """
    try:
        settlement = payment_service.mark_paid(payment_id, g.acting_user)
        return jsonify(settlement.to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except WorkflowError as e:
        return workflow_error_response(e, "Payment settlement could not be completed")
    except Exception:
        current_app.logger.exception("Failed to mark payment paid")
        return jsonify({"error": "Internal server error"}), 500
