# Overview: Flask API routes for invoices operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..services import fulfillment_service, invoice_service, payment_service
from ..services.fulfillment_service import FulfillmentError
from ..services.payment_service import PaymentError
from ..validation import NotFoundError, ValidationError


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    try:
        invoices = invoice_service.list_invoices(status=request.args.get("status"))
        return jsonify({"items": invoices, "count": len(invoices)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@invoices_bp.get("/<invoice_id>")
@require_auth
def get_invoice_route(invoice_id: str):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({"invoice": invoice.to_dict(include_items=True)}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@invoices_bp.post("/<invoice_id>/submit-shipment")
@require_auth
def submit_shipment_route(invoice_id: str):
    """Move the invoice's order into fulfillment (processing)."""
    try:
        order = fulfillment_service.submit_shipment(invoice_id)
        return jsonify({"order": order.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except FulfillmentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to submit shipment")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<invoice_id>/pay")
@require_auth
def pay_invoice_route(invoice_id: str):
    """Open a new pending payment for the invoice amount."""
    try:
        payment = payment_service.create_payment_for_invoice(invoice_id)
        return jsonify({"payment": payment.to_dict()}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create invoice payment")
        return jsonify({"error": "Internal server error"}), 500
