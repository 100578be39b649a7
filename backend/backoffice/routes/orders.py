# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

"""
Purchase Order API

DESIGN:
- POST /api/orders places an order (order + items, invoice, pending
  payment) as one workflow run
- totals are derived server-side; client-supplied prices/totals on the
  managed flow are ignored
- POST /api/orders/<id>/status drives fulfillment
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import fulfillment_service, order_service
from ..services.fulfillment_service import FulfillmentError
from ..services.order_service import OrderError
from ..services.workflow_service import WorkflowError
from ..validation import ConflictError, NotFoundError, ValidationError
from .responses import workflow_error_response


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    try:
        orders = order_service.list_orders(status=request.args.get("status"))
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order.

    Request body:
    {
        "supplier_info": {
            "supplier_name": "PT Beras",
            "supplier_contact": "0812...",    (optional)
            "delivery_date": "2026-11-01",    (optional)
            "notes": "..."                    (optional)
        },
        "items": [{"product_id": "<material id>", "quantity": 10}]
    }

    Returns:
        201: {order, invoice, payment, workflow_run_id}
        400: invalid input (nothing written)
        500: a step failed; earlier steps stay committed, run can be resumed
    """
    try:
        data = request.get_json(silent=True) or {}
        placement = order_service.create_order(
            g.acting_user,
            data.get("supplier_info"),
            data.get("items"),
        )
        return jsonify(placement.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except WorkflowError as e:
        return workflow_error_response(e, "Order could not be completed")
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        snapshot = order_service.get_order_snapshot(order_id)
        snapshot["recomputed_total"] = str(order_service.recompute_order_total(order_id))
        return jsonify(snapshot), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@orders_bp.post("/<order_id>/cancel")
@require_auth
def cancel_order_route(order_id: str):
    try:
        order = order_service.cancel_order(order_id)
        return jsonify({"order": order.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/account-number")
@require_auth
def set_account_number_route(order_id: str):
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.set_account_number(order_id, data.get("account_number"))
        return jsonify({"order": order.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to set account number")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/status")
@require_auth
def advance_status_route(order_id: str):
    """
    Advance fulfillment status.

    Request body: {"status": "in_transit" | "delivered" | "processing"}
    Delivering records supplier history, approves transactions and
    replenishes stock.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = fulfillment_service.advance_order_status(order_id, data.get("status"), g.acting_user)
        return jsonify(result.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except FulfillmentError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except WorkflowError as e:
        return workflow_error_response(e, "Delivery could not be completed")
    except Exception:
        current_app.logger.exception("Failed to advance order status")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# QUICK ORDERS
# =============================================================================

@orders_bp.post("/quick")
@require_auth
def create_quick_order_route():
    """
    Request body:
    {
        "supplier_name": "Market stall",    (optional)
        "items": [{"product_name": "Chili", "quantity": 2, "unit_price": "15000"}]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.create_quick_order(
            g.acting_user,
            data.get("items"),
            supplier_name=data.get("supplier_name"),
            notes=data.get("notes"),
        )
        return jsonify({"order": order.to_dict(include_items=True)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create quick order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/quick-pay")
@require_auth
def quick_pay_route(order_id: str):
    try:
        order = order_service.mark_quick_order_paid(order_id)
        return jsonify({"order": order.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to mark quick order paid")
        return jsonify({"error": "Internal server error"}), 500
