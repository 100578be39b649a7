# Overview: Flask API routes for fulfillment listing; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import fulfillment_service
from ..validation import ValidationError


fulfillment_bp = Blueprint("fulfillment", __name__, url_prefix="/api/fulfillment")


@fulfillment_bp.get("")
@require_auth
def list_fulfillment_route():
    """Orders in processing, in_transit or delivered (optionally one status)."""
    try:
        orders = fulfillment_service.list_fulfillment_orders(status=request.args.get("status"))
        return jsonify({"items": [o.to_dict(include_items=True) for o in orders], "count": len(orders)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
