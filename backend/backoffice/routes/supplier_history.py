# Overview: Flask API routes for supplier history; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..services import supplier_service
from ..validation import ValidationError


supplier_history_bp = Blueprint("supplier_history", __name__, url_prefix="/api/supplier-history")


@supplier_history_bp.get("")
@require_auth
def list_supplier_history_route():
    rows = supplier_service.list_supplier_history(
        order_id=request.args.get("order_id"),
        supplier_name=request.args.get("supplier_name"),
    )
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200


@supplier_history_bp.post("")
@require_auth
def add_supplier_entry_route():
    try:
        row = supplier_service.add_supplier_entry(request.get_json(silent=True))
        return jsonify({"entry": row.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add supplier history entry")
        return jsonify({"error": "Internal server error"}), 500
