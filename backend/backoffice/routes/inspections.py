# Overview: Flask API routes for food-condition inspections; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import quality_service
from ..validation import ValidationError


inspections_bp = Blueprint("inspections", __name__, url_prefix="/api/inspections")


@inspections_bp.get("")
@require_auth
def list_inspections_route():
    fit = request.args.get("fit_for_processing")
    fit_filter = None if fit is None else fit.strip().lower() == "true"
    records = quality_service.list_inspections(fit_for_processing=fit_filter)
    return jsonify({"items": [r.to_dict() for r in records], "count": len(records)}), 200


@inspections_bp.post("")
@require_auth
@require_admin
def record_inspection_route():
    """
    Request body:
    {
        "product_name": "Rice",
        "product_id": "<material id>",   (optional)
        "condition": "Good",
        "fit_for_processing": true,
        "notes": "..."                   (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        record = quality_service.record_inspection(
            g.acting_user,
            product_name=data.get("product_name"),
            condition=data.get("condition"),
            fit_for_processing=data.get("fit_for_processing", True),
            notes=data.get("notes"),
            product_id=data.get("product_id"),
            inspection_date=data.get("inspection_date"),
        )
        return jsonify({"inspection": record.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record inspection")
        return jsonify({"error": "Internal server error"}), 500
