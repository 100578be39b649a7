# Overview: Flask API routes for returns operations; parses input and returns JSON responses.

# backend/backoffice/routes/returns.py
"""
Return Processing API Routes

DESIGN:
- Create returns (status: pending)
- Approve / reject once
- No operation here changes stock
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import return_service
from ..services.return_service import ReturnError
from ..validation import NotFoundError, ValidationError


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.get("")
@require_auth
def list_returns_route():
    try:
        returns = return_service.list_returns(status=request.args.get("status"))
        return jsonify({"items": [r.to_dict() for r in returns], "count": len(returns)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@returns_bp.post("")
@require_auth
def create_return_route():
    """
    Create a new return document (status: pending).

    Request body:
    {
        "product_name": "Rice",
        "product_id": "<material id>",   (optional)
        "quantity": 2,
        "reason": "Wrong grade delivered"
    }

    Returns:
        201: Return created with pending status
        400: Invalid input
    """
    try:
        data = request.get_json(silent=True) or {}
        return_doc = return_service.create_return(
            g.acting_user,
            product_name=data.get("product_name"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
            product_id=data.get("product_id"),
        )
        return jsonify({"return": return_doc.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.post("/<return_id>/approve")
@require_auth
def approve_return_route(return_id: str):
    try:
        return_doc = return_service.approve_return(return_id)
        return jsonify({"return": return_doc.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to approve return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.post("/<return_id>/reject")
@require_auth
def reject_return_route(return_id: str):
    try:
        return_doc = return_service.reject_return(return_id)
        return jsonify({"return": return_doc.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reject return")
        return jsonify({"error": "Internal server error"}), 500
