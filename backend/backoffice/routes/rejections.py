# Overview: Flask API routes for rejections operations; parses input and returns JSON responses.

"""
Rejected Material API (admin only)

Rejecting removes stock immediately (clamped at zero). Each rejected item
has an append-only discussion thread.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import rejection_service
from ..services.rejection_service import RejectionError
from ..validation import NotFoundError, ValidationError


rejections_bp = Blueprint("rejections", __name__, url_prefix="/api/rejections")


@rejections_bp.get("")
@require_auth
@require_admin
def list_rejections_route():
    try:
        items = rejection_service.list_rejections(status=request.args.get("status"))
        return jsonify({"items": [i.to_dict() for i in items], "count": len(items)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@rejections_bp.post("")
@require_auth
@require_admin
def reject_material_route():
    """
    Request body:
    {"product_id": "<material id>", "quantity": 3, "reason": "Mouldy sacks"}
    """
    try:
        data = request.get_json(silent=True) or {}
        result = rejection_service.reject_material(
            data.get("product_id"),
            data.get("quantity"),
            data.get("reason"),
            g.acting_user,
        )
        return jsonify(result.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reject material")
        return jsonify({"error": "Internal server error"}), 500


@rejections_bp.post("/<rejected_item_id>/status")
@require_auth
@require_admin
def resolve_rejection_route(rejected_item_id: str):
    try:
        data = request.get_json(silent=True) or {}
        item = rejection_service.resolve_rejection(
            rejected_item_id, data.get("status") or rejection_service.REJECTION_STATUS_RESOLVED
        )
        return jsonify({"rejected_item": item.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RejectionError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update rejection")
        return jsonify({"error": "Internal server error"}), 500


@rejections_bp.get("/<rejected_item_id>/messages")
@require_auth
@require_admin
def list_messages_route(rejected_item_id: str):
    try:
        messages = rejection_service.list_messages(rejected_item_id)
        return jsonify({"items": [m.to_dict() for m in messages], "count": len(messages)}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@rejections_bp.post("/<rejected_item_id>/messages")
@require_auth
@require_admin
def post_message_route(rejected_item_id: str):
    try:
        data = request.get_json(silent=True) or {}
        msg = rejection_service.post_message(rejected_item_id, g.acting_user.id, data.get("message"))
        return jsonify({"message": msg.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to post message")
        return jsonify({"error": "Internal server error"}), 500
