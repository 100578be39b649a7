# Overview: Flask API routes for recap documents; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import recap_service
from ..validation import ValidationError


recap_bp = Blueprint("recap", __name__, url_prefix="/api/recap-documents")


@recap_bp.get("")
@require_auth
def list_recap_documents_route():
    docs = recap_service.list_recap_documents(order_id=request.args.get("order_id"))
    return jsonify({"items": [d.to_dict() for d in docs], "count": len(docs)}), 200


@recap_bp.post("")
@require_auth
def add_recap_document_route():
    try:
        data = request.get_json(silent=True) or {}
        doc = recap_service.add_recap_document(
            g.acting_user,
            order_id=data.get("order_id"),
            document_name=data.get("document_name"),
            document_url=data.get("document_url"),
            file_type=data.get("file_type", "pdf"),
        )
        return jsonify({"document": doc.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add recap document")
        return jsonify({"error": "Internal server error"}), 500
