# Overview: Flask API routes for analytics; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth
from ..services import analytics_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/summary")
@require_auth
def summary_route():
    try:
        return jsonify(analytics_service.get_dashboard_stats()), 200
    except Exception:
        current_app.logger.exception("Failed to build dashboard summary")
        return jsonify({"error": "Internal server error"}), 500
