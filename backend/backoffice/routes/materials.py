# Overview: Flask API routes for materials operations; parses input and returns JSON responses.

"""
Material (raw ingredient) API

Stock is read here but only changed through POST /<id>/adjust (admin),
deliveries and rejections.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import inventory_service
from ..services.inventory_service import InventoryError
from ..validation import ConflictError, NotFoundError, ValidationError


materials_bp = Blueprint("materials", __name__, url_prefix="/api/materials")


@materials_bp.get("")
@require_auth
def list_materials_route():
    materials = inventory_service.list_materials(
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    return jsonify({
        "items": [m.to_dict() for m in materials],
        "count": len(materials),
        "summary": inventory_service.stock_valuation(materials),
    }), 200


@materials_bp.post("")
@require_auth
def create_material_route():
    """
    Create a material.

    Request body:
    {
        "name": "Rice",
        "category": "Grain",
        "color": "white",      (optional)
        "price": "12000.00",
        "quantity": 0          (optional initial stock)
    }
    """
    try:
        material = inventory_service.create_material(request.get_json(silent=True), acting_user=g.acting_user)
        return jsonify({"material": material.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create material")
        return jsonify({"error": "Internal server error"}), 500


@materials_bp.get("/<material_id>")
@require_auth
def get_material_route(material_id: str):
    try:
        return jsonify({"material": inventory_service.get_material(material_id).to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@materials_bp.patch("/<material_id>")
@require_auth
def update_material_route(material_id: str):
    try:
        material = inventory_service.update_material(material_id, request.get_json(silent=True))
        return jsonify({"material": material.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update material")
        return jsonify({"error": "Internal server error"}), 500


@materials_bp.delete("/<material_id>")
@require_auth
@require_admin
def delete_material_route(material_id: str):
    try:
        inventory_service.delete_material(material_id)
        return jsonify({"message": "Material deleted"}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete material")
        return jsonify({"error": "Internal server error"}), 500


@materials_bp.post("/<material_id>/adjust")
@require_auth
@require_admin
def adjust_stock_route(material_id: str):
    """
    Direct stock correction.

    Request body: {"delta": -5}
    Negative deltas clamp at zero; the response shows what was applied.
    """
    try:
        data = request.get_json(silent=True) or {}
        delta = inventory_service.parse_delta(data.get("delta"))
        inventory_service.get_material(material_id)
        adjustment = inventory_service.adjust_stock(material_id, delta)
        current_app.logger.info(
            "Stock adjusted by %s material=%s delta=%s", g.acting_user.username, material_id, delta
        )
        return jsonify({"adjustment": adjustment.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InventoryError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500
