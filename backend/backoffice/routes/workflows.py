# Overview: Flask API routes for workflow runs; parses input and returns JSON responses.

"""
Workflow Run API

Lets an operator see which multi-step operations failed and at which
step, and resume them.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..services import workflow_service
from ..services.workflow_service import WorkflowError
from ..validation import ConflictError, NotFoundError
from .responses import workflow_error_response


workflows_bp = Blueprint("workflows", __name__, url_prefix="/api/workflows")


@workflows_bp.get("")
@require_auth
def list_runs_route():
    runs = workflow_service.list_runs(
        status=request.args.get("status"),
        kind=request.args.get("kind"),
    )
    return jsonify({"items": [r.to_dict(include_steps=False) for r in runs], "count": len(runs)}), 200


@workflows_bp.get("/<run_id>")
@require_auth
def get_run_route(run_id: str):
    try:
        return jsonify({"run": workflow_service.get_run(run_id).to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@workflows_bp.post("/<run_id>/resume")
@require_auth
def resume_run_route(run_id: str):
    try:
        run = workflow_service.resume_workflow(run_id)
        return jsonify({"run": run.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except WorkflowError as e:
        return workflow_error_response(e, "Workflow run failed again")
    except Exception:
        current_app.logger.exception("Failed to resume workflow run")
        return jsonify({"error": "Internal server error"}), 500
