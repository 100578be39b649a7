# Overview: Shared JSON error responses for API routes.

from flask import current_app, jsonify

from ..services.workflow_service import WorkflowError
from ..validation import ConflictError


def workflow_error_response(e: WorkflowError, message: str):
    """
    A failed workflow run: generic message plus the run id so an operator
    can inspect and resume it. The cause is logged, not echoed, except for
    business conflicts, which are safe to show.
    """
    current_app.logger.warning("%s (run=%s step=%s)", message, e.run_id, e.failed_step)
    body = {"error": message, "workflow_run_id": e.run_id, "failed_step": e.failed_step}
    if isinstance(e.cause, ConflictError):
        body["error"] = str(e.cause)
        return jsonify(body), 409
    return jsonify(body), 500
