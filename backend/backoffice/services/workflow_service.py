# Overview: Service-layer operations for workflow runs; encapsulates business logic and database work.

"""
Workflow Run Service

WHY: Placing an order, settling a payment and delivering an order each
write to several tables. Each is modelled as a persisted run made of named
steps. A step's writes commit together with its completion marker, so the
run always shows exactly how far the chain got. A failed run is reported
as failed (never as success) and can be resumed from its first unfinished
step.

DESIGN:
- Steps are plain functions taking the run context (a JSON dict) and
  writing through db.session without committing; the runner commits.
- Steps must be idempotent: a resumed step may see rows left by an
  earlier attempt of a different step and must not duplicate them.
- Nothing is compensated automatically. Earlier committed steps stay
  committed when a later one fails.
- Step lists are registered per kind by the owning service module.
"""

from __future__ import annotations

import copy
import logging
from typing import Callable

from ..extensions import db
from ..models import WorkflowRun, WorkflowStep
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError


logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """
    Raised when a workflow step fails.

    Carries the failed run (status "failed", error recorded) and the
    original exception as cause.
    """

    def __init__(self, message: str, run: WorkflowRun | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.run = run
        self.cause = cause

    @property
    def run_id(self) -> str | None:
        return self.run.id if self.run else None

    @property
    def failed_step(self) -> str | None:
        return self.run.current_step if self.run else None


# =============================================================================
# STATUS / KIND CONSTANTS
# =============================================================================

RUN_STATUS_RUNNING = "running"
RUN_STATUS_COMPLETED = "completed"
RUN_STATUS_FAILED = "failed"

STEP_STATUS_PENDING = "pending"
STEP_STATUS_COMPLETED = "completed"
STEP_STATUS_FAILED = "failed"

KIND_CREATE_ORDER = "create_order"
KIND_MARK_PAID = "mark_paid"
KIND_DELIVER_ORDER = "deliver_order"

StepFn = Callable[[dict], None]

_REGISTRY: dict[str, list[tuple[str, StepFn]]] = {}


def register_workflow(kind: str, steps: list[tuple[str, StepFn]]) -> None:
    """Register the ordered (name, function) steps for a workflow kind."""
    _REGISTRY[kind] = list(steps)


def _steps_for(kind: str) -> list[tuple[str, StepFn]]:
    if kind not in _REGISTRY:
        # Step modules register themselves on import
        from . import fulfillment_service, order_service, payment_service  # noqa: F401
    if kind not in _REGISTRY:
        raise ValueError(f"Unknown workflow kind: {kind}")
    return _REGISTRY[kind]


# =============================================================================
# EXECUTION
# =============================================================================

def run_workflow(kind: str, context: dict, actor_user_id: str | None = None) -> WorkflowRun:
    """
    Create a run for kind and execute all of its steps.

    Returns the completed run. Raises WorkflowError (run marked failed) if
    any step raises.
    """
    steps = _steps_for(kind)

    run = WorkflowRun(
        kind=kind,
        status=RUN_STATUS_RUNNING,
        context=copy.deepcopy(context),
        actor_user_id=actor_user_id,
        started_at=utcnow(),
    )
    db.session.add(run)
    db.session.flush()
    for position, (name, _fn) in enumerate(steps, start=1):
        db.session.add(WorkflowStep(run_id=run.id, name=name, position=position, status=STEP_STATUS_PENDING))
    db.session.commit()

    logger.info("Workflow %s run=%s started by=%s", kind, run.id, actor_user_id)
    return _execute(run)


def resume_workflow(run_id: str) -> WorkflowRun:
    """
    Re-execute a failed (or interrupted) run from its first unfinished step
    with the persisted context.

    Raises:
        NotFoundError: unknown run
        ConflictError: run already completed
        WorkflowError: a step failed again
    """
    run = db.session.get(WorkflowRun, run_id)
    if not run:
        raise NotFoundError("Workflow run not found")
    if run.status == RUN_STATUS_COMPLETED:
        raise ConflictError("Workflow run already completed")

    logger.info("Workflow %s run=%s resumed at step=%s", run.kind, run.id, run.current_step)
    return _execute(run)


def _execute(run: WorkflowRun) -> WorkflowRun:
    steps = _steps_for(run.kind)
    context = copy.deepcopy(run.context or {})

    run.status = RUN_STATUS_RUNNING
    run.error = None
    run.finished_at = None
    db.session.commit()

    for name, fn in steps:
        step = db.session.query(WorkflowStep).filter_by(run_id=run.id, name=name).first()
        if step is None:
            raise WorkflowError(f"Workflow run {run.id} has no step {name}", run=run)
        if step.status == STEP_STATUS_COMPLETED:
            continue

        step.attempts += 1
        step.started_at = utcnow()
        step.error = None
        run.current_step = name
        db.session.commit()

        try:
            fn(context)
            step.status = STEP_STATUS_COMPLETED
            step.finished_at = utcnow()
            # JSON column: assign a fresh object so the change is detected
            run.context = copy.deepcopy(context)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            _mark_failed(run, step, exc)
            logger.exception("Workflow %s run=%s failed at step=%s", run.kind, run.id, name)
            raise WorkflowError(f"Workflow {run.kind} failed at step {name}", run=run, cause=exc) from exc

        logger.info("Workflow %s run=%s step=%s completed", run.kind, run.id, name)

    run.status = RUN_STATUS_COMPLETED
    run.current_step = None
    run.finished_at = utcnow()
    db.session.commit()

    logger.info("Workflow %s run=%s completed", run.kind, run.id)
    return run


def _mark_failed(run: WorkflowRun, step: WorkflowStep, exc: Exception) -> None:
    now = utcnow()
    error = f"{type(exc).__name__}: {exc}"

    step.status = STEP_STATUS_FAILED
    step.error = error
    step.finished_at = now

    run.status = RUN_STATUS_FAILED
    run.current_step = step.name
    run.error = f"{step.name}: {error}"
    run.finished_at = now
    db.session.commit()


# =============================================================================
# QUERIES
# =============================================================================

def get_run(run_id: str) -> WorkflowRun:
    run = db.session.get(WorkflowRun, run_id)
    if not run:
        raise NotFoundError("Workflow run not found")
    return run


def list_runs(status: str | None = None, kind: str | None = None, limit: int = 100) -> list[WorkflowRun]:
    query = db.session.query(WorkflowRun)
    if status:
        query = query.filter(WorkflowRun.status == status)
    if kind:
        query = query.filter(WorkflowRun.kind == kind)
    return query.order_by(WorkflowRun.started_at.desc()).limit(limit).all()
