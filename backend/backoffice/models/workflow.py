from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ._ids import new_id


class WorkflowRun(db.Model):
    """
    Durable record of a multi-step business operation (order placement,
    payment settlement, delivery).

    WHY: The steps write to several tables and commit one by one. The run
    and its steps persist how far the chain got, so a failure is visible
    and the run can be resumed from the first unfinished step.

    context holds the ids produced so far (order_id, invoice_id, ...) plus
    whatever input a step needs on resume.
    """
    __tablename__ = "workflow_runs"
    __table_args__ = (
        db.Index("ix_workflow_runs_status_created", "status", "started_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    kind = db.Column(db.String(32), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="running")
    current_step = db.Column(db.String(64), nullable=True)

    context = db.Column(db.JSON, nullable=False, default=dict)
    error = db.Column(db.Text, nullable=True)

    actor_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at = db.Column(db.DateTime(timezone=True), nullable=True)

    steps = db.relationship(
        "WorkflowStep",
        backref="run",
        lazy=True,
        order_by="WorkflowStep.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_steps: bool = True) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind,
            "status": self.status,
            "current_step": self.current_step,
            "context": self.context,
            "error": self.error,
            "actor_user_id": self.actor_user_id,
            "started_at": to_utc_z(self.started_at),
            "finished_at": to_utc_z(self.finished_at),
        }
        if include_steps:
            data["steps"] = [step.to_dict() for step in self.steps]
        return data


class WorkflowStep(db.Model):
    __tablename__ = "workflow_steps"
    __table_args__ = (
        db.UniqueConstraint("run_id", "name", name="uq_workflow_steps_run_name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    run_id = db.Column(db.String(36), db.ForeignKey("workflow_runs.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(64), nullable=False)
    position = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    attempts = db.Column(db.Integer, nullable=False, default=0)
    error = db.Column(db.Text, nullable=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    finished_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "status": self.status,
            "attempts": self.attempts,
            "error": self.error,
            "started_at": to_utc_z(self.started_at),
            "finished_at": to_utc_z(self.finished_at),
        }
