"""Workflow records: CRUD, run stamping, statistics and template materialization."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..catalog import Catalog
from ..errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

# purpose: manage workflow definitions; there is no step execution engine
# status: active

DEFAULT_NAME = "Untitled workflow"
TERMINAL_STATUSES = ("completed", "failed")


def _dump_steps(steps: list[schemas.WorkflowStep]) -> list[dict]:
    return [step.model_dump(by_alias=True, exclude_none=True) for step in steps]


def list_workflows(db: Session, user_id: UUID) -> list[models.Workflow]:
    return (
        db.query(models.Workflow)
        .filter(models.Workflow.user_id == user_id)
        .order_by(models.Workflow.created_at.desc())
        .all()
    )


def get_owned(db: Session, user_id: UUID, workflow_id: UUID | None) -> models.Workflow:
    if workflow_id is None:
        raise ValidationError("Workflow ID is required")
    workflow = (
        db.query(models.Workflow)
        .filter(models.Workflow.id == workflow_id, models.Workflow.user_id == user_id)
        .one_or_none()
    )
    if workflow is None:
        raise NotFound("Workflow not found")
    return workflow


def create_workflow(db: Session, user_id: UUID, payload: schemas.WorkflowCreate) -> models.Workflow:
    workflow = models.Workflow(
        user_id=user_id,
        name=payload.name or DEFAULT_NAME,
        description=payload.description or "",
        steps=_dump_steps(payload.steps),
        status="draft",
        tags=payload.tags,
        is_public=payload.is_public,
    )
    db.add(workflow)
    db.flush()
    logger.info("user %s created workflow %s", user_id, workflow.id)
    return workflow


def update_workflow(
    db: Session, user_id: UUID, workflow_id: UUID, payload: schemas.WorkflowUpdate
) -> models.Workflow:
    workflow = get_owned(db, user_id, workflow_id)
    changes = payload.model_dump(exclude_unset=True)
    if "steps" in changes and payload.steps is not None:
        workflow.steps = _dump_steps(payload.steps)
    for name in ("name", "description", "status", "tags", "is_public"):
        if name in changes and changes[name] is not None:
            setattr(workflow, name, changes[name])
    if "completed_at" in changes:
        workflow.completed_at = changes["completed_at"]
    db.add(workflow)
    db.flush()
    return workflow


def delete_workflow(db: Session, user_id: UUID, workflow_id: UUID | None) -> None:
    workflow = get_owned(db, user_id, workflow_id)
    db.delete(workflow)
    db.flush()
    logger.info("user %s deleted workflow %s", user_id, workflow_id)


def start_run(db: Session, user_id: UUID, workflow_id: UUID | None) -> datetime:
    """Flip the workflow to running and stamp the run time; nothing advances it further."""

    workflow = get_owned(db, user_id, workflow_id)
    started_at = datetime.now(timezone.utc)
    workflow.status = "running"
    workflow.last_run_at = started_at
    db.add(workflow)
    db.flush()
    return started_at


def compute_stats(workflows: list[models.Workflow]) -> schemas.WorkflowStatsOut:
    total = len(workflows)
    completed = sum(1 for w in workflows if w.status == "completed")
    active = sum(1 for w in workflows if w.status not in TERMINAL_STATUSES)
    success_rate = f"{round(completed / total * 100)}%" if total else "0%"
    runtimes = [w.average_runtime for w in workflows if w.average_runtime]
    avg_ms = sum(runtimes) / len(runtimes) if runtimes else 0
    avg_runtime = f"{round(avg_ms / 60000)}m" if avg_ms > 0 else "0m"
    return schemas.WorkflowStatsOut(
        active_workflows=active,
        completed=completed,
        success_rate=success_rate,
        avg_runtime=avg_runtime,
    )


def use_template(db: Session, catalog: Catalog, user_id: UUID, template_id: str) -> models.Workflow:
    template = catalog.template(template_id)
    if template is None:
        raise NotFound("Template not found")
    steps = [
        {
            "id": step.id,
            "type": step.type,
            "name": step.name,
            "description": step.description,
            "status": "pending",
            "config": {},
        }
        for step in template.steps
    ]
    workflow = models.Workflow(
        user_id=user_id,
        name=template.name,
        description=template.description,
        steps=steps,
        status="draft",
    )
    db.add(workflow)
    db.flush()
    logger.info("user %s created workflow %s from template %s", user_id, workflow.id, template_id)
    return workflow
