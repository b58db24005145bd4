from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import Identity, get_current_identity, get_relaxed_identity
from ..catalog import Catalog, get_catalog
from ..database import get_db
from ..services import workflows

router = APIRouter(prefix="/api/workflows", tags=["workflows"])

# fixed paths are declared before /{workflow_id}


@router.get("/stats", response_model=schemas.Envelope[schemas.WorkflowStatsOut])
async def workflow_stats(
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_relaxed_identity),
):
    records = workflows.list_workflows(db, identity.id) if identity else []
    return {"success": True, "data": workflows.compute_stats(records)}


@router.get("/templates")
async def list_templates(catalog: Catalog = Depends(get_catalog)):
    return {"success": True, "data": [t.as_dict() for t in catalog.standard_templates()]}


@router.get("/templates/popular")
async def list_popular_templates(catalog: Catalog = Depends(get_catalog)):
    return {"success": True, "data": [t.as_dict() for t in catalog.popular_templates()]}


@router.post(
    "/templates/{template_id}/use",
    status_code=201,
    response_model=schemas.Envelope[schemas.WorkflowOut],
)
async def use_template(
    template_id: str,
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
    identity: Identity = Depends(get_current_identity),
):
    workflow = workflows.use_template(db, catalog, identity.id, template_id)
    db.commit()
    db.refresh(workflow)
    return {"success": True, "data": workflow}


@router.post("/run")
async def run_workflow(
    payload: schemas.WorkflowRunRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    started_at = workflows.start_run(db, identity.id, payload.id or payload.workflow_id)
    db.commit()
    return {"success": True, "data": {"started": True, "startedAt": started_at.isoformat()}}


@router.get("")
async def list_workflows(
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_relaxed_identity),
):
    records = workflows.list_workflows(db, identity.id) if identity else []
    return {
        "success": True,
        "data": {"workflows": [schemas.WorkflowOut.model_validate(w) for w in records]},
    }


@router.post("", status_code=201, response_model=schemas.Envelope[schemas.WorkflowOut])
async def create_workflow(
    payload: schemas.WorkflowCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    workflow = workflows.create_workflow(db, identity.id, payload)
    db.commit()
    db.refresh(workflow)
    return {"success": True, "data": workflow}


@router.delete("")
async def delete_workflow_by_query(
    workflow_id: Optional[UUID] = Query(None, alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    workflows.delete_workflow(db, identity.id, workflow_id)
    db.commit()
    return {"success": True}


@router.put("/{workflow_id}", response_model=schemas.Envelope[schemas.WorkflowOut])
async def update_workflow(
    workflow_id: UUID,
    payload: schemas.WorkflowUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    workflow = workflows.update_workflow(db, identity.id, workflow_id, payload)
    db.commit()
    db.refresh(workflow)
    return {"success": True, "data": workflow}


@router.delete("/{workflow_id}")
async def delete_workflow(
    workflow_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    workflows.delete_workflow(db, identity.id, workflow_id)
    db.commit()
    return {"success": True}
