import json
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import Identity, get_current_identity, get_optional_identity
from ..database import get_db
from ..services import datasets

router = APIRouter(prefix="/api/qdata-clean", tags=["qdata-clean"])


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/upload", status_code=201)
async def register_upload(
    payload: schemas.DataFileRegister,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    record = datasets.register_upload(db, identity, payload)
    db.commit()
    db.refresh(record)
    datasets.record_upload_stats(db, identity)
    return {"success": True, "data": {"file": schemas.DataFileOut.from_record(record)}}


@router.get("/files")
async def list_files(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    file_type: Optional[str] = Query(None, alias="fileType"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    files, pagination = datasets.list_files(
        db, identity.id, page=page, limit=limit, status=status, file_type=file_type
    )
    return {
        "success": True,
        "data": {
            "files": [schemas.DataFileOut.from_record(f) for f in files],
            "pagination": pagination,
        },
    }


@router.get("/files/{file_id}/raw")
async def read_raw(
    file_id: UUID,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    record = datasets.get_file(db, identity, file_id)
    return {"success": True, "data": {"content": datasets.read_content(record)}}


@router.get("/files/{file_id}/data")
async def read_data(
    file_id: UUID,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    record = datasets.get_file(db, identity, file_id)
    rows, metadata = datasets.load_view(record)
    return {"success": True, "data": {"parsedData": rows, "metadata": metadata.as_dict()}}


@router.post("/process/{file_id}")
async def process_file(
    file_id: UUID,
    payload: schemas.ProcessRequest,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    record = datasets.get_file(db, identity, file_id)
    return {"success": True, "data": datasets.process(record, payload.processing_options)}


@router.post("/export/{file_id}")
async def export_file(
    file_id: UUID,
    payload: schemas.ExportRequest,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    record = datasets.get_file(db, identity, file_id)
    exported = datasets.export(record, payload.format, payload.options)
    return _attachment(exported.content, exported.media_type, exported.filename)


@router.post("/export-chart/{file_id}")
async def export_chart(
    file_id: UUID,
    payload: schemas.ChartExportRequest,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    record = datasets.get_file(db, identity, file_id)
    descriptor = datasets.chart_descriptor(record, payload)
    if payload.format == "json":
        name = record.original_name or record.filename or "chart"
        return _attachment(json.dumps(descriptor, indent=2).encode("utf-8"), "application/json", f"{name}.json")
    return {"success": True, "data": descriptor}
