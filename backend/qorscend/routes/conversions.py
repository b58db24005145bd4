from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import Identity, get_current_identity
from ..converter import CodeConverter, get_converter
from ..database import get_db
from ..services import conversions
from ..services.conversions import PersistencePolicy

router = APIRouter(prefix="/api", tags=["conversions"])
qcode_router = APIRouter(prefix="/api/qcode-convert", tags=["conversions"])


def _run(db, converter, identity, payload, policy):
    outcome = conversions.convert_and_record(db, converter, identity.id, payload, policy)
    result = schemas.ConversionResultOut(
        conversion=outcome.record,
        conversion_time=outcome.elapsed_ms,
        complexity=outcome.complexity,
    )
    return {"success": True, "data": result}


def _history(db, identity, page, limit, source_library, target_library, status):
    items, pagination = conversions.list_history(
        db,
        identity.id,
        page=page,
        limit=limit,
        source_library=source_library,
        target_library=target_library,
        status=status,
    )
    return {
        "success": True,
        "data": {
            "conversions": [schemas.ConversionOut.from_record(item) for item in items],
            "pagination": pagination,
        },
    }


@router.post("/convert")
async def convert_code(
    payload: schemas.ConversionRequest,
    db: Session = Depends(get_db),
    converter: CodeConverter = Depends(get_converter),
    identity: Identity = Depends(get_current_identity),
):
    return _run(db, converter, identity, payload, PersistencePolicy.TOLERANT)


@qcode_router.post("/convert")
async def convert_and_track(
    payload: schemas.ConversionRequest,
    db: Session = Depends(get_db),
    converter: CodeConverter = Depends(get_converter),
    identity: Identity = Depends(get_current_identity),
):
    return _run(db, converter, identity, payload, PersistencePolicy.STRICT)


@router.get("/history")
async def conversion_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    source_library: Optional[str] = Query(None, alias="sourceLibrary"),
    target_library: Optional[str] = Query(None, alias="targetLibrary"),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return _history(db, identity, page, limit, source_library, target_library, status)


@qcode_router.get("/history")
async def tracked_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    source_library: Optional[str] = Query(None, alias="sourceLibrary"),
    target_library: Optional[str] = Query(None, alias="targetLibrary"),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return _history(db, identity, page, limit, source_library, target_library, status)


@router.delete("/conversion/{conversion_id}")
async def delete_conversion(
    conversion_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    conversions.delete_conversion(db, identity.id, conversion_id)
    db.commit()
    return {"success": True, "message": "Conversion deleted successfully"}
