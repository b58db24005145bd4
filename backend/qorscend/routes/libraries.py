from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..catalog import Catalog, get_catalog
from ..database import get_db
from ..services import libraries

router = APIRouter(prefix="/api/quantum-libraries", tags=["libraries"])


@router.get("", response_model=schemas.Envelope[list[schemas.LibraryOut]])
async def list_libraries(
    library: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    auto_seed: bool = Query(True, alias="autoSeed"),
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
):
    items = libraries.list_libraries(db, catalog, library=library, limit=limit, auto_seed=auto_seed)
    return {"success": True, "data": items}


@router.post("/seed")
async def seed_libraries(db: Session = Depends(get_db), catalog: Catalog = Depends(get_catalog)):
    count, inserted = libraries.seed_libraries(db, catalog)
    db.commit()
    message = "Seeded quantum libraries" if inserted else "Libraries already seeded"
    return {"success": True, "message": message, "count": count}
