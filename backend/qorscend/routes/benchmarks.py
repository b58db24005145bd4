from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import benchmarks

router = APIRouter(prefix="/api/qbenchmark-live", tags=["benchmarks"])


@router.get("/providers")
async def list_providers(db: Session = Depends(get_db)):
    return {"success": True, "data": benchmarks.providers_overview(db)}


@router.get("/status")
async def live_status(db: Session = Depends(get_db)):
    return {"success": True, "data": benchmarks.live_status(db)}
