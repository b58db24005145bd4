from fastapi import APIRouter, Depends

from .. import models, schemas
from ..auth import get_current_user

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/stats", response_model=schemas.Envelope[schemas.UserStatsOut])
async def read_stats(current_user: models.User = Depends(get_current_user)):
    stats = schemas.UserStatsOut(
        stats=current_user.stats,
        last_login=current_user.last_login,
        member_since=current_user.created_at,
    )
    return {"success": True, "data": stats}
