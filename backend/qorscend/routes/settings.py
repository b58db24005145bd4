from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..database import get_db
from ..services import accounts

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=schemas.Envelope[schemas.SettingsOut])
async def read_settings(current_user: models.User = Depends(get_current_user)):
    return {"success": True, "data": accounts.describe_settings(current_user)}


@router.put("", response_model=schemas.Envelope[schemas.SettingsOut])
async def update_settings(
    payload: schemas.SettingsUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    user = accounts.update_settings(db, current_user, payload)
    db.commit()
    db.refresh(user)
    return {"success": True, "data": accounts.describe_settings(user)}
