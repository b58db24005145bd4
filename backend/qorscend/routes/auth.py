from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import create_access_token, get_current_user
from ..config import get_settings
from ..database import get_db
from ..services import accounts

limiter = Limiter(key_func=get_remote_address)
testing = get_settings().testing


def rate_limit(limit: str):
    if testing:
        def wrapper(func):
            return func
        return wrapper
    return limiter.limit(limit)


router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_payload(user: models.User) -> dict:
    return {
        "success": True,
        "token": create_access_token(user.id),
        "user": schemas.UserOut.model_validate(user),
    }


@router.post("/register", status_code=201)
@rate_limit("5/minute")
async def register(request: Request, payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    user = accounts.register(db, payload)
    db.commit()
    db.refresh(user)
    return _session_payload(user)


@router.post("/login")
@rate_limit("10/minute")
async def login(request: Request, payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = accounts.login(db, payload)
    db.commit()
    db.refresh(user)
    return _session_payload(user)


@router.get("/me", response_model=schemas.Envelope[schemas.UserOut])
async def read_me(current_user: models.User = Depends(get_current_user)):
    return {"success": True, "data": schemas.UserOut.model_validate(current_user)}


@router.put("/password")
async def change_password(
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    accounts.change_password(db, current_user, payload)
    db.commit()
    return {"success": True, "message": "Password updated successfully"}


@router.put("/profile", response_model=schemas.Envelope[schemas.UserOut])
async def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    user = accounts.update_profile(db, current_user, payload)
    db.commit()
    db.refresh(user)
    return {"success": True, "data": schemas.UserOut.model_validate(user)}


def _oauth_redirect(db: Session, provider: str, email: str | None, name: str | None) -> RedirectResponse:
    user = accounts.find_or_create_oauth_user(db, provider, email=email, name=name)
    db.commit()
    token = create_access_token(user.id)
    base = get_settings().frontend_url.rstrip("/")
    return RedirectResponse(url=f"{base}/#token={quote(token)}", status_code=302)


@router.get("/google")
async def google_login(email: str | None = None, name: str | None = None, db: Session = Depends(get_db)):
    return _oauth_redirect(db, "google", email, name)


@router.get("/github")
async def github_login(email: str | None = None, name: str | None = None, db: Session = Depends(get_db)):
    return _oauth_redirect(db, "github", email, name)
