"""Bearer-token authentication gate and credential helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import bcrypt
import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from . import models
from .config import get_settings
from .database import get_db
from .errors import NoToken, Unauthorized

logger = logging.getLogger(__name__)

# purpose: resolve bearer tokens to a single normalized identity per request
# status: active

NOT_AUTHORIZED = "Not authorized to access this route"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as seen by every downstream handler."""

    id: UUID
    email: str
    role: str
    name: str

    @classmethod
    def from_user(cls, user: models.User) -> "Identity":
        return cls(id=user.id, email=user.email, role=user.role, name=user.name)

    def owns(self, user_id: UUID | None) -> bool:
        return user_id is not None and user_id == self.id


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def get_password_hash(password: str) -> str:
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user_id: UUID, expires_minutes: int | None = None) -> str:
    settings = get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_expires_minutes
    payload = {
        "id": str(user_id),
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[dict]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None


def _bearer_token(request: Request) -> str:
    header = request.headers.get("authorization", "")
    if not header.startswith("Bearer"):
        raise NoToken()
    parts = header.split(" ", 1)
    token = parts[1].strip() if len(parts) == 2 else ""
    if not token:
        raise NoToken()
    return token


def authenticate(db: Session, token: str) -> models.User:
    payload = decode_access_token(token)
    if not payload or not payload.get("id"):
        raise Unauthorized(NOT_AUTHORIZED)
    try:
        user_id = UUID(str(payload["id"]))
    except ValueError as exc:
        raise Unauthorized(NOT_AUTHORIZED) from exc
    user = db.get(models.User, user_id)
    if not user:
        raise Unauthorized("User not found")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> models.User:
    """Return the ORM user behind the bearer token, for handlers that mutate it."""

    return authenticate(db, _bearer_token(request))


def get_current_identity(user: models.User = Depends(get_current_user)) -> Identity:
    return Identity.from_user(user)


def get_optional_identity(request: Request, db: Session = Depends(get_db)) -> Optional[Identity]:
    """Like ``get_current_identity`` but yields ``None`` when the gate rejects the caller."""

    try:
        user = authenticate(db, _bearer_token(request))
    except Unauthorized as exc:
        logger.debug("treating request as anonymous: %s", exc.message)
        return None
    return Identity.from_user(user)


def get_relaxed_identity(request: Request, db: Session = Depends(get_db)) -> Optional[Identity]:
    """Required in production, optional elsewhere so dashboards render signed out."""

    if get_settings().is_production:
        return Identity.from_user(authenticate(db, _bearer_token(request)))
    return get_optional_identity(request, db)


GATES = (get_current_user, get_current_identity, get_optional_identity, get_relaxed_identity)
