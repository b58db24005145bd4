"""Account lifecycle: signup, login, mock OAuth, profile, settings and stats counters."""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timezone
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_password_hash, verify_password
from ..errors import Conflict, NotFound, Unauthorized, ValidationError

logger = logging.getLogger(__name__)

# purpose: own every write to the users table
# status: active

STAT_COLUMNS = {
    "codeConversions": models.User.code_conversions,
    "benchmarksRun": models.User.benchmarks_run,
    "dataFilesProcessed": models.User.data_files_processed,
}


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _validate_name(name: str | None) -> str:
    name = (name or "").strip()
    if not 2 <= len(name) <= 50:
        raise ValidationError("Name must be between 2 and 50 characters")
    return name


def find_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == normalize_email(email)).first()


def register(db: Session, payload: schemas.RegisterRequest) -> models.User:
    name = _validate_name(payload.name)
    email = normalize_email(payload.email)
    if not is_valid_email(email):
        raise ValidationError("Please provide a valid email")
    if not payload.password or len(payload.password) < 6:
        raise ValidationError("Password must be at least 6 characters long")
    if find_by_email(db, email):
        raise Conflict("An account with this email address already exists. Please sign in instead.")

    user = models.User(
        name=name,
        email=email,
        hashed_password=get_password_hash(payload.password),
        last_login=datetime.now(timezone.utc),
    )
    db.add(user)
    db.flush()
    logger.info("registered user %s", user.id)
    return user


def login(db: Session, payload: schemas.LoginRequest) -> models.User:
    email = normalize_email(payload.email)
    if not is_valid_email(email):
        raise ValidationError("Please provide a valid email")
    if not payload.password:
        raise ValidationError("Password is required")

    user = find_by_email(db, email)
    if not user:
        raise NotFound("No account found with this email address. Please sign up to create an account.")
    if not verify_password(payload.password, user.hashed_password):
        raise Unauthorized("Incorrect password")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    user.last_login = datetime.now(timezone.utc)
    logger.info("user %s logged in", user.id)
    return user


def find_or_create_oauth_user(
    db: Session,
    provider: str,
    email: str | None = None,
    name: str | None = None,
) -> models.User:
    """Stand-in for a real OAuth callback: trust the caller-supplied identity."""

    email = normalize_email(email) or f"{provider}_user_{int(time.time() * 1000)}@example.com"
    user = find_by_email(db, email)
    if user is None:
        user = models.User(
            name=(name or f"{provider.title()} User")[:50],
            email=email,
            hashed_password=get_password_hash(secrets.token_urlsafe(24)),
        )
        db.add(user)
        logger.info("created %s oauth user %s", provider, email)
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    user.last_login = datetime.now(timezone.utc)
    db.flush()
    return user


def change_password(db: Session, user: models.User, payload: schemas.PasswordChange) -> None:
    if not payload.current_password:
        raise ValidationError("Current password is required")
    if not payload.new_password or len(payload.new_password) < 6:
        raise ValidationError("New password must be at least 6 characters long")
    if not verify_password(payload.current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    user.hashed_password = get_password_hash(payload.new_password)
    db.add(user)


def update_profile(db: Session, user: models.User, payload: schemas.ProfileUpdate) -> models.User:
    if payload.name is not None:
        user.name = _validate_name(payload.name)
    if payload.avatar is not None:
        user.avatar = payload.avatar
    if payload.preferences is not None:
        theme = payload.preferences.get("theme")
        if theme is not None and theme not in models.THEMES:
            raise ValidationError("Theme must be light, dark, or system")
        user.preferences = {**(user.preferences or models.default_preferences()), **payload.preferences}
    db.add(user)
    return user


def increment_stat(db: Session, user_id: UUID, stat: str, amount: int = 1) -> int:
    """Bump one of the user's usage counters with a single UPDATE statement."""

    column = STAT_COLUMNS[stat]
    return (
        db.query(models.User)
        .filter(models.User.id == user_id)
        .update({column: column + amount}, synchronize_session=False)
    )


def describe_settings(user: models.User) -> schemas.SettingsOut:
    name_parts = (user.name or "").split(" ")
    preferences = user.preferences or {}
    notifications = preferences.get("notifications") or {}
    appearance = preferences.get("appearance") or {
        "theme": preferences.get("theme", "dark"),
        "colorScheme": "blue",
        "compactMode": False,
        "showAnimations": True,
    }
    return schemas.SettingsOut(
        first_name=user.first_name or name_parts[0],
        last_name=user.last_name or " ".join(name_parts[1:]),
        organization=user.organization or "",
        tool_preferences=user.tool_preferences or models.default_tool_preferences(),
        appearance=appearance,
        notifications={
            "email": notifications.get("email", True),
            "push": notifications.get("push", True),
            "jobCompletionAlerts": notifications.get("jobCompletionAlerts", False),
            "weeklyReports": notifications.get("weeklyReports", False),
            "quietHours": notifications.get("quietHours", ""),
        },
        data_privacy=user.data_privacy or models.default_data_privacy(),
    )


def update_settings(db: Session, user: models.User, payload: schemas.SettingsUpdate) -> models.User:
    if payload.first_name or payload.last_name:
        name_parts = (user.name or "").split(" ")
        first = payload.first_name or name_parts[0]
        last = payload.last_name or " ".join(name_parts[1:])
        user.name = f"{first} {last}".strip()[:50]
        if payload.first_name:
            user.first_name = payload.first_name
        if payload.last_name:
            user.last_name = payload.last_name
    if payload.organization is not None:
        user.organization = payload.organization
    if payload.tool_preferences:
        user.tool_preferences = {**(user.tool_preferences or {}), **payload.tool_preferences}

    preferences = dict(user.preferences or {})
    if payload.appearance:
        theme = payload.appearance.get("theme")
        if theme is not None and theme not in models.THEMES:
            raise ValidationError("Theme must be light, dark, or system")
        preferences["appearance"] = {**(preferences.get("appearance") or {}), **payload.appearance}
        if theme:
            preferences["theme"] = theme
    if payload.notifications:
        preferences["notifications"] = {**(preferences.get("notifications") or {}), **payload.notifications}
    user.preferences = preferences

    if payload.data_privacy:
        user.data_privacy = {**(user.data_privacy or {}), **payload.data_privacy}
    db.add(user)
    return user
