"""Code conversion requests and their recorded history."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..converter import CodeConverter, ConversionResult
from ..enrichment import EnrichmentOutcome, best_effort
from ..errors import Forbidden, NotFound, ServerError, ValidationError
from . import accounts

logger = logging.getLogger(__name__)

# purpose: validate, run and record conversions under one of two persistence policies
# status: active

MAX_SOURCE_LENGTH = 10000
TEMP_ID = "temp-id"


class PersistencePolicy(enum.Enum):
    """How a conversion request treats history persistence.

    STRICT records every attempt, failed ones included, and fails the request
    when the record cannot be written. TOLERANT records successes only, and a
    failed write is logged while the response carries a placeholder id.
    """

    STRICT = "strict"
    TOLERANT = "tolerant"


@dataclass
class ConversionOutcome:
    result: ConversionResult
    record: schemas.ConversionOut
    elapsed_ms: int
    persisted: bool
    stats: Optional[EnrichmentOutcome] = None

    @property
    def complexity(self) -> str:
        return self.result.complexity or "medium"


def validate_request(payload: schemas.ConversionRequest) -> tuple[str, str, str, list[str]]:
    source = payload.source_library
    target = payload.target_library
    if source is not None and source == target:
        raise ValidationError("Source and target libraries must be different")
    if source not in models.LIBRARIES:
        raise ValidationError("Invalid source library")
    if target not in models.LIBRARIES:
        raise ValidationError("Invalid target library")
    code = payload.source_code
    if not isinstance(code, str) or not 1 <= len(code) <= MAX_SOURCE_LENGTH:
        raise ValidationError(f"Source code must be between 1 and {MAX_SOURCE_LENGTH} characters")
    tags = payload.tags if payload.tags is not None else []
    if not isinstance(tags, list):
        raise ValidationError("Tags must be an array")
    return source, target, code, [str(tag) for tag in tags]


def _new_record(user_id, source, target, code, tags, result: ConversionResult, elapsed_ms: int):
    return models.CodeConversion(
        user_id=user_id,
        source_library=source,
        target_library=target,
        source_code=code,
        converted_code=result.code if result.success else None,
        status="success" if result.success else "error",
        error_message=None if result.success else result.error,
        lines_of_code=len(code.split("\n")),
        conversion_time=elapsed_ms,
        complexity=result.complexity or "medium",
        tags=tags,
    )


def _persist(db: Session, record: models.CodeConversion) -> models.CodeConversion:
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def convert_and_record(
    db: Session,
    converter: CodeConverter,
    user_id: UUID,
    payload: schemas.ConversionRequest,
    policy: PersistencePolicy,
) -> ConversionOutcome:
    source, target, code, tags = validate_request(payload)

    started = time.perf_counter()
    result = converter.convert(source, target, code)
    elapsed_ms = int((time.perf_counter() - started) * 1000)

    if not result.success and policy is PersistencePolicy.TOLERANT:
        raise ValidationError(result.error or "Conversion failed")

    record = _new_record(user_id, source, target, code, tags, result, elapsed_ms)
    persisted = True
    if policy is PersistencePolicy.STRICT:
        try:
            _persist(db, record)
        except Exception as exc:
            db.rollback()
            logger.exception("failed to record conversion for user %s", user_id)
            raise ServerError("Failed to save conversion") from exc
        view = schemas.ConversionOut.from_record(record)
    else:
        saved = best_effort("persist conversion", _persist, db, record, db=db)
        persisted = saved.ok
        if persisted:
            view = schemas.ConversionOut.from_record(record)
        else:
            view = schemas.ConversionOut(
                id=TEMP_ID,
                source_library=source,
                target_library=target,
                source_code=code,
                converted_code=result.code,
                status="success",
                metadata={
                    "linesOfCode": record.lines_of_code,
                    "conversionTime": elapsed_ms,
                    "complexity": result.complexity or "medium",
                },
                tags=tags,
            )

    stats = None
    if result.success:
        stats = best_effort(
            "conversion stats update", accounts.increment_stat, db, user_id, "codeConversions", db=db
        )
    return ConversionOutcome(result=result, record=view, elapsed_ms=elapsed_ms, persisted=persisted, stats=stats)


def list_history(
    db: Session,
    user_id: UUID,
    *,
    page: int = 1,
    limit: int = 10,
    source_library: str | None = None,
    target_library: str | None = None,
    status: str | None = None,
) -> tuple[list[models.CodeConversion], schemas.Pagination]:
    query = db.query(models.CodeConversion).filter(models.CodeConversion.user_id == user_id)
    if source_library:
        query = query.filter(models.CodeConversion.source_library == source_library)
    if target_library:
        query = query.filter(models.CodeConversion.target_library == target_library)
    if status:
        query = query.filter(models.CodeConversion.status == status)
    total = query.count()
    items = (
        query.order_by(models.CodeConversion.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, schemas.Pagination.of(page, limit, total)


def delete_conversion(db: Session, user_id: UUID, conversion_id: UUID) -> None:
    record = db.get(models.CodeConversion, conversion_id)
    if record is None:
        raise NotFound("Conversion not found")
    if record.user_id != user_id:
        raise Forbidden("Not authorized to delete this conversion")
    db.delete(record)
    db.flush()
    logger.info("user %s deleted conversion %s", user_id, conversion_id)
