"""Best-effort side effects whose failure must never fail the request."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# purpose: separate the primary outcome of a request from optional enrichment work
# status: active


@dataclass(frozen=True)
class EnrichmentOutcome:
    label: str
    ok: bool
    value: Any = None
    error: Optional[str] = None


def best_effort(
    label: str,
    func: Callable[..., Any],
    *args: Any,
    db: Session | None = None,
    **kwargs: Any,
) -> EnrichmentOutcome:
    """Run ``func`` and report the outcome instead of raising.

    When ``db`` is given, the session is committed on success and rolled back
    on failure so the caller can keep using it.
    """

    try:
        value = func(*args, **kwargs)
        if db is not None:
            db.commit()
    except Exception as exc:
        if db is not None:
            db.rollback()
        logger.warning("%s failed: %s", label, exc)
        return EnrichmentOutcome(label=label, ok=False, error=str(exc))
    return EnrichmentOutcome(label=label, ok=True, value=value)
