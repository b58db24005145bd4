"""Quantum library reference catalog: seeding and filtered reads."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .. import models
from ..catalog import Catalog

logger = logging.getLogger(__name__)


def count_libraries(db: Session) -> int:
    return db.query(models.QuantumLibrary).count()


def seed_libraries(db: Session, catalog: Catalog) -> tuple[int, bool]:
    """Insert the default catalog when the table is empty.

    Returns (library count, whether anything was inserted).
    """

    existing = count_libraries(db)
    if existing:
        return existing, False
    for seed in catalog.libraries:
        db.add(
            models.QuantumLibrary(
                name=seed.name,
                display_name=seed.display_name,
                description=seed.description,
                version=seed.version,
                features=list(seed.features),
                documentation_url=seed.documentation_url,
                popularity=seed.popularity,
                color=seed.color,
            )
        )
    db.flush()
    logger.info("seeded %d quantum libraries", len(catalog.libraries))
    return len(catalog.libraries), True


def list_libraries(
    db: Session,
    catalog: Catalog,
    *,
    library: str | None = None,
    limit: int = 100,
    auto_seed: bool = True,
) -> list[models.QuantumLibrary]:
    def query():
        q = db.query(models.QuantumLibrary)
        if library:
            q = q.filter(models.QuantumLibrary.name.ilike(f"%{library}%"))
        return q.order_by(models.QuantumLibrary.name.asc()).limit(limit).all()

    libraries = query()
    if not libraries and auto_seed and count_libraries(db) == 0:
        seed_libraries(db, catalog)
        db.commit()
        libraries = query()
    return libraries
