"""SQLAlchemy adapter package for partner relations."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBusinessPartnerRepository,
    SqlAlchemyCanonicalRelationRepository,
    SqlAlchemyChangelogRepository,
    SqlAlchemyLegalEntityRepository,
    SqlAlchemyStagedRelationRepository,
)
from .unit_of_work import (
    SqlAlchemyRelationUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBusinessPartnerRepository",
    "SqlAlchemyCanonicalRelationRepository",
    "SqlAlchemyChangelogRepository",
    "SqlAlchemyLegalEntityRepository",
    "SqlAlchemyRelationUnitOfWork",
    "SqlAlchemyStagedRelationRepository",
    "StartupError",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
