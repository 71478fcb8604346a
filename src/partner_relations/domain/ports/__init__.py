"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    BusinessPartnerRepository,
    CanonicalRelationRepository,
    ChangelogRepository,
    LegalEntityRepository,
    Repository,
    StagedRelationRepository,
)
from .unit_of_work import (
    RelationRepositories,
    RelationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BusinessPartnerRepository",
    "CanonicalRelationRepository",
    "ChangelogRepository",
    "LegalEntityRepository",
    "RelationRepositories",
    "RelationUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "StagedRelationRepository",
    "UnitOfWork",
]
