"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from partner_relations.domain.ports.persistence import (
        BusinessPartnerRepository,
        CanonicalRelationRepository,
        ChangelogRepository,
        LegalEntityRepository,
        StagedRelationRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class RelationRepositories(RepositoryCollection):
    """Repositories touched by staged and canonical relation operations."""

    business_partners: BusinessPartnerRepository
    staged_relations: StagedRelationRepository
    changelog: ChangelogRepository
    legal_entities: LegalEntityRepository
    canonical_relations: CanonicalRelationRepository


type RelationUnitOfWork = UnitOfWork[RelationRepositories]
