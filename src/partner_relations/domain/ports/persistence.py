"""Ports for persisting relation aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from partner_relations.domain.model import (
    BusinessPartner,
    CanonicalRelation,
    ChangelogEntry,
    LegalEntity,
    RelationStage,
    RelationType,
    StagedRelation,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from partner_relations.domain.queries import (
        InputRelationFilter,
        OutputRelationFilter,
        Page,
        PageRequest,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class BusinessPartnerRepository(Repository[BusinessPartner], Protocol):
    """Peer identity lookup for staged relations."""

    def find_by_external_id(self, tenant_id: str, external_id: str) -> Sequence[BusinessPartner]:
        """Return every partner of the tenant carrying the external id (zero, one or many)."""
        ...


@runtime_checkable
class StagedRelationRepository(Repository[StagedRelation], Protocol):
    """Persistence contract for tenant-scoped staged relations."""

    def get_by_external_id(self, tenant_id: str, external_id: str) -> StagedRelation | None: ...

    def remove(self, relation: StagedRelation) -> None: ...

    def remove_stage(self, stage: RelationStage) -> None: ...

    def find_input(
        self, tenant_id: str, filters: InputRelationFilter, page: PageRequest
    ) -> Page[RelationStage]: ...

    def find_output(
        self, tenant_id: str, filters: OutputRelationFilter, page: PageRequest
    ) -> Page[StagedRelation]: ...


@runtime_checkable
class ChangelogRepository(Repository[ChangelogEntry], Protocol):
    """Append-only changelog sink sharing the caller's transaction."""

    def find_by_subject(self, subject_id: str) -> Sequence[ChangelogEntry]: ...


@runtime_checkable
class LegalEntityRepository(Repository[LegalEntity], Protocol):
    def get_by_bpn(self, bpn: str) -> LegalEntity | None: ...


@runtime_checkable
class CanonicalRelationRepository(Repository[CanonicalRelation], Protocol):
    """Persistence contract for canonical graph edges."""

    def find_by_identity(
        self, source: LegalEntity, target: LegalEntity, relation_type: RelationType
    ) -> CanonicalRelation | None:
        """Direction-sensitive lookup by ``(source, target, relation_type)``."""
        ...

    def find_touching(
        self, relation_type: RelationType, entity: LegalEntity
    ) -> Sequence[CanonicalRelation]:
        """Edges of the given type with ``entity`` as source or target."""
        ...

    def find_from_source(
        self, relation_type: RelationType, source: LegalEntity
    ) -> Sequence[CanonicalRelation]: ...
