"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from partner_relations.adapters.sqlalchemy.mappings import (
    business_partner_table,
    canonical_relation_table,
    changelog_entry_table,
    legal_entity_table,
    relation_output_table,
    relation_stage_table,
    staged_relation_table,
)
from partner_relations.domain.errors import IdentityConflictError
from partner_relations.domain.model import (
    BusinessPartner,
    CanonicalRelation,
    ChangelogEntry,
    LegalEntity,
    RelationStage,
    StagedRelation,
)
from partner_relations.domain.queries import Page

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Select
    from sqlalchemy.orm import Session

    from partner_relations.domain.model import RelationType
    from partner_relations.domain.queries import (
        InputRelationFilter,
        OutputRelationFilter,
        PageRequest,
    )


def flush_or_conflict(session: Session) -> None:
    """Flush pending writes, reporting identity-constraint races as domain errors."""

    try:
        session.flush()
    except IntegrityError as exc:
        raise IdentityConflictError(str(exc.orig)) from exc


def _paginate[T](session: Session, stmt: Select[tuple[T]], page: PageRequest) -> Page[T]:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = session.execute(count_stmt).scalar_one()
    rows = session.execute(stmt.offset(page.offset).limit(page.size)).scalars().all()
    return Page.of(tuple(rows), total=total, request=page)


class SqlAlchemyBusinessPartnerRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: BusinessPartner) -> None:
        self.session.add(entity)
        flush_or_conflict(self.session)

    def find_by_external_id(self, tenant_id: str, external_id: str) -> Sequence[BusinessPartner]:
        stmt = (
            select(BusinessPartner)
            .where(business_partner_table.c.tenant_id == tenant_id)
            .where(business_partner_table.c.external_id == external_id)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyStagedRelationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: StagedRelation) -> None:
        self.session.add(entity)
        flush_or_conflict(self.session)

    def get_by_external_id(self, tenant_id: str, external_id: str) -> StagedRelation | None:
        stmt = (
            select(StagedRelation)
            .where(staged_relation_table.c.tenant_id == tenant_id)
            .where(staged_relation_table.c.external_id == external_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def remove(self, relation: StagedRelation) -> None:
        self.session.delete(relation)

    def remove_stage(self, stage: RelationStage) -> None:
        self.session.delete(stage)

    def find_input(
        self, tenant_id: str, filters: InputRelationFilter, page: PageRequest
    ) -> Page[RelationStage]:
        source_partner = business_partner_table.alias("source_partner")
        target_partner = business_partner_table.alias("target_partner")
        stmt = (
            select(RelationStage)
            .join(
                staged_relation_table,
                relation_stage_table.c.relation_id == staged_relation_table.c.id,
            )
            .where(staged_relation_table.c.tenant_id == tenant_id)
        )
        if filters.external_ids:
            stmt = stmt.where(staged_relation_table.c.external_id.in_(filters.external_ids))
        if filters.relation_type is not None:
            stmt = stmt.where(relation_stage_table.c.relation_type == filters.relation_type)
        if filters.source_external_ids:
            stmt = stmt.join(
                source_partner, relation_stage_table.c.source_id == source_partner.c.id
            ).where(source_partner.c.external_id.in_(filters.source_external_ids))
        if filters.target_external_ids:
            stmt = stmt.join(
                target_partner, relation_stage_table.c.target_id == target_partner.c.id
            ).where(target_partner.c.external_id.in_(filters.target_external_ids))
        if filters.updated_after is not None:
            stmt = stmt.where(relation_stage_table.c.updated_at > filters.updated_after)

        stmt = stmt.order_by(relation_stage_table.c.created_at, staged_relation_table.c.external_id)
        return _paginate(self.session, cast("Select[tuple[RelationStage]]", stmt), page)

    def find_output(
        self, tenant_id: str, filters: OutputRelationFilter, page: PageRequest
    ) -> Page[StagedRelation]:
        stmt = (
            select(StagedRelation)
            .join(
                relation_output_table,
                relation_output_table.c.relation_id == staged_relation_table.c.id,
            )
            .where(staged_relation_table.c.tenant_id == tenant_id)
        )
        if filters.external_ids:
            stmt = stmt.where(staged_relation_table.c.external_id.in_(filters.external_ids))
        if filters.relation_type is not None:
            stmt = stmt.where(relation_output_table.c.relation_type == filters.relation_type)
        if filters.source_bpns:
            stmt = stmt.where(relation_output_table.c.source_bpn.in_(filters.source_bpns))
        if filters.target_bpns:
            stmt = stmt.where(relation_output_table.c.target_bpn.in_(filters.target_bpns))
        if filters.updated_after is not None:
            stmt = stmt.where(relation_output_table.c.updated_at > filters.updated_after)

        stmt = stmt.order_by(
            relation_output_table.c.updated_at, staged_relation_table.c.external_id
        )
        return _paginate(self.session, cast("Select[tuple[StagedRelation]]", stmt), page)


class SqlAlchemyChangelogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ChangelogEntry) -> None:
        self.session.add(entity)

    def find_by_subject(self, subject_id: str) -> Sequence[ChangelogEntry]:
        stmt = (
            select(ChangelogEntry)
            .where(changelog_entry_table.c.subject_id == subject_id)
            .order_by(changelog_entry_table.c.created_at)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyLegalEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: LegalEntity) -> None:
        self.session.add(entity)
        flush_or_conflict(self.session)

    def get_by_bpn(self, bpn: str) -> LegalEntity | None:
        stmt = select(LegalEntity).where(legal_entity_table.c.bpn == bpn)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyCanonicalRelationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CanonicalRelation) -> None:
        self.session.add(entity)
        flush_or_conflict(self.session)

    def find_by_identity(
        self, source: LegalEntity, target: LegalEntity, relation_type: RelationType
    ) -> CanonicalRelation | None:
        stmt = (
            select(CanonicalRelation)
            .where(canonical_relation_table.c.source_id == source.id)
            .where(canonical_relation_table.c.target_id == target.id)
            .where(canonical_relation_table.c.relation_type == relation_type)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_touching(
        self, relation_type: RelationType, entity: LegalEntity
    ) -> Sequence[CanonicalRelation]:
        stmt = (
            select(CanonicalRelation)
            .where(canonical_relation_table.c.relation_type == relation_type)
            .where(
                or_(
                    canonical_relation_table.c.source_id == entity.id,
                    canonical_relation_table.c.target_id == entity.id,
                )
            )
        )
        return self.session.execute(stmt).scalars().all()

    def find_from_source(
        self, relation_type: RelationType, source: LegalEntity
    ) -> Sequence[CanonicalRelation]:
        stmt = (
            select(CanonicalRelation)
            .where(canonical_relation_table.c.relation_type == relation_type)
            .where(canonical_relation_table.c.source_id == source.id)
        )
        return self.session.execute(stmt).scalars().all()


if TYPE_CHECKING:
    from partner_relations.domain.ports.persistence import (
        BusinessPartnerRepository,
        CanonicalRelationRepository,
        ChangelogRepository,
        LegalEntityRepository,
        StagedRelationRepository,
    )

    _session_stub = cast("Session", object())
    _partner_repo: BusinessPartnerRepository = SqlAlchemyBusinessPartnerRepository(_session_stub)
    _staged_repo: StagedRelationRepository = SqlAlchemyStagedRelationRepository(_session_stub)
    _changelog_repo: ChangelogRepository = SqlAlchemyChangelogRepository(_session_stub)
    _entity_repo: LegalEntityRepository = SqlAlchemyLegalEntityRepository(_session_stub)
    _relation_repo: CanonicalRelationRepository = SqlAlchemyCanonicalRelationRepository(
        _session_stub
    )
