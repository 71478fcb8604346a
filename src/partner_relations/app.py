"""Application orchestration entry points.

Every function runs one domain operation (single or batch) inside one unit of
work and commits it. A batch therefore either persists completely or not at all.
"""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from partner_relations.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRelationUnitOfWork,
    is_started,
    startup,
)
from partner_relations.domain.canonical_relations import (
    RelationUpsertRequest,
    RelationUpsertService,
    UpsertResult,
)
from partner_relations.domain.errors import IdentityConflictError, LegalEntityNotFoundError
from partner_relations.domain.model import BusinessPartner, LegalEntity
from partner_relations.domain.ports.unit_of_work import RelationUnitOfWork
from partner_relations.domain.staged_relations import StagedRelationService
from partner_relations.domain.strategies import strategy_for
from partner_relations.domain.validation import normalise_states

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from partner_relations.domain.model import (
        CanonicalRelation,
        RelationStage,
        RelationType,
        StagedRelation,
        ValidityState,
    )
    from partner_relations.domain.ports import RelationRepositories
    from partner_relations.domain.queries import (
        InputRelationFilter,
        OutputRelationFilter,
        Page,
        PageRequest,
    )
    from partner_relations.domain.staged_relations import OutputPutEntry, RelationPutEntry

UnitOfWorkFactory = Callable[[], RelationUnitOfWork]

DEFAULT_CONFLICT_RETRIES = 3

log = getLogger(__name__)


def _default_unit_of_work_factory() -> UnitOfWorkFactory:
    if not is_started():
        startup()
    return SqlAlchemyRelationUnitOfWork


def run_in_unit_of_work[T](
    operation: Callable[[RelationRepositories], T],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    attempts: int = DEFAULT_CONFLICT_RETRIES,
) -> T:
    """Run ``operation`` in a fresh unit of work and commit it.

    A racing writer that created the same identity tuple first surfaces as
    ``IdentityConflictError``; the whole unit of work is then rerun, up to
    ``attempts`` times in total. Any other error propagates after rollback.
    """

    factory = unit_of_work_factory or _default_unit_of_work_factory()
    attempt = 1
    while True:
        try:
            with factory() as uow:
                result = operation(uow.repositories)
                uow.commit()
        except IdentityConflictError:
            if attempt >= attempts:
                raise
            log.warning("Identity conflict on attempt %s/%s, retrying", attempt, attempts)
            attempt += 1
        else:
            return result


# Reference data -------------------------------------------------------------


def register_business_partner(
    tenant_id: str,
    external_id: str,
    *,
    bpn: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> BusinessPartner:
    """Create a tenant's business partner, or update the bpn of the existing one.

    Omitting ``bpn`` keeps a bpn that was resolved earlier.
    """

    def operation(repositories: RelationRepositories) -> BusinessPartner:
        partners = repositories.business_partners
        matches = partners.find_by_external_id(tenant_id, external_id)
        if matches:
            partner = matches[0]
            if bpn is not None:
                partner.bpn = bpn
        else:
            partner = BusinessPartner(tenant_id=tenant_id, external_id=external_id, bpn=bpn)
        partners.add(partner)
        return partner

    partner = run_in_unit_of_work(operation, unit_of_work_factory=unit_of_work_factory)
    log.info("Registered business partner %s of tenant %s", external_id, tenant_id)
    return partner


def register_legal_entity(
    bpn: str,
    *,
    created_at: datetime | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> LegalEntity:
    """Return the legal entity for ``bpn``, creating it when unknown."""

    def operation(repositories: RelationRepositories) -> LegalEntity:
        entities = repositories.legal_entities
        existing = entities.get_by_bpn(bpn)
        if existing is not None:
            return existing
        entity = LegalEntity(bpn=bpn)
        if created_at is not None:
            entity.created_at = created_at
        entities.add(entity)
        log.info("Registered legal entity %s", bpn)
        return entity

    return run_in_unit_of_work(operation, unit_of_work_factory=unit_of_work_factory)


# Staged relations -----------------------------------------------------------


def list_input_relations(
    tenant_id: str,
    *,
    filters: InputRelationFilter | None = None,
    page: PageRequest | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Page[RelationStage]:
    return run_in_unit_of_work(
        lambda repositories: StagedRelationService(repositories).list_input(
            tenant_id, filters, page
        ),
        unit_of_work_factory=unit_of_work_factory,
    )


def list_output_relations(
    tenant_id: str,
    *,
    filters: OutputRelationFilter | None = None,
    page: PageRequest | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Page[StagedRelation]:
    return run_in_unit_of_work(
        lambda repositories: StagedRelationService(repositories).list_output(
            tenant_id, filters, page
        ),
        unit_of_work_factory=unit_of_work_factory,
    )


def create_input_relation(
    tenant_id: str,
    *,
    relation_type: RelationType,
    source_external_id: str,
    target_external_id: str,
    external_id: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> RelationStage:
    return run_in_unit_of_work(
        lambda repositories: StagedRelationService(repositories).create_input(
            tenant_id,
            relation_type=relation_type,
            source_external_id=source_external_id,
            target_external_id=target_external_id,
            external_id=external_id,
        ),
        unit_of_work_factory=unit_of_work_factory,
    )


def upsert_input_relations(
    tenant_id: str,
    entries: Sequence[RelationPutEntry],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[RelationStage]:
    stages = run_in_unit_of_work(
        lambda repositories: StagedRelationService(repositories).upsert_input_relations(
            tenant_id, entries
        ),
        unit_of_work_factory=unit_of_work_factory,
    )
    log.info("Upserted %s input relations of tenant %s", len(stages), tenant_id)
    return stages


def update_input_relations(
    tenant_id: str,
    entries: Sequence[RelationPutEntry],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[RelationStage]:
    stages = run_in_unit_of_work(
        lambda repositories: StagedRelationService(repositories).update_input_relations(
            tenant_id, entries
        ),
        unit_of_work_factory=unit_of_work_factory,
    )
    log.info("Updated %s input relations of tenant %s", len(stages), tenant_id)
    return stages


def delete_input_relation(
    tenant_id: str,
    external_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> None:
    run_in_unit_of_work(
        lambda repositories: StagedRelationService(repositories).delete_input(
            tenant_id, external_id
        ),
        unit_of_work_factory=unit_of_work_factory,
    )


def promote_relations(
    tenant_id: str,
    entries: Sequence[OutputPutEntry],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[StagedRelation]:
    """Publish the outputs of already staged relations and mark them shared."""

    relations = run_in_unit_of_work(
        lambda repositories: StagedRelationService(repositories).promote(tenant_id, entries),
        unit_of_work_factory=unit_of_work_factory,
    )
    log.info("Promoted %s relations of tenant %s", len(relations), tenant_id)
    return relations


# Canonical relations --------------------------------------------------------


def upsert_canonical_relation(
    source_bpn: str,
    target_bpn: str,
    relation_type: RelationType,
    *,
    states: Sequence[ValidityState] = (),
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> UpsertResult[CanonicalRelation]:
    """Upsert one edge of the canonical graph under its relation type's policy.

    An empty state list stands for the always-active state; naive bounds are
    read as UTC so resubmissions compare equal to what the store returns.
    """

    effective_states = normalise_states(states)

    def operation(repositories: RelationRepositories) -> UpsertResult[CanonicalRelation]:
        source = _require_legal_entity(repositories, source_bpn)
        target = _require_legal_entity(repositories, target_bpn)
        strategy = strategy_for(relation_type, RelationUpsertService(repositories), repositories)
        return strategy.upsert_relation(
            RelationUpsertRequest(source=source, target=target, states=effective_states)
        )

    result = run_in_unit_of_work(operation, unit_of_work_factory=unit_of_work_factory)
    log.info(
        "Canonical relation %s -> %s (%s): %s",
        result.value.source.bpn,
        result.value.target.bpn,
        relation_type,
        result.upsert_type,
    )
    return result


def _require_legal_entity(repositories: RelationRepositories, bpn: str) -> LegalEntity:
    entity = repositories.legal_entities.get_by_bpn(bpn)
    if entity is None:
        raise LegalEntityNotFoundError(bpn)
    return entity
