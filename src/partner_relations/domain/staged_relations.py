"""Tenant-scoped input and output stages of relations.

The service is bound to the repositories of one unit of work; committing is the
caller's job. Batch operations therefore succeed or fail as a whole.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from partner_relations.domain.errors import (
    RelationAlreadyExistsError,
    RelationNotFoundError,
    RelationSourceNotFoundError,
    RelationTargetNotFoundError,
    SelfRelationError,
)
from partner_relations.domain.model import (
    ChangelogEntry,
    ChangelogSubjectKind,
    ChangelogType,
    RelationOutput,
    RelationSharingStateType,
    RelationStage,
    StagedRelation,
    StageType,
    utcnow,
)
from partner_relations.domain.queries import InputRelationFilter, OutputRelationFilter, PageRequest
from partner_relations.domain.sharing_state import SharingStateService
from partner_relations.domain.validation import validate_states

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from partner_relations.domain.model import (
        BusinessPartner,
        Clock,
        RelationType,
        ValidityState,
    )
    from partner_relations.domain.ports import RelationRepositories
    from partner_relations.domain.queries import Page

log = logging.getLogger(__name__)


def _new_external_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class RelationPutEntry:
    """One entry of a batch input upsert or update."""

    external_id: str
    relation_type: RelationType
    source_external_id: str
    target_external_id: str
    states: tuple[ValidityState, ...] = ()


@dataclass(frozen=True, slots=True)
class OutputUpsertRequest:
    """Promotion of a staged relation to its canonical-facing output."""

    relation: StagedRelation
    relation_type: RelationType
    source_bpn: str
    target_bpn: str
    states: tuple[ValidityState, ...] = ()


@dataclass(frozen=True, slots=True)
class OutputPutEntry:
    """Promotion addressed by the tenant's external id instead of a loaded relation."""

    external_id: str
    relation_type: RelationType
    source_bpn: str
    target_bpn: str
    states: tuple[ValidityState, ...] = ()


class StagedRelationService:
    def __init__(
        self,
        repositories: RelationRepositories,
        *,
        clock: Clock = utcnow,
        external_id_factory: Callable[[], str] = _new_external_id,
        sharing_states: SharingStateService | None = None,
    ) -> None:
        self._repositories = repositories
        self._clock = clock
        self._external_id_factory = external_id_factory
        self._sharing_states = sharing_states or SharingStateService(clock=clock)

    # Queries ---------------------------------------------------------------

    def list_input(
        self,
        tenant_id: str,
        filters: InputRelationFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[RelationStage]:
        return self._repositories.staged_relations.find_input(
            tenant_id, filters or InputRelationFilter(), page or PageRequest()
        )

    def list_output(
        self,
        tenant_id: str,
        filters: OutputRelationFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[StagedRelation]:
        return self._repositories.staged_relations.find_output(
            tenant_id, filters or OutputRelationFilter(), page or PageRequest()
        )

    # Input stage -----------------------------------------------------------

    def create_input(
        self,
        tenant_id: str,
        *,
        relation_type: RelationType,
        source_external_id: str,
        target_external_id: str,
        external_id: str | None = None,
    ) -> RelationStage:
        """Create a new staged relation with the default always-active state."""

        if external_id is not None and self._find(tenant_id, external_id) is not None:
            raise RelationAlreadyExistsError(external_id)
        return self._create_input_stage(
            tenant_id,
            external_id,
            relation_type,
            source_external_id,
            target_external_id,
            (),
        )

    def update_input(
        self,
        tenant_id: str,
        external_id: str,
        *,
        relation_type: RelationType,
        source_external_id: str,
        target_external_id: str,
        states: Sequence[ValidityState] = (),
    ) -> RelationStage:
        """Update an existing input stage; never creates."""

        relation = self._find(tenant_id, external_id)
        if relation is None:
            raise RelationNotFoundError(external_id)
        return self._update_input_stage(
            relation, relation_type, source_external_id, target_external_id, states
        )

    def upsert_input(
        self,
        tenant_id: str,
        external_id: str,
        *,
        relation_type: RelationType,
        source_external_id: str,
        target_external_id: str,
        states: Sequence[ValidityState] = (),
    ) -> RelationStage:
        relation = self._find(tenant_id, external_id)
        if relation is None:
            return self._create_input_stage(
                tenant_id,
                external_id,
                relation_type,
                source_external_id,
                target_external_id,
                states,
            )
        return self._update_input_stage(
            relation, relation_type, source_external_id, target_external_id, states
        )

    def upsert_input_relations(
        self, tenant_id: str, entries: Sequence[RelationPutEntry]
    ) -> list[RelationStage]:
        return [
            self.upsert_input(
                tenant_id,
                entry.external_id,
                relation_type=entry.relation_type,
                source_external_id=entry.source_external_id,
                target_external_id=entry.target_external_id,
                states=entry.states,
            )
            for entry in entries
        ]

    def update_input_relations(
        self, tenant_id: str, entries: Sequence[RelationPutEntry]
    ) -> list[RelationStage]:
        return [
            self.update_input(
                tenant_id,
                entry.external_id,
                relation_type=entry.relation_type,
                source_external_id=entry.source_external_id,
                target_external_id=entry.target_external_id,
                states=entry.states,
            )
            for entry in entries
        ]

    def delete_input(self, tenant_id: str, external_id: str) -> None:
        """Delete the input stage together with its container."""

        relation = self._find(tenant_id, external_id)
        if relation is None:
            raise RelationNotFoundError(external_id)
        stage = relation.input_stage
        if stage is None:
            raise RelationNotFoundError(external_id)

        staged_relations = self._repositories.staged_relations
        staged_relations.remove_stage(stage)
        staged_relations.remove(relation)
        log.info("Deleted relation %s of tenant %s", external_id, tenant_id)

    # Output ----------------------------------------------------------------

    def upsert_output(
        self,
        relation: StagedRelation,
        *,
        relation_type: RelationType,
        source_bpn: str,
        target_bpn: str,
        states: Sequence[ValidityState] = (),
    ) -> StagedRelation:
        """Publish the canonical-facing output of ``relation`` and mark it shared."""

        if source_bpn == target_bpn:
            raise SelfRelationError("Source and target should not be the same")

        safe_states = validate_states(states)
        change_type = ChangelogType.CREATE if relation.output is None else ChangelogType.UPDATE
        now = self._clock()

        output = relation.output
        if output is None:
            relation.output = RelationOutput(
                relation_type=relation_type,
                source_bpn=source_bpn,
                target_bpn=target_bpn,
                states=safe_states,
                updated_at=now,
            )
        else:
            output.relation_type = relation_type
            output.source_bpn = source_bpn
            output.target_bpn = target_bpn
            output.states = safe_states
            output.updated_at = now

        self._sharing_states.set_success(relation)
        self._record(relation, change_type, StageType.OUTPUT)
        self._repositories.staged_relations.add(relation)
        log.info("Published output of relation %s (%s)", relation.external_id, change_type)
        return relation

    def upsert_output_relations(
        self, requests: Sequence[OutputUpsertRequest]
    ) -> list[StagedRelation]:
        return [
            self.upsert_output(
                request.relation,
                relation_type=request.relation_type,
                source_bpn=request.source_bpn,
                target_bpn=request.target_bpn,
                states=request.states,
            )
            for request in requests
        ]

    def promote(self, tenant_id: str, entries: Sequence[OutputPutEntry]) -> list[StagedRelation]:
        """Resolve each entry's staged relation and publish its output."""

        requests: list[OutputUpsertRequest] = []
        for entry in entries:
            relation = self._find(tenant_id, entry.external_id)
            if relation is None:
                raise RelationNotFoundError(entry.external_id)
            requests.append(
                OutputUpsertRequest(
                    relation=relation,
                    relation_type=entry.relation_type,
                    source_bpn=entry.source_bpn,
                    target_bpn=entry.target_bpn,
                    states=entry.states,
                )
            )
        return self.upsert_output_relations(requests)

    # Internals -------------------------------------------------------------

    def _find(self, tenant_id: str, external_id: str) -> StagedRelation | None:
        return self._repositories.staged_relations.get_by_external_id(tenant_id, external_id)

    def _create_input_stage(
        self,
        tenant_id: str,
        external_id: str | None,
        relation_type: RelationType,
        source_external_id: str,
        target_external_id: str,
        states: Sequence[ValidityState],
    ) -> RelationStage:
        if source_external_id == target_external_id:
            raise SelfRelationError(
                f"Source and target '{source_external_id}' should not be equal."
            )
        safe_states = validate_states(states)

        source = self._resolve_source(tenant_id, source_external_id)
        target = self._resolve_target(tenant_id, target_external_id)
        self._ensure_distinct(source, target)

        now = self._clock()
        relation = StagedRelation(
            tenant_id=tenant_id,
            external_id=external_id or self._external_id_factory(),
        )
        stage = RelationStage(
            relation=relation,
            relation_type=relation_type,
            source=source,
            target=target,
            states=safe_states,
            created_at=now,
            updated_at=now,
        )
        relation.input_stage = stage
        self._sharing_states.set_initial(relation, relation_type)

        self._repositories.staged_relations.add(relation)
        self._record(relation, ChangelogType.CREATE, StageType.INPUT)
        log.info("Created relation %s of tenant %s", relation.external_id, tenant_id)
        return stage

    def _update_input_stage(
        self,
        relation: StagedRelation,
        relation_type: RelationType,
        source_external_id: str,
        target_external_id: str,
        states: Sequence[ValidityState],
    ) -> RelationStage:
        if source_external_id == target_external_id:
            raise SelfRelationError(
                f"Source and target '{source_external_id}' should not be equal."
            )
        safe_states = validate_states(states)

        stage = relation.input_stage
        if stage is None:
            raise RelationNotFoundError(relation.external_id)

        source = self._resolve_source(relation.tenant_id, source_external_id)
        target = self._resolve_target(relation.tenant_id, target_external_id)
        self._ensure_distinct(source, target)

        proposed = (relation_type, source.id, target.id, safe_states)
        has_changes = proposed != stage.comparison_key()
        in_error = self._sharing_states.current(relation) is RelationSharingStateType.ERROR

        if has_changes:
            stage.relation_type = relation_type
            stage.source = source
            stage.target = target
            stage.states = safe_states
            stage.updated_at = self._clock()
            self._repositories.staged_relations.add(relation)
            self._record(relation, ChangelogType.UPDATE, StageType.INPUT)
            log.info("Updated relation %s of tenant %s", relation.external_id, relation.tenant_id)
        else:
            log.debug("Relation %s unchanged", relation.external_id)

        if has_changes or in_error:
            self._sharing_states.set_initial(relation, relation_type)

        return stage

    def _resolve_source(self, tenant_id: str, external_id: str) -> BusinessPartner:
        partner = self._resolve_partner(tenant_id, external_id)
        if partner is None:
            raise RelationSourceNotFoundError(external_id, tenant_id)
        return partner

    def _resolve_target(self, tenant_id: str, external_id: str) -> BusinessPartner:
        partner = self._resolve_partner(tenant_id, external_id)
        if partner is None:
            raise RelationTargetNotFoundError(external_id, tenant_id)
        return partner

    def _resolve_partner(self, tenant_id: str, external_id: str) -> BusinessPartner | None:
        matches = self._repositories.business_partners.find_by_external_id(tenant_id, external_id)
        if len(matches) != 1:
            return None
        return matches[0]

    @staticmethod
    def _ensure_distinct(source: BusinessPartner, target: BusinessPartner) -> None:
        if source.id == target.id:
            raise SelfRelationError(
                f"Business partner '{source.external_id}' cannot have a relation to itself."
            )

    def _record(
        self, relation: StagedRelation, change_type: ChangelogType, stage: StageType
    ) -> None:
        self._repositories.changelog.add(
            ChangelogEntry(
                subject_id=relation.external_id,
                tenant_id=relation.tenant_id,
                change_type=change_type,
                stage=stage,
                subject_kind=ChangelogSubjectKind.RELATION,
                created_at=self._clock(),
            )
        )
