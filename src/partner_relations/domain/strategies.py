"""Relation-type specific policies layered on the canonical upsert service."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from partner_relations.domain.canonical_relations import (
    RelationUpsertRequest,
    RelationUpsertService,
    UpsertResult,
    UpsertType,
)
from partner_relations.domain.errors import InvalidRelationError
from partner_relations.domain.model import RelationType
from partner_relations.domain.validation import is_always_active

if TYPE_CHECKING:
    from collections.abc import Iterable

    from partner_relations.domain.model import CanonicalRelation, LegalEntity
    from partner_relations.domain.ports import RelationRepositories

log = logging.getLogger(__name__)


@runtime_checkable
class RelationUpsertStrategy(Protocol):
    relation_type: RelationType

    def upsert_relation(
        self, request: RelationUpsertRequest
    ) -> UpsertResult[CanonicalRelation]: ...


class DirectUpsertStrategy:
    """No type policy: the request is stored as given."""

    def __init__(self, relation_type: RelationType, upsert_service: RelationUpsertService) -> None:
        self.relation_type = relation_type
        self._upsert_service = upsert_service

    def upsert_relation(self, request: RelationUpsertRequest) -> UpsertResult[CanonicalRelation]:
        return self._upsert_service.upsert(
            request.source, request.target, self.relation_type, request.states
        )


class ManagedByUpsertStrategy:
    """A legal entity is managed by at most one other entity at any instant."""

    relation_type = RelationType.IS_MANAGED_BY

    def __init__(
        self, upsert_service: RelationUpsertService, repositories: RelationRepositories
    ) -> None:
        self._upsert_service = upsert_service
        self._repositories = repositories

    def upsert_relation(self, request: RelationUpsertRequest) -> UpsertResult[CanonicalRelation]:
        managers = self._repositories.canonical_relations.find_from_source(
            self.relation_type, request.source
        )
        overlapping = self._upsert_service.filter_overlapping(request, managers)
        if overlapping:
            conflicting = ", ".join(sorted(relation.target.bpn for relation in overlapping))
            raise InvalidRelationError(
                f"Legal entity {request.source.bpn} is already managed by {conflicting} "
                "during the requested validity."
            )
        return self._upsert_service.upsert(
            request.source, request.target, self.relation_type, request.states
        )


class AlternativeHeadquarterUpsertStrategy:
    """Symmetric relation kept as a fully connected clique.

    Direction carries no meaning, so every pair is stored once with the older
    legal entity as target. Creating a new edge connects both endpoints with
    everything the other endpoint is already connected to.
    """

    relation_type = RelationType.IS_ALTERNATIVE_HEADQUARTER_FOR

    def __init__(
        self, upsert_service: RelationUpsertService, repositories: RelationRepositories
    ) -> None:
        self._upsert_service = upsert_service
        self._repositories = repositories

    def upsert_relation(self, request: RelationUpsertRequest) -> UpsertResult[CanonicalRelation]:
        if not is_always_active(request.states):
            raise InvalidRelationError(
                "Invalid 'IsAlternativeHeadquarter' relation: "
                "This relation type does not support any validity constraints."
            )

        standardised = standardise(request)
        result = self._upsert(standardised)
        if result.upsert_type is UpsertType.CREATED:
            self._create_transitive_relations(standardised)
        return result

    def _upsert(self, request: RelationUpsertRequest) -> UpsertResult[CanonicalRelation]:
        return self._upsert_service.upsert(
            request.source, request.target, self.relation_type, request.states
        )

    def _create_transitive_relations(self, created: RelationUpsertRequest) -> None:
        seen = {created.key}
        pending = deque([created])
        while pending:
            edge = pending.popleft()
            for candidate in self._transitive_candidates(edge):
                if candidate.key in seen:
                    continue
                seen.add(candidate.key)
                result = self._upsert(candidate)
                if result.upsert_type is UpsertType.CREATED:
                    log.info(
                        "Derived alternative headquarter relation %s -> %s",
                        candidate.source.bpn,
                        candidate.target.bpn,
                    )
                    pending.append(candidate)

    def _transitive_candidates(self, edge: RelationUpsertRequest) -> list[RelationUpsertRequest]:
        relations = self._repositories.canonical_relations
        source_relations = relations.find_touching(self.relation_type, edge.source)
        target_relations = relations.find_touching(self.relation_type, edge.target)

        candidates = [
            *_pairs_with(edge.target, edge.source, source_relations, edge),
            *_pairs_with(edge.source, edge.target, target_relations, edge),
        ]
        unique: dict[tuple[object, object], RelationUpsertRequest] = {}
        for candidate in candidates:
            if candidate.key != edge.key:
                unique.setdefault(candidate.key, candidate)
        return list(unique.values())


def standardise(request: RelationUpsertRequest) -> RelationUpsertRequest:
    """Orient the pair so that the older legal entity becomes the target.

    Entities with identical creation timestamps keep the proposed orientation.
    """

    source_is_older = request.source.created_at < request.target.created_at
    if source_is_older:
        return RelationUpsertRequest(
            source=request.target, target=request.source, states=request.states
        )
    return request


def _pairs_with(
    entity: LegalEntity,
    pivot: LegalEntity,
    relations: Iterable[CanonicalRelation],
    template: RelationUpsertRequest,
) -> list[RelationUpsertRequest]:
    """Pair ``entity`` with everything ``pivot`` is connected to."""

    connected: dict[object, LegalEntity] = {}
    for relation in relations:
        opposite = relation.opposite_of(pivot)
        connected.setdefault(opposite.id, opposite)
    connected.pop(entity.id, None)
    return [
        standardise(RelationUpsertRequest(source=entity, target=other, states=template.states))
        for other in connected.values()
    ]


def strategy_for(
    relation_type: RelationType,
    upsert_service: RelationUpsertService,
    repositories: RelationRepositories,
) -> RelationUpsertStrategy:
    if relation_type == RelationType.IS_ALTERNATIVE_HEADQUARTER_FOR:
        return AlternativeHeadquarterUpsertStrategy(upsert_service, repositories)
    if relation_type == RelationType.IS_MANAGED_BY:
        return ManagedByUpsertStrategy(upsert_service, repositories)
    return DirectUpsertStrategy(relation_type, upsert_service)
