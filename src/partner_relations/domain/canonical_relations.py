"""Deduplicating upserts of canonical relation graph edges."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from partner_relations.domain.errors import SelfRelationError
from partner_relations.domain.model import (
    CanonicalRelation,
    ChangelogEntry,
    ChangelogSubjectKind,
    ChangelogType,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from partner_relations.domain.model import (
        Clock,
        LegalEntity,
        RelationType,
        ValidityState,
    )
    from partner_relations.domain.ports import RelationRepositories

log = logging.getLogger(__name__)


class UpsertType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    NO_CHANGE = "no_change"


@dataclass(frozen=True, slots=True)
class UpsertResult[T]:
    """Upserted value tagged with what happened to it.

    Callers use ``upsert_type`` to decide whether to cascade further work.
    """

    value: T
    upsert_type: UpsertType


@dataclass(frozen=True, slots=True)
class RelationUpsertRequest:
    """Proposed edge between two legal entities, before any type policy applies."""

    source: LegalEntity
    target: LegalEntity
    states: tuple[ValidityState, ...]

    @property
    def key(self) -> tuple[object, object]:
        return (self.source.id, self.target.id)


def states_differ(existing: Sequence[ValidityState], proposed: Sequence[ValidityState]) -> bool:
    """Positional comparison of two state lists, length included."""

    if len(existing) != len(proposed):
        return True
    return any(
        old.valid_from != new.valid_from
        or old.valid_to != new.valid_to
        or old.status != new.status
        for old, new in zip(existing, proposed, strict=True)
    )


class RelationUpsertService:
    """Create-or-update of edges keyed by ``(source, target, relation_type)``.

    The lookup is direction-sensitive; callers canonicalize direction first.
    """

    def __init__(self, repositories: RelationRepositories, *, clock: Clock = utcnow) -> None:
        self._repositories = repositories
        self._clock = clock

    def upsert(
        self,
        source: LegalEntity,
        target: LegalEntity,
        relation_type: RelationType,
        states: Sequence[ValidityState],
    ) -> UpsertResult[CanonicalRelation]:
        if source.id == target.id:
            raise SelfRelationError(
                f"A legal entity cannot have a relation to itself (BPNL: {source.bpn})."
            )

        relations = self._repositories.canonical_relations
        existing = relations.find_by_identity(source, target, relation_type)
        if existing is None:
            created = self._create(source, target, relation_type, states)
            return UpsertResult(created, UpsertType.CREATED)

        if not states_differ(existing.states, states):
            log.debug("Relation %s -> %s (%s) unchanged", source.bpn, target.bpn, relation_type)
            return UpsertResult(existing, UpsertType.NO_CHANGE)

        existing.states = tuple(states)
        relations.add(existing)
        log.info("Updated states of relation %s -> %s (%s)", source.bpn, target.bpn, relation_type)
        return UpsertResult(existing, UpsertType.UPDATED)

    def filter_overlapping(
        self, candidate: RelationUpsertRequest, relations: Iterable[CanonicalRelation]
    ) -> list[CanonicalRelation]:
        """Return the relations whose active windows overlap the candidate's.

        A relation with exactly the candidate's endpoints is never reported.
        Only candidate boundaries are tested for containment, so an existing
        window strictly nested inside the candidate window does not count.
        """

        return [
            relation
            for relation in relations
            if not _same_endpoints(candidate, relation) and _has_overlap(candidate, relation)
        ]

    def _create(
        self,
        source: LegalEntity,
        target: LegalEntity,
        relation_type: RelationType,
        states: Sequence[ValidityState],
    ) -> CanonicalRelation:
        relation = CanonicalRelation(
            relation_type=relation_type,
            source=source,
            target=target,
            states=tuple(states),
        )
        self._repositories.canonical_relations.add(relation)

        now = self._clock()
        for endpoint in (source, target):
            self._repositories.changelog.add(
                ChangelogEntry(
                    subject_id=endpoint.bpn,
                    change_type=ChangelogType.UPDATE,
                    subject_kind=ChangelogSubjectKind.LEGAL_ENTITY,
                    created_at=now,
                )
            )
        log.info("Created relation %s -> %s (%s)", source.bpn, target.bpn, relation_type)
        return relation


def _same_endpoints(candidate: RelationUpsertRequest, relation: CanonicalRelation) -> bool:
    return (
        candidate.source.bpn == relation.source.bpn
        and candidate.target.bpn == relation.target.bpn
    )


def _has_overlap(candidate: RelationUpsertRequest, relation: CanonicalRelation) -> bool:
    proposed = [state for state in candidate.states if state.is_active]
    existing = [state for state in relation.states if state.is_active]
    return any(
        window.contains(new.valid_from) or window.contains(new.valid_to)
        for new in proposed
        for window in existing
    )
