"""Sharing state transitions owned by this core.

Only two transitions are driven from here: back to ``INITIAL`` whenever staged
data needs (re-)synchronisation, and to ``SUCCESS`` once output has been
published. ``READY`` and ``ERROR`` are written by the downstream synchronizer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from partner_relations.domain.model import (
    RelationSharingState,
    RelationSharingStateType,
    utcnow,
)

if TYPE_CHECKING:
    from partner_relations.domain.model import Clock, RelationType, StagedRelation

log = logging.getLogger(__name__)


class SharingStateService:
    def __init__(self, *, clock: Clock = utcnow) -> None:
        self._clock = clock

    @staticmethod
    def current(relation: StagedRelation) -> RelationSharingStateType | None:
        state = relation.sharing_state
        return state.state_type if state is not None else None

    def set_initial(
        self, relation: StagedRelation, relation_type: RelationType
    ) -> RelationSharingState:
        return self._transition(relation, RelationSharingStateType.INITIAL, relation_type)

    def set_success(self, relation: StagedRelation) -> RelationSharingState:
        relation_type = self._known_relation_type(relation)
        return self._transition(relation, RelationSharingStateType.SUCCESS, relation_type)

    def _transition(
        self,
        relation: StagedRelation,
        target: RelationSharingStateType,
        relation_type: RelationType,
    ) -> RelationSharingState:
        now = self._clock()
        state = relation.sharing_state
        if state is None:
            state = RelationSharingState(
                state_type=target, relation_type=relation_type, updated_at=now
            )
            relation.sharing_state = state
        else:
            previous = state.state_type
            state.state_type = target
            state.relation_type = relation_type
            state.updated_at = now
            state.error_message = None
            log.debug(
                "Sharing state of relation %s: %s -> %s", relation.external_id, previous, target
            )
        return state

    @staticmethod
    def _known_relation_type(relation: StagedRelation) -> RelationType:
        if relation.output is not None:
            return relation.output.relation_type
        if relation.sharing_state is not None:
            return relation.sharing_state.relation_type
        if relation.input_stage is not None:
            return relation.input_stage.relation_type
        raise ValueError(f"Relation {relation.external_id} has no known relation type")
