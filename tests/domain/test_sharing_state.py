from __future__ import annotations

import pytest

from partner_relations.domain.model import (
    ALWAYS_ACTIVE_STATE,
    RelationOutput,
    RelationSharingStateType,
    RelationType,
    StagedRelation,
)
from partner_relations.domain.sharing_state import SharingStateService
from tests.helpers.relations import TickingClock


def test_set_initial_creates_state() -> None:
    service = SharingStateService(clock=TickingClock())
    relation = StagedRelation(tenant_id="t", external_id="r1")

    state = service.set_initial(relation, RelationType.IS_OWNED_BY)

    assert relation.sharing_state is state
    assert SharingStateService.current(relation) is RelationSharingStateType.INITIAL


def test_current_without_state_is_none() -> None:
    relation = StagedRelation(tenant_id="t", external_id="r1")

    assert SharingStateService.current(relation) is None


def test_set_success_reuses_state_and_clears_error() -> None:
    clock = TickingClock()
    service = SharingStateService(clock=clock)
    relation = StagedRelation(tenant_id="t", external_id="r1")
    state = service.set_initial(relation, RelationType.IS_OWNED_BY)
    state.state_type = RelationSharingStateType.ERROR
    state.error_message = "boom"
    first_update = state.updated_at

    success = service.set_success(relation)

    assert success is state
    assert success.state_type is RelationSharingStateType.SUCCESS
    assert success.error_message is None
    assert success.updated_at > first_update


def test_set_success_takes_type_from_output() -> None:
    service = SharingStateService(clock=TickingClock())
    relation = StagedRelation(tenant_id="t", external_id="r1")
    service.set_initial(relation, RelationType.IS_OWNED_BY)
    relation.output = RelationOutput(
        relation_type=RelationType.IS_MANAGED_BY,
        source_bpn="BPNL1",
        target_bpn="BPNL2",
        states=(ALWAYS_ACTIVE_STATE,),
    )

    state = service.set_success(relation)

    assert state.relation_type is RelationType.IS_MANAGED_BY


def test_set_success_needs_a_known_relation_type() -> None:
    service = SharingStateService()
    relation = StagedRelation(tenant_id="t", external_id="r1")

    with pytest.raises(ValueError, match="no known relation type"):
        service.set_success(relation)
