from __future__ import annotations

from itertools import combinations

import pytest

from partner_relations.domain.canonical_relations import (
    RelationUpsertRequest,
    RelationUpsertService,
    UpsertType,
)
from partner_relations.domain.errors import InvalidRelationError
from partner_relations.domain.model import (
    ALWAYS_ACTIVE_STATE,
    LegalEntity,
    RelationType,
    ValidityState,
)
from partner_relations.domain.ports import RelationRepositories
from partner_relations.domain.strategies import (
    AlternativeHeadquarterUpsertStrategy,
    DirectUpsertStrategy,
    ManagedByUpsertStrategy,
    RelationUpsertStrategy,
    standardise,
    strategy_for,
)
from tests.helpers.relations import (
    BASE_TIME,
    FakeCanonicalRelationRepository,
    make_fake_repositories,
    make_legal_entity,
    make_state,
)

ALT_HQ = RelationType.IS_ALTERNATIVE_HEADQUARTER_FOR
MANAGED = RelationType.IS_MANAGED_BY
OWNED = RelationType.IS_OWNED_BY


@pytest.fixture
def repositories() -> RelationRepositories:
    return make_fake_repositories()


def _strategy(
    repositories: RelationRepositories, relation_type: RelationType
) -> RelationUpsertStrategy:
    return strategy_for(relation_type, RelationUpsertService(repositories), repositories)


def _graph(repositories: RelationRepositories) -> FakeCanonicalRelationRepository:
    relations = repositories.canonical_relations
    assert isinstance(relations, FakeCanonicalRelationRepository)
    return relations


def _request(
    source: LegalEntity,
    target: LegalEntity,
    states: tuple[ValidityState, ...] = (ALWAYS_ACTIVE_STATE,),
) -> RelationUpsertRequest:
    return RelationUpsertRequest(source=source, target=target, states=states)


def _clique(*entities: LegalEntity) -> set[tuple[str, str]]:
    """Every unordered pair, oriented with the older entity as target."""

    pairs: set[tuple[str, str]] = set()
    for first, second in combinations(entities, 2):
        newer, older = (first, second) if first.created_at >= second.created_at else (second, first)
        pairs.add((newer.bpn, older.bpn))
    return pairs


def test_strategy_for_selects_by_type(repositories: RelationRepositories) -> None:
    assert isinstance(_strategy(repositories, ALT_HQ), AlternativeHeadquarterUpsertStrategy)
    assert isinstance(_strategy(repositories, MANAGED), ManagedByUpsertStrategy)
    direct = _strategy(repositories, OWNED)
    assert isinstance(direct, DirectUpsertStrategy)
    assert direct.relation_type is OWNED


def test_standardise_makes_older_entity_the_target() -> None:
    older = make_legal_entity("BPNL-OLD", age_days=5)
    newer = make_legal_entity("BPNL-NEW", age_days=1)

    oriented = standardise(_request(older, newer))

    assert (oriented.source, oriented.target) == (newer, older)
    assert standardise(oriented) == oriented


def test_standardise_keeps_orientation_on_equal_timestamps() -> None:
    first = LegalEntity(bpn="BPNL-1", created_at=BASE_TIME)
    second = LegalEntity(bpn="BPNL-2", created_at=BASE_TIME)

    assert standardise(_request(first, second)).source is first
    assert standardise(_request(second, first)).source is second


def test_alternative_headquarter_requires_always_active_state(
    repositories: RelationRepositories,
) -> None:
    a, b = make_legal_entity("BPNL-A", age_days=2), make_legal_entity("BPNL-B", age_days=1)

    with pytest.raises(InvalidRelationError, match="does not support any validity"):
        _strategy(repositories, ALT_HQ).upsert_relation(_request(a, b, (make_state(1, 10),)))

    assert _graph(repositories).items == []


def test_alternative_headquarter_is_stored_once_per_pair(
    repositories: RelationRepositories,
) -> None:
    a, b = make_legal_entity("BPNL-A", age_days=2), make_legal_entity("BPNL-B", age_days=1)
    strategy = _strategy(repositories, ALT_HQ)

    created = strategy.upsert_relation(_request(a, b))
    reversed_again = strategy.upsert_relation(_request(b, a))

    assert created.upsert_type is UpsertType.CREATED
    assert (created.value.source, created.value.target) == (b, a)
    assert reversed_again.upsert_type is UpsertType.NO_CHANGE
    assert _graph(repositories).pairs(ALT_HQ) == {("BPNL-B", "BPNL-A")}


def test_alternative_headquarter_closes_the_clique(repositories: RelationRepositories) -> None:
    a = make_legal_entity("BPNL-A", age_days=3)
    b = make_legal_entity("BPNL-B", age_days=2)
    c = make_legal_entity("BPNL-C", age_days=1)
    strategy = _strategy(repositories, ALT_HQ)

    strategy.upsert_relation(_request(a, b))
    strategy.upsert_relation(_request(c, b))

    assert _graph(repositories).pairs(ALT_HQ) == _clique(a, b, c)
    assert _graph(repositories).pairs(ALT_HQ) == {
        ("BPNL-B", "BPNL-A"),
        ("BPNL-C", "BPNL-B"),
        ("BPNL-C", "BPNL-A"),
    }


def test_alternative_headquarter_clique_when_oldest_joins_last(
    repositories: RelationRepositories,
) -> None:
    a = make_legal_entity("BPNL-A", age_days=3)
    b = make_legal_entity("BPNL-B", age_days=2)
    c = make_legal_entity("BPNL-C", age_days=1)
    strategy = _strategy(repositories, ALT_HQ)

    first = strategy.upsert_relation(_request(b, c))
    second = strategy.upsert_relation(_request(a, b))

    assert (first.value.source, first.value.target) == (c, b)
    assert (second.value.source, second.value.target) == (b, a)
    assert _graph(repositories).pairs(ALT_HQ) == {
        ("BPNL-C", "BPNL-B"),
        ("BPNL-B", "BPNL-A"),
        ("BPNL-C", "BPNL-A"),
    }


def test_alternative_headquarter_merges_two_cliques(repositories: RelationRepositories) -> None:
    a = make_legal_entity("BPNL-A", age_days=4)
    b = make_legal_entity("BPNL-B", age_days=3)
    c = make_legal_entity("BPNL-C", age_days=2)
    d = make_legal_entity("BPNL-D", age_days=1)
    strategy = _strategy(repositories, ALT_HQ)
    strategy.upsert_relation(_request(a, b))
    strategy.upsert_relation(_request(c, d))

    strategy.upsert_relation(_request(b, c))

    assert _graph(repositories).pairs(ALT_HQ) == _clique(a, b, c, d)
    assert len(_graph(repositories).items) == 6


def test_alternative_headquarter_leaves_other_types_alone(
    repositories: RelationRepositories,
) -> None:
    a = make_legal_entity("BPNL-A", age_days=3)
    b = make_legal_entity("BPNL-B", age_days=2)
    c = make_legal_entity("BPNL-C", age_days=1)
    _strategy(repositories, OWNED).upsert_relation(_request(a, b))

    _strategy(repositories, ALT_HQ).upsert_relation(_request(b, c))

    assert _graph(repositories).pairs(ALT_HQ) == {("BPNL-C", "BPNL-B")}
    assert _graph(repositories).pairs(OWNED) == {("BPNL-A", "BPNL-B")}


def test_direct_strategy_stores_request_as_given(repositories: RelationRepositories) -> None:
    older = make_legal_entity("BPNL-OLD", age_days=5)
    newer = make_legal_entity("BPNL-NEW", age_days=1)

    result = _strategy(repositories, OWNED).upsert_relation(
        _request(older, newer, (make_state(1, 10),))
    )

    assert result.upsert_type is UpsertType.CREATED
    assert (result.value.source, result.value.target) == (older, newer)
    assert result.value.states == (make_state(1, 10),)


class TestManagedBy:
    @pytest.fixture
    def entities(self) -> tuple[LegalEntity, LegalEntity, LegalEntity]:
        return (
            make_legal_entity("BPNL-A"),
            make_legal_entity("BPNL-B"),
            make_legal_entity("BPNL-C"),
        )

    def test_rejects_overlapping_manager(
        self,
        repositories: RelationRepositories,
        entities: tuple[LegalEntity, LegalEntity, LegalEntity],
    ) -> None:
        a, b, c = entities
        strategy = _strategy(repositories, MANAGED)
        strategy.upsert_relation(_request(a, b, (make_state(1, 10),)))

        with pytest.raises(InvalidRelationError, match="already managed by BPNL-B"):
            strategy.upsert_relation(_request(a, c, (make_state(5, 15),)))

        assert _graph(repositories).pairs(MANAGED) == {("BPNL-A", "BPNL-B")}

    def test_accepts_successive_managers(
        self,
        repositories: RelationRepositories,
        entities: tuple[LegalEntity, LegalEntity, LegalEntity],
    ) -> None:
        a, b, c = entities
        strategy = _strategy(repositories, MANAGED)
        strategy.upsert_relation(_request(a, b, (make_state(1, 10),)))

        result = strategy.upsert_relation(_request(a, c, (make_state(11, 20),)))

        assert result.upsert_type is UpsertType.CREATED
        assert _graph(repositories).pairs(MANAGED) == {("BPNL-A", "BPNL-B"), ("BPNL-A", "BPNL-C")}

    def test_updates_states_of_same_manager(
        self,
        repositories: RelationRepositories,
        entities: tuple[LegalEntity, LegalEntity, LegalEntity],
    ) -> None:
        a, b, _ = entities
        strategy = _strategy(repositories, MANAGED)
        strategy.upsert_relation(_request(a, b, (make_state(1, 10),)))

        result = strategy.upsert_relation(_request(a, b, (make_state(1, 20),)))

        assert result.upsert_type is UpsertType.UPDATED
        assert result.value.states == (make_state(1, 20),)

    def test_managers_of_other_entities_do_not_conflict(
        self,
        repositories: RelationRepositories,
        entities: tuple[LegalEntity, LegalEntity, LegalEntity],
    ) -> None:
        a, b, c = entities
        strategy = _strategy(repositories, MANAGED)
        strategy.upsert_relation(_request(a, b, (make_state(1, 10),)))

        result = strategy.upsert_relation(_request(c, b, (make_state(1, 10),)))

        assert result.upsert_type is UpsertType.CREATED
