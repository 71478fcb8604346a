from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

import pytest

from partner_relations import main as main_module
from partner_relations.domain.canonical_relations import UpsertResult, UpsertType
from partner_relations.domain.errors import RelationSourceNotFoundError
from partner_relations.domain.model import (
    BusinessPartner,
    BusinessStateType,
    CanonicalRelation,
    RelationStage,
    RelationType,
    StagedRelation,
    ValidityState,
)
from partner_relations.domain.queries import InputRelationFilter, Page, PageRequest
from partner_relations.domain.staged_relations import OutputPutEntry, RelationPutEntry
from partner_relations.ui import cli
from tests.helpers.relations import make_legal_entity, make_state


@dataclass
class Recorder:
    calls: list[tuple[tuple[object, ...], dict[str, object]]]

    def __call__(self, *args: object, **kwargs: object) -> None:
        self.calls.append((args, kwargs))


@pytest.fixture
def recorder() -> Recorder:
    return Recorder(calls=[])


def test_upsert_input_without_window(monkeypatch: pytest.MonkeyPatch, recorder: Recorder) -> None:
    monkeypatch.setattr(cli, "upsert_input_relations", recorder)

    main_module.main(
        [
            "upsert-input",
            "--tenant",
            "t1",
            "--external-id",
            "r1",
            "--type",
            "is_owned_by",
            "--source",
            "p1",
            "--target",
            "p2",
        ]
    )

    ((args, _),) = recorder.calls
    assert args == ("t1", [RelationPutEntry("r1", RelationType.IS_OWNED_BY, "p1", "p2", ())])


def test_promote_with_window(monkeypatch: pytest.MonkeyPatch, recorder: Recorder) -> None:
    monkeypatch.setattr(cli, "promote_relations", recorder)

    cli.main(
        [
            "promote",
            "--tenant",
            "t1",
            "--external-id",
            "r1",
            "--type",
            "is_managed_by",
            "--source-bpn",
            "BPNL1",
            "--target-bpn",
            "BPNL2",
            "--valid-from",
            "2024-01-01T03:00:00+03:00",
            "--valid-to",
            "2024-02-01T00:00:00Z",
            "--status",
            "inactive",
        ]
    )

    ((args, _),) = recorder.calls
    expected_state = ValidityState(
        valid_from=datetime(2024, 1, 1, tzinfo=UTC),
        valid_to=datetime(2024, 2, 1, tzinfo=UTC),
        status=BusinessStateType.INACTIVE,
    )
    assert args == (
        "t1",
        [OutputPutEntry("r1", RelationType.IS_MANAGED_BY, "BPNL1", "BPNL2", (expected_state,))],
    )


def test_naive_timestamps_are_utc(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_register(bpn: str, *, created_at: datetime | None = None) -> object:
        captured["bpn"] = bpn
        captured["created_at"] = created_at
        return make_legal_entity(bpn)

    monkeypatch.setattr(cli, "register_legal_entity", fake_register)

    cli.main(["add-legal-entity", "--bpn", "BPNL1", "--created-at", "2024-03-01T12:00:00"])

    assert captured == {"bpn": "BPNL1", "created_at": datetime(2024, 3, 1, 12, tzinfo=UTC)}


def test_invalid_timestamp_exits_with_usage_error(
    monkeypatch: pytest.MonkeyPatch, recorder: Recorder
) -> None:
    monkeypatch.setattr(cli, "upsert_canonical_relation", recorder)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "upsert-relation",
                "--type",
                "is_owned_by",
                "--source-bpn",
                "A",
                "--target-bpn",
                "B",
                "--valid-from",
                "not-a-date",
                "--valid-to",
                "2024-02-01",
            ]
        )

    assert excinfo.value.code == 2
    assert recorder.calls == []


def test_single_window_bound_is_rejected(
    monkeypatch: pytest.MonkeyPatch, recorder: Recorder
) -> None:
    monkeypatch.setattr(cli, "upsert_canonical_relation", recorder)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "upsert-relation",
                "--type",
                "is_owned_by",
                "--source-bpn",
                "A",
                "--target-bpn",
                "B",
                "--valid-from",
                "2024-01-01",
            ]
        )

    assert excinfo.value.code == 2
    assert recorder.calls == []


def test_status_without_window_is_rejected(
    monkeypatch: pytest.MonkeyPatch, recorder: Recorder
) -> None:
    monkeypatch.setattr(cli, "upsert_input_relations", recorder)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "upsert-input",
                "--tenant",
                "t1",
                "--external-id",
                "r1",
                "--type",
                "is_owned_by",
                "--source",
                "p1",
                "--target",
                "p2",
                "--status",
                "inactive",
            ]
        )

    assert excinfo.value.code == 2
    assert recorder.calls == []


def test_window_without_status_defaults_to_active(
    monkeypatch: pytest.MonkeyPatch, recorder: Recorder
) -> None:
    monkeypatch.setattr(cli, "promote_relations", recorder)

    cli.main(
        [
            "promote",
            "--tenant",
            "t1",
            "--external-id",
            "r1",
            "--type",
            "is_owned_by",
            "--source-bpn",
            "A",
            "--target-bpn",
            "B",
            "--valid-from",
            "2024-01-01",
            "--valid-to",
            "2024-01-10",
        ]
    )

    ((args, _),) = recorder.calls
    assert args == (
        "t1",
        [OutputPutEntry("r1", RelationType.IS_OWNED_BY, "A", "B", (make_state(1, 10),))],
    )


def test_missing_required_argument_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["delete-input", "--tenant", "t1"])

    assert excinfo.value.code == 2


def test_domain_failure_exits_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_upsert(*_: object, **__: object) -> None:
        raise RelationSourceNotFoundError("p1", "t1")

    monkeypatch.setattr(cli, "upsert_input_relations", fake_upsert)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "upsert-input",
                "--tenant",
                "t1",
                "--external-id",
                "r1",
                "--type",
                "is_owned_by",
                "--source",
                "p1",
                "--target",
                "p2",
            ]
        )

    assert excinfo.value.code == 1


def test_list_input_prints_page(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}
    relation = StagedRelation(tenant_id="t1", external_id="r1")
    stage = RelationStage(
        relation=relation,
        relation_type=RelationType.IS_OWNED_BY,
        source=BusinessPartner(tenant_id="t1", external_id="p1"),
        target=BusinessPartner(tenant_id="t1", external_id="p2"),
        states=(make_state(1, 10),),
    )

    def fake_list(tenant_id: str, **kwargs: object) -> Page[RelationStage]:
        captured["tenant_id"] = tenant_id
        captured.update(kwargs)
        return Page(content=(stage,), page=0, size=5, total_elements=1)

    monkeypatch.setattr(cli, "list_input_relations", fake_list)

    cli.main(
        [
            "list-input",
            "--tenant",
            "t1",
            "--source",
            "p1",
            "--source",
            "p3",
            "--type",
            "is_owned_by",
            "--updated-after",
            "2024-01-01T00:00:00Z",
            "--size",
            "5",
        ]
    )

    filters = captured["filters"]
    assert isinstance(filters, InputRelationFilter)
    assert filters.source_external_ids == frozenset({"p1", "p3"})
    assert filters.relation_type is RelationType.IS_OWNED_BY
    assert filters.updated_after == datetime(2024, 1, 1, tzinfo=UTC)
    assert captured["page"] == PageRequest(page=0, size=5)
    out = capsys.readouterr().out
    assert "r1\tis_owned_by\tp1 -> p2" in out
    assert "page 1/1, 1 total" in out


def test_upsert_relation_prints_result(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    relation = CanonicalRelation(
        relation_type=RelationType.IS_ALTERNATIVE_HEADQUARTER_FOR,
        source=make_legal_entity("BPNL-B"),
        target=make_legal_entity("BPNL-A"),
        states=(make_state(1, 10),),
    )

    def fake_upsert(*_: object, **__: object) -> UpsertResult[CanonicalRelation]:
        return UpsertResult(value=relation, upsert_type=UpsertType.CREATED)

    monkeypatch.setattr(cli, "upsert_canonical_relation", fake_upsert)

    cli.main(
        [
            "upsert-relation",
            "--type",
            "is_alternative_headquarter_for",
            "--source-bpn",
            "BPNL-A",
            "--target-bpn",
            "BPNL-B",
        ]
    )

    assert capsys.readouterr().out.startswith("BPNL-B -> BPNL-A: ")
