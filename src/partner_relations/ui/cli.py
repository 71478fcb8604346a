# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from partner_relations.adapters.sqlalchemy.unit_of_work import startup
from partner_relations.app import (
    delete_input_relation,
    list_input_relations,
    promote_relations,
    register_business_partner,
    register_legal_entity,
    upsert_canonical_relation,
    upsert_input_relations,
)
from partner_relations.config import configure_logging
from partner_relations.domain.model import BusinessStateType, RelationType, ValidityState
from partner_relations.domain.queries import DEFAULT_PAGE_SIZE, InputRelationFilter, PageRequest
from partner_relations.domain.staged_relations import OutputPutEntry, RelationPutEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from partner_relations.domain.model import RelationStage

log = logging.getLogger(__name__)


def _add_state_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--valid-from",
        type=str,
        help="ISO-8601 timestamp (UTC) where the relation state starts",
    )
    parser.add_argument(
        "--valid-to",
        type=str,
        help="ISO-8601 timestamp (UTC) where the relation state ends",
    )
    parser.add_argument(
        "--status",
        type=BusinessStateType,
        choices=list(BusinessStateType),
        default=None,
        help="Business status during the window (default: active)",
    )


def _add_relation_type_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--type",
        dest="relation_type",
        type=RelationType,
        choices=list(RelationType),
        required=True,
        help="Relation type",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage business partner relations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create or upgrade the database schema")
    init_db.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to configuration)",
    )

    partner = subparsers.add_parser("add-partner", help="Register a tenant's business partner")
    partner.add_argument("--tenant", required=True, help="Tenant id")
    partner.add_argument("--external-id", required=True, help="Tenant-assigned partner id")
    partner.add_argument("--bpn", help="Business partner number, once known")

    entity = subparsers.add_parser("add-legal-entity", help="Register a canonical legal entity")
    entity.add_argument("--bpn", required=True, help="Business partner number (BPNL)")
    entity.add_argument(
        "--created-at",
        type=str,
        help="ISO-8601 creation timestamp (defaults to now)",
    )

    upsert_input = subparsers.add_parser("upsert-input", help="Create or update an input relation")
    upsert_input.add_argument("--tenant", required=True, help="Tenant id")
    upsert_input.add_argument("--external-id", required=True, help="Tenant-assigned relation id")
    _add_relation_type_argument(upsert_input)
    upsert_input.add_argument("--source", required=True, help="Source partner external id")
    upsert_input.add_argument("--target", required=True, help="Target partner external id")
    _add_state_arguments(upsert_input)

    delete_input = subparsers.add_parser("delete-input", help="Delete an input relation")
    delete_input.add_argument("--tenant", required=True, help="Tenant id")
    delete_input.add_argument("--external-id", required=True, help="Tenant-assigned relation id")

    list_input = subparsers.add_parser("list-input", help="List a tenant's input relations")
    list_input.add_argument("--tenant", required=True, help="Tenant id")
    list_input.add_argument(
        "--external-id",
        dest="external_ids",
        action="append",
        default=[],
        help="Restrict to this relation id (repeatable)",
    )
    list_input.add_argument(
        "--type",
        dest="relation_type",
        type=RelationType,
        choices=list(RelationType),
        help="Restrict to one relation type",
    )
    list_input.add_argument(
        "--source",
        dest="sources",
        action="append",
        default=[],
        help="Restrict to this source partner external id (repeatable)",
    )
    list_input.add_argument(
        "--target",
        dest="targets",
        action="append",
        default=[],
        help="Restrict to this target partner external id (repeatable)",
    )
    list_input.add_argument(
        "--updated-after",
        type=str,
        help="Only relations updated strictly after this ISO-8601 timestamp",
    )
    list_input.add_argument("--page", type=int, default=0, help="Page index (default: 0)")
    list_input.add_argument(
        "--size",
        type=int,
        default=DEFAULT_PAGE_SIZE,
        help="Page size (default: %(default)s)",
    )

    promote = subparsers.add_parser("promote", help="Publish the output of a staged relation")
    promote.add_argument("--tenant", required=True, help="Tenant id")
    promote.add_argument("--external-id", required=True, help="Tenant-assigned relation id")
    _add_relation_type_argument(promote)
    promote.add_argument("--source-bpn", required=True, help="Resolved source BPNL")
    promote.add_argument("--target-bpn", required=True, help="Resolved target BPNL")
    _add_state_arguments(promote)

    relation = subparsers.add_parser("upsert-relation", help="Upsert a canonical relation")
    _add_relation_type_argument(relation)
    relation.add_argument("--source-bpn", required=True, help="Source BPNL")
    relation.add_argument("--target-bpn", required=True, help="Target BPNL")
    _add_state_arguments(relation)

    return parser.parse_args(list(argv))


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _states_from_args(args: argparse.Namespace) -> tuple[ValidityState, ...]:
    if args.valid_from is None and args.valid_to is None:
        if args.status is not None:
            raise ValueError("--status requires --valid-from and --valid-to")
        return ()
    if args.valid_from is None or args.valid_to is None:
        raise ValueError("--valid-from and --valid-to must be given together")
    return (
        ValidityState(
            valid_from=_parse_iso_datetime(args.valid_from),
            valid_to=_parse_iso_datetime(args.valid_to),
            status=args.status or BusinessStateType.ACTIVE,
        ),
    )


def _input_filter_from_args(args: argparse.Namespace) -> InputRelationFilter:
    updated_after = _parse_iso_datetime(args.updated_after) if args.updated_after else None
    return InputRelationFilter(
        external_ids=frozenset(args.external_ids),
        relation_type=args.relation_type,
        source_external_ids=frozenset(args.sources),
        target_external_ids=frozenset(args.targets),
        updated_after=updated_after,
    )


def _format_stage(stage: RelationStage) -> str:
    external_id = stage.relation.external_id
    window = ", ".join(
        f"{state.status} {state.valid_from.isoformat()}..{state.valid_to.isoformat()}"
        for state in stage.states
    )
    return (
        f"{external_id}\t{stage.relation_type}\t"
        f"{stage.source.external_id} -> {stage.target.external_id}\t[{window}]"
    )


def _run_command(args: argparse.Namespace) -> None:  # noqa: C901
    command = args.command
    if command == "init-db":
        startup(database_uri=args.database_uri)
        log.info("Database schema is up to date")
    elif command == "add-partner":
        partner = register_business_partner(args.tenant, args.external_id, bpn=args.bpn)
        log.info("Business partner %s stored as %s", partner.external_id, partner.id)
    elif command == "add-legal-entity":
        entity = register_legal_entity(args.bpn, created_at=args.created_at_value)
        log.info("Legal entity %s stored as %s", entity.bpn, entity.id)
    elif command == "upsert-input":
        entry = RelationPutEntry(
            external_id=args.external_id,
            relation_type=args.relation_type,
            source_external_id=args.source,
            target_external_id=args.target,
            states=args.states,
        )
        upsert_input_relations(args.tenant, [entry])
    elif command == "delete-input":
        delete_input_relation(args.tenant, args.external_id)
    elif command == "list-input":
        page = list_input_relations(
            args.tenant,
            filters=args.filters,
            page=args.page_request,
        )
        for stage in page.content:
            print(_format_stage(stage))
        print(f"page {page.page + 1}/{max(page.total_pages, 1)}, {page.total_elements} total")
    elif command == "promote":
        entry = OutputPutEntry(
            external_id=args.external_id,
            relation_type=args.relation_type,
            source_bpn=args.source_bpn,
            target_bpn=args.target_bpn,
            states=args.states,
        )
        promote_relations(args.tenant, [entry])
    elif command == "upsert-relation":
        result = upsert_canonical_relation(
            args.source_bpn,
            args.target_bpn,
            args.relation_type,
            states=args.states,
        )
        print(f"{result.value.source.bpn} -> {result.value.target.bpn}: {result.upsert_type}")
    else:
        raise ValueError(f"Unsupported command: {command}")


def _resolve_values(args: argparse.Namespace) -> None:
    """Attach parsed timestamps, states, filters and paging to ``args``."""

    args.states = _states_from_args(args) if hasattr(args, "valid_from") else ()
    args.created_at_value = None
    if getattr(args, "created_at", None):
        args.created_at_value = _parse_iso_datetime(args.created_at)
    if args.command == "list-input":
        args.filters = _input_filter_from_args(args)
        args.page_request = PageRequest(page=args.page, size=args.size)


def main(argv: Sequence[str] | None = None) -> None:
    """Command line entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        _resolve_values(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run_command(parsed_args)
    except Exception:
        log.exception("Command %s failed", parsed_args.command)
        sys.exit(1)
