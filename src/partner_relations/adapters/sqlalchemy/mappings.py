"""SQLAlchemy mapping metadata for the relation domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from partner_relations.domain.model import (
    BusinessPartner,
    BusinessStateType,
    CanonicalRelation,
    ChangelogEntry,
    ChangelogSubjectKind,
    ChangelogType,
    LegalEntity,
    RelationOutput,
    RelationSharingState,
    RelationSharingStateType,
    RelationStage,
    RelationType,
    StagedRelation,
    StageType,
    ValidityState,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class ValidityStatesType(TypeDecorator[tuple[ValidityState, ...]]):
    """Stores a state list as one JSON document; the list is replaced, never patched."""

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: tuple[ValidityState, ...] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = [
            {
                "valid_from": _as_utc(state.valid_from).isoformat(),
                "valid_to": _as_utc(state.valid_to).isoformat(),
                "status": str(state.status),
            }
            for state in value
        ]
        return json.dumps(payload)

    def process_result_value(
        self, value: str | None, dialect: Dialect
    ) -> tuple[ValidityState, ...]:
        _ = dialect
        if value is None:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        items = cast(list[dict[str, Any]], loaded)
        return tuple(
            ValidityState(
                valid_from=_as_utc(datetime.fromisoformat(item["valid_from"])),
                valid_to=_as_utc(datetime.fromisoformat(item["valid_to"])),
                status=BusinessStateType(item["status"]),
            )
            for item in items
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Staged (tenant-scoped) tables -------------------------------------------------

business_partner_table = Table(
    "business_partner",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False),
    Column("external_id", String, nullable=False),
    Column("bpn", String, nullable=True),
    Index("ix_business_partner_tenant_external_id", "tenant_id", "external_id"),
)

staged_relation_table = Table(
    "staged_relation",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False),
    Column("external_id", String, nullable=False),
    UniqueConstraint("tenant_id", "external_id", name="uq_staged_relation_identity"),
)

relation_stage_table = Table(
    "relation_stage",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "relation_id",
        UUIDColumnType,
        ForeignKey("staged_relation.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("relation_type", Enum(RelationType, native_enum=False), nullable=False),
    Column("source_id", UUIDColumnType, ForeignKey("business_partner.id"), nullable=False),
    Column("target_id", UUIDColumnType, ForeignKey("business_partner.id"), nullable=False),
    Column("states", ValidityStatesType(), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

relation_output_table = Table(
    "relation_output",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "relation_id",
        UUIDColumnType,
        ForeignKey("staged_relation.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("relation_type", Enum(RelationType, native_enum=False), nullable=False),
    Column("source_bpn", String, nullable=False),
    Column("target_bpn", String, nullable=False),
    Column("states", ValidityStatesType(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

relation_sharing_state_table = Table(
    "relation_sharing_state",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "relation_id",
        UUIDColumnType,
        ForeignKey("staged_relation.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("state_type", Enum(RelationSharingStateType, native_enum=False), nullable=False),
    Column("relation_type", Enum(RelationType, native_enum=False), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("error_message", String, nullable=True),
)

# Canonical graph tables ----------------------------------------------------------

legal_entity_table = Table(
    "legal_entity",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("bpn", String, nullable=False, unique=True),
    Column("created_at", UTCDateTime(), nullable=False),
)

canonical_relation_table = Table(
    "canonical_relation",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("relation_type", Enum(RelationType, native_enum=False), nullable=False),
    Column(
        "source_id",
        UUIDColumnType,
        ForeignKey("legal_entity.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "target_id",
        UUIDColumnType,
        ForeignKey("legal_entity.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("states", ValidityStatesType(), nullable=False),
    UniqueConstraint(
        "source_id", "target_id", "relation_type", name="uq_canonical_relation_identity"
    ),
    Index("ix_canonical_relation_target", "target_id", "relation_type"),
)

changelog_entry_table = Table(
    "changelog_entry",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("subject_id", String, nullable=False),
    Column("tenant_id", String, nullable=True),
    Column("change_type", Enum(ChangelogType, native_enum=False), nullable=False),
    Column("stage", Enum(StageType, native_enum=False), nullable=True),
    Column("subject_kind", Enum(ChangelogSubjectKind, native_enum=False), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_changelog_entry_subject", "subject_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(BusinessPartner, business_partner_table)

    mapper_registry.map_imperatively(
        StagedRelation,
        staged_relation_table,
        properties={
            "input_stage": relationship(
                RelationStage,
                back_populates="relation",
                uselist=False,
                cascade="all, delete-orphan",
                lazy="joined",
            ),
            "output": relationship(
                RelationOutput,
                uselist=False,
                cascade="all, delete-orphan",
                lazy="joined",
            ),
            "sharing_state": relationship(
                RelationSharingState,
                uselist=False,
                cascade="all, delete-orphan",
                lazy="joined",
            ),
        },
    )

    mapper_registry.map_imperatively(
        RelationStage,
        relation_stage_table,
        properties={
            "relation": relationship(
                StagedRelation,
                back_populates="input_stage",
                lazy="joined",
            ),
            "source": relationship(
                BusinessPartner,
                foreign_keys=[relation_stage_table.c.source_id],
                lazy="joined",
            ),
            "target": relationship(
                BusinessPartner,
                foreign_keys=[relation_stage_table.c.target_id],
                lazy="joined",
            ),
        },
    )

    mapper_registry.map_imperatively(RelationOutput, relation_output_table)
    mapper_registry.map_imperatively(RelationSharingState, relation_sharing_state_table)

    mapper_registry.map_imperatively(LegalEntity, legal_entity_table)

    mapper_registry.map_imperatively(
        CanonicalRelation,
        canonical_relation_table,
        properties={
            "source": relationship(
                LegalEntity,
                foreign_keys=[canonical_relation_table.c.source_id],
                lazy="joined",
            ),
            "target": relationship(
                LegalEntity,
                foreign_keys=[canonical_relation_table.c.target_id],
                lazy="joined",
            ),
        },
    )

    mapper_registry.map_imperatively(ChangelogEntry, changelog_entry_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
