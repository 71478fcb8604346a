"""initial relation schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

RELATION_TYPES = ("is_alternative_headquarter_for", "is_managed_by", "is_owned_by")


def _relation_type() -> sa.Enum:
    return sa.Enum(*RELATION_TYPES, name="relationtype", native_enum=False)


def upgrade() -> None:
    op.create_table(
        "business_partner",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("bpn", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_business_partner"),
    )
    op.create_index(
        "ix_business_partner_tenant_external_id",
        "business_partner",
        ["tenant_id", "external_id"],
    )

    op.create_table(
        "staged_relation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_staged_relation"),
        sa.UniqueConstraint("tenant_id", "external_id", name="uq_staged_relation_identity"),
    )

    op.create_table(
        "relation_stage",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("relation_id", sa.Uuid(), nullable=False),
        sa.Column("relation_type", _relation_type(), nullable=False),
        sa.Column("source_id", sa.Uuid(), nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=False),
        sa.Column("states", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["relation_id"],
            ["staged_relation.id"],
            name="fk_relation_stage_relation_id_staged_relation",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["source_id"],
            ["business_partner.id"],
            name="fk_relation_stage_source_id_business_partner",
        ),
        sa.ForeignKeyConstraint(
            ["target_id"],
            ["business_partner.id"],
            name="fk_relation_stage_target_id_business_partner",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_relation_stage"),
        sa.UniqueConstraint("relation_id", name="uq_relation_stage_relation_id"),
    )

    op.create_table(
        "relation_output",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("relation_id", sa.Uuid(), nullable=False),
        sa.Column("relation_type", _relation_type(), nullable=False),
        sa.Column("source_bpn", sa.String(), nullable=False),
        sa.Column("target_bpn", sa.String(), nullable=False),
        sa.Column("states", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["relation_id"],
            ["staged_relation.id"],
            name="fk_relation_output_relation_id_staged_relation",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_relation_output"),
        sa.UniqueConstraint("relation_id", name="uq_relation_output_relation_id"),
    )

    op.create_table(
        "relation_sharing_state",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("relation_id", sa.Uuid(), nullable=False),
        sa.Column(
            "state_type",
            sa.Enum(
                "initial",
                "ready",
                "success",
                "error",
                name="relationsharingstatetype",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("relation_type", _relation_type(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(
            ["relation_id"],
            ["staged_relation.id"],
            name="fk_relation_sharing_state_relation_id_staged_relation",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_relation_sharing_state"),
        sa.UniqueConstraint("relation_id", name="uq_relation_sharing_state_relation_id"),
    )

    op.create_table(
        "legal_entity",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("bpn", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_legal_entity"),
        sa.UniqueConstraint("bpn", name="uq_legal_entity_bpn"),
    )

    op.create_table(
        "canonical_relation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("relation_type", _relation_type(), nullable=False),
        sa.Column("source_id", sa.Uuid(), nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=False),
        sa.Column("states", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ["source_id"],
            ["legal_entity.id"],
            name="fk_canonical_relation_source_id_legal_entity",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["target_id"],
            ["legal_entity.id"],
            name="fk_canonical_relation_target_id_legal_entity",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_canonical_relation"),
        sa.UniqueConstraint(
            "source_id",
            "target_id",
            "relation_type",
            name="uq_canonical_relation_identity",
        ),
    )
    op.create_index(
        "ix_canonical_relation_target",
        "canonical_relation",
        ["target_id", "relation_type"],
    )

    op.create_table(
        "changelog_entry",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=True),
        sa.Column(
            "change_type",
            sa.Enum("create", "update", name="changelogtype", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "stage",
            sa.Enum("input", "output", name="stagetype", native_enum=False),
            nullable=True,
        ),
        sa.Column(
            "subject_kind",
            sa.Enum("relation", "legal_entity", name="changelogsubjectkind", native_enum=False),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_changelog_entry"),
    )
    op.create_index("ix_changelog_entry_subject", "changelog_entry", ["subject_id"])


def downgrade() -> None:
    op.drop_index("ix_changelog_entry_subject", table_name="changelog_entry")
    op.drop_table("changelog_entry")
    op.drop_index("ix_canonical_relation_target", table_name="canonical_relation")
    op.drop_table("canonical_relation")
    op.drop_table("legal_entity")
    op.drop_table("relation_sharing_state")
    op.drop_table("relation_output")
    op.drop_table("relation_stage")
    op.drop_table("staged_relation")
    op.drop_index("ix_business_partner_tenant_external_id", table_name="business_partner")
    op.drop_table("business_partner")
