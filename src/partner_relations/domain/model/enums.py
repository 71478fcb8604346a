"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class RelationType(StrEnum):
    IS_ALTERNATIVE_HEADQUARTER_FOR = "is_alternative_headquarter_for"
    IS_MANAGED_BY = "is_managed_by"
    IS_OWNED_BY = "is_owned_by"


class BusinessStateType(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class StageType(StrEnum):
    INPUT = "input"
    OUTPUT = "output"


class ChangelogType(StrEnum):
    CREATE = "create"
    UPDATE = "update"


class ChangelogSubjectKind(StrEnum):
    """What a changelog entry's ``subject_id`` refers to."""

    RELATION = "relation"
    LEGAL_ENTITY = "legal_entity"


class RelationSharingStateType(StrEnum):
    INITIAL = "initial"
    READY = "ready"
    SUCCESS = "success"
    ERROR = "error"
