"""Public domain model surface."""

from __future__ import annotations

from .base import Clock, Entity, new_id, utcnow
from .canonical import CanonicalRelation
from .changelog import ChangelogEntry
from .enums import (
    BusinessStateType,
    ChangelogSubjectKind,
    ChangelogType,
    RelationSharingStateType,
    RelationType,
    StageType,
)
from .partners import BusinessPartner, LegalEntity
from .staged import RelationOutput, RelationSharingState, RelationStage, StagedRelation
from .validity import ALWAYS_ACTIVE_STATE, VALID_FROM_DEFAULT, VALID_TO_DEFAULT, ValidityState

__all__ = [
    "ALWAYS_ACTIVE_STATE",
    "VALID_FROM_DEFAULT",
    "VALID_TO_DEFAULT",
    "BusinessPartner",
    "BusinessStateType",
    "CanonicalRelation",
    "ChangelogEntry",
    "ChangelogSubjectKind",
    "ChangelogType",
    "Clock",
    "Entity",
    "LegalEntity",
    "RelationOutput",
    "RelationSharingState",
    "RelationSharingStateType",
    "RelationStage",
    "RelationType",
    "StageType",
    "StagedRelation",
    "ValidityState",
    "new_id",
    "utcnow",
]
