"""Append-only changelog records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .base import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import ChangelogSubjectKind, ChangelogType, StageType


@dataclass(eq=False, kw_only=True)
class ChangelogEntry(Entity):
    subject_id: str
    change_type: ChangelogType
    subject_kind: ChangelogSubjectKind
    tenant_id: str | None = None
    stage: StageType | None = None
    created_at: datetime = field(default_factory=utcnow)
