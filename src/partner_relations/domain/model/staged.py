"""Tenant-scoped staged relations: input stage, output record and sharing state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .base import Entity, utcnow
from .enums import RelationSharingStateType, RelationType, StageType

if TYPE_CHECKING:
    from datetime import datetime

    from .partners import BusinessPartner
    from .validity import ValidityState


@dataclass(eq=False, kw_only=True)
class StagedRelation(Entity):
    """Container identified by ``(tenant_id, external_id)``.

    Owns exactly one input stage while it exists, at most one output record
    and the sharing state that tracks downstream synchronisation.
    """

    tenant_id: str
    external_id: str

    input_stage: RelationStage | None = field(default=None, repr=False)
    output: RelationOutput | None = field(default=None, repr=False)
    sharing_state: RelationSharingState | None = field(default=None, repr=False)


@dataclass(eq=False, kw_only=True)
class RelationStage(Entity):
    """Raw tenant input, referencing peers by their tenant-scoped identity."""

    relation: StagedRelation = field(repr=False)
    relation_type: RelationType
    source: BusinessPartner
    target: BusinessPartner
    states: tuple[ValidityState, ...]
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def stage(self) -> StageType:
        return StageType.INPUT

    def comparison_key(self) -> tuple[object, ...]:
        return (self.relation_type, self.source.id, self.target.id, self.states)


@dataclass(eq=False, kw_only=True)
class RelationOutput(Entity):
    """Published relation, keyed by resolved business partner numbers."""

    relation_type: RelationType
    source_bpn: str
    target_bpn: str
    states: tuple[ValidityState, ...]
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def stage(self) -> StageType:
        return StageType.OUTPUT


@dataclass(eq=False, kw_only=True)
class RelationSharingState(Entity):
    state_type: RelationSharingStateType
    relation_type: RelationType
    updated_at: datetime = field(default_factory=utcnow)
    error_message: str | None = None
