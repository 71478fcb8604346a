"""Canonical relation graph edges."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .base import Entity

if TYPE_CHECKING:
    from .enums import RelationType
    from .partners import LegalEntity
    from .validity import ValidityState


@dataclass(eq=False, kw_only=True)
class CanonicalRelation(Entity):
    """Directed edge identified by ``(source, target, relation_type)``.

    Unlike staged relations, canonical edges may carry any number of states.
    """

    relation_type: RelationType
    source: LegalEntity
    target: LegalEntity
    states: tuple[ValidityState, ...]

    def opposite_of(self, entity: LegalEntity) -> LegalEntity:
        return self.target if self.source.id == entity.id else self.source
