"""Filter and pagination value objects for relation queries.

Empty collections and ``None`` mean "no predicate"; all given predicates are
AND-combined by the repositories.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from datetime import datetime

    from partner_relations.domain.model import RelationType

DEFAULT_PAGE_SIZE: Final[int] = 100
MAX_PAGE_SIZE: Final[int] = 1000


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError("Page index must be non-negative")
        if not 1 <= self.size <= MAX_PAGE_SIZE:
            raise ValueError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(frozen=True, slots=True)
class Page[T]:
    total_elements: int
    page: int
    content: tuple[T, ...]
    size: int = DEFAULT_PAGE_SIZE

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size) if self.total_elements else 0

    @classmethod
    def of(cls, content: tuple[T, ...], *, total: int, request: PageRequest) -> Page[T]:
        return cls(total_elements=total, page=request.page, content=content, size=request.size)


@dataclass(frozen=True, slots=True)
class InputRelationFilter:
    external_ids: frozenset[str] = field(default_factory=frozenset[str])
    relation_type: RelationType | None = None
    source_external_ids: frozenset[str] = field(default_factory=frozenset[str])
    target_external_ids: frozenset[str] = field(default_factory=frozenset[str])
    updated_after: datetime | None = None


@dataclass(frozen=True, slots=True)
class OutputRelationFilter:
    external_ids: frozenset[str] = field(default_factory=frozenset[str])
    relation_type: RelationType | None = None
    source_bpns: frozenset[str] = field(default_factory=frozenset[str])
    target_bpns: frozenset[str] = field(default_factory=frozenset[str])
    updated_after: datetime | None = None
