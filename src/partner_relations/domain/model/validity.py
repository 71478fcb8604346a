"""Validity states: when a relation is considered in effect."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final

from .enums import BusinessStateType


@dataclass(frozen=True, slots=True)
class ValidityState:
    """A time window plus the business status that holds during it.

    Instances are immutable; a relation's state list is a tuple that gets
    replaced as a whole, never patched.
    """

    valid_from: datetime
    valid_to: datetime
    status: BusinessStateType

    @property
    def is_active(self) -> bool:
        return self.status == BusinessStateType.ACTIVE

    def contains(self, instant: datetime) -> bool:
        """Closed-interval membership: both bounds count as inside."""
        return self.valid_from <= instant <= self.valid_to


VALID_FROM_DEFAULT: Final[datetime] = datetime(1970, 1, 1, tzinfo=UTC)
VALID_TO_DEFAULT: Final[datetime] = datetime(9999, 12, 31, 23, 59, 59, tzinfo=UTC)

ALWAYS_ACTIVE_STATE: Final[ValidityState] = ValidityState(
    valid_from=VALID_FROM_DEFAULT,
    valid_to=VALID_TO_DEFAULT,
    status=BusinessStateType.ACTIVE,
)
