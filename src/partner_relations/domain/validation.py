"""Validation and normalisation of relation validity states."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from partner_relations.domain.errors import InvalidRelationError
from partner_relations.domain.model import ALWAYS_ACTIVE_STATE, BusinessStateType, ValidityState

if TYPE_CHECKING:
    from collections.abc import Sequence

ALLOWED_STATUSES: Final[frozenset[BusinessStateType]] = frozenset(
    {BusinessStateType.ACTIVE, BusinessStateType.INACTIVE}
)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC timestamp, treating naive values as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def normalise_states(states: Sequence[ValidityState]) -> tuple[ValidityState, ...]:
    """Return ``states`` with both bounds as aware UTC; empty means always active."""

    if not states:
        return (ALWAYS_ACTIVE_STATE,)
    return tuple(
        ValidityState(
            valid_from=ensure_utc(state.valid_from),
            valid_to=ensure_utc(state.valid_to),
            status=state.status,
        )
        for state in states
    )


def validate_states(states: Sequence[ValidityState]) -> tuple[ValidityState, ...]:
    """Validate a proposed state list and return its normalised form.

    An empty list becomes the single always-active state. Otherwise exactly one
    state is allowed, its window must be non-empty and its status must be
    ``ACTIVE`` or ``INACTIVE``.
    """

    if not states:
        return (ALWAYS_ACTIVE_STATE,)

    if len(states) > 1:
        raise InvalidRelationError(f"Only one relation state is allowed, found {len(states)}.")

    state = states[0]
    valid_from = ensure_utc(state.valid_from)
    valid_to = ensure_utc(state.valid_to)
    if valid_from >= valid_to:
        raise InvalidRelationError(
            f"valid_from '{valid_from.isoformat()}' cannot be same as or after "
            f"valid_to '{valid_to.isoformat()}'."
        )

    try:
        status = BusinessStateType(state.status)
    except ValueError as exc:
        raise InvalidRelationError(
            f"Relation state type must be ACTIVE or INACTIVE, found '{state.status}'."
        ) from exc
    if status not in ALLOWED_STATUSES:
        raise InvalidRelationError(
            f"Relation state type must be ACTIVE or INACTIVE, found '{status}'."
        )

    normalised = ValidityState(valid_from=valid_from, valid_to=valid_to, status=status)
    return (normalised,)


def is_always_active(states: Sequence[ValidityState]) -> bool:
    """Return whether ``states`` is exactly the single always-active state."""

    return len(states) == 1 and states[0] == ALWAYS_ACTIVE_STATE
