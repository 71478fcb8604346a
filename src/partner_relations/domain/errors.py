"""Caller-visible failures of relation operations.

Every error aborts the enclosing unit of work. Only ``IdentityConflictError``
is worth retrying: it signals that a concurrent writer created the same
identity tuple first.
"""

from __future__ import annotations


class PartnerRelationError(Exception):
    """Base class for relation consistency failures."""


class RelationAlreadyExistsError(PartnerRelationError):
    def __init__(self, external_id: str) -> None:
        super().__init__(f"Relation with external id '{external_id}' already exists")
        self.external_id = external_id


class RelationNotFoundError(PartnerRelationError):
    def __init__(self, external_id: str) -> None:
        super().__init__(f"Relation with external id '{external_id}' not found")
        self.external_id = external_id


class RelationSourceNotFoundError(PartnerRelationError):
    def __init__(self, external_id: str, tenant_id: str) -> None:
        super().__init__(
            f"Source business partner '{external_id}' not found for tenant '{tenant_id}'"
        )
        self.external_id = external_id
        self.tenant_id = tenant_id


class RelationTargetNotFoundError(PartnerRelationError):
    def __init__(self, external_id: str, tenant_id: str) -> None:
        super().__init__(
            f"Target business partner '{external_id}' not found for tenant '{tenant_id}'"
        )
        self.external_id = external_id
        self.tenant_id = tenant_id


class InvalidRelationError(PartnerRelationError):
    """Raised when a relation's content violates a validity rule."""


class SelfRelationError(InvalidRelationError):
    """Raised when source and target denote the same entity."""


class LegalEntityNotFoundError(PartnerRelationError):
    def __init__(self, bpn: str) -> None:
        super().__init__(f"Legal entity '{bpn}' not found")
        self.bpn = bpn


class IdentityConflictError(PartnerRelationError):
    """Raised when a concurrent transaction already created the same identity."""
