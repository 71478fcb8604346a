"""Entities that relations point at."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .base import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class BusinessPartner(Entity):
    """Tenant-scoped peer reference, addressed by the tenant's own external id.

    ``bpn`` is the stable canonical identifier once the partner has been
    matched against the golden record; it stays ``None`` until then.
    """

    tenant_id: str
    external_id: str
    bpn: str | None = None


@dataclass(eq=False, kw_only=True)
class LegalEntity(Entity):
    """Canonical node of the cross-tenant relation graph."""

    bpn: str
    created_at: datetime = field(default_factory=utcnow)
