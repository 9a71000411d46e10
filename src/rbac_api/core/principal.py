"""Identity of the caller as asserted by the upstream gateway."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

USER_ID_HEADER = "X-User-Id"
TENANT_ID_HEADER = "X-Tenant-Id"


@dataclass(slots=True, frozen=True)
class AuthenticatedPrincipal:
    """Authenticated user acting inside one tenant."""

    user_id: UUID
    tenant_id: UUID


__all__ = ["AuthenticatedPrincipal", "TENANT_ID_HEADER", "USER_ID_HEADER"]
