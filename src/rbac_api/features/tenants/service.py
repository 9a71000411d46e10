"""Seed a tenant with its owner role and the built-in system roles."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.registry import OWNER_ROLE_NAME, SYSTEM_ROLES
from rbac_api.core.types import RoleType, SystemRoleDef
from rbac_api.db.guards import storage_guard
from rbac_api.features.permissions.service import PermissionsService
from rbac_api.features.roles.service import RolesService
from rbac_api.models import Permission, Role, RolePermission, UserRole

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BootstrapResult:
    tenant_id: UUID
    owner_role_id: UUID
    permissions_seeded: int = 0
    roles_created: list[str] = field(default_factory=list)
    owner_assigned: bool = False


class TenantBootstrapService:
    """Idempotent tenant setup; running it twice changes nothing the second time."""

    def __init__(self, *, session: AsyncSession, tenant_id: UUID) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self._roles = RolesService(session=session, tenant_id=tenant_id)
        self._permissions = PermissionsService(session=session)

    @storage_guard("rbac.tenant.bootstrap")
    async def bootstrap(self, *, owner_user_id: UUID) -> BootstrapResult:
        seeded = await self._permissions.seed_defaults()
        rows = await self._session.execute(select(Permission.id, Permission.key))
        keys = {key: pid for pid, key in rows.all()}

        created: list[str] = []
        owner = await self._roles.get_owner_role()
        if owner is None:
            owner = await self._insert_role(
                name=OWNER_ROLE_NAME,
                role_type=RoleType.OWNER,
                description="Tenant owner; holds every permission.",
            )
            created.append(owner.name)

        for definition in SYSTEM_ROLES:
            if await self._roles.get_role_by_name(definition.name) is not None:
                continue
            role = await self._insert_role(
                name=definition.name,
                role_type=definition.role_type,
                description=definition.description,
            )
            self._grant_defaults(role, definition, keys)
            created.append(role.name)

        assigned = await self._assign_owner(owner, owner_user_id)
        await self._session.flush()

        result = BootstrapResult(
            tenant_id=self.tenant_id,
            owner_role_id=owner.id,
            permissions_seeded=seeded,
            roles_created=created,
            owner_assigned=assigned,
        )
        logger.info(
            "rbac.tenant.bootstrap",
            extra=log_context(
                tenant_id=self.tenant_id,
                user_id=owner_user_id,
                roles_created=len(created),
                permissions_seeded=seeded,
                owner_assigned=assigned,
            ),
        )
        return result

    async def _insert_role(self, *, name: str, role_type: RoleType, description: str) -> Role:
        role = Role(
            tenant_id=self.tenant_id,
            name=name,
            description=description,
            role_type=role_type,
            is_system_role=True,
        )
        self._session.add(role)
        await self._session.flush([role])
        return role

    def _grant_defaults(self, role: Role, definition: SystemRoleDef, keys: dict[str, UUID]) -> None:
        for key in definition.permissions:
            permission_id = keys.get(key)
            if permission_id is None:
                logger.warning(
                    "rbac.tenant.bootstrap.unknown_permission",
                    extra=log_context(tenant_id=self.tenant_id, role_id=role.id, key=key),
                )
                continue
            self._session.add(RolePermission(role_id=role.id, permission_id=permission_id))

    async def _assign_owner(self, owner: Role, user_id: UUID) -> bool:
        stmt = select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role_id == owner.id)
        if (await self._session.execute(stmt)).first() is not None:
            return False
        self._session.add(UserRole(user_id=user_id, role_id=owner.id, tenant_id=self.tenant_id))
        return True


__all__ = ["BootstrapResult", "TenantBootstrapService"]
