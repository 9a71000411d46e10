"""Load a tenant snapshot and run the resolver against it."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.types import EffectivePermission
from rbac_api.db.guards import storage_guard
from rbac_api.features.roles.service import RolesService
from rbac_api.models import Permission, Role, RoleInheritance, RolePermission, UserRole

from . import resolver
from .resolver import CatalogEntry, GrantEntry, RoleNode, Snapshot

logger = logging.getLogger(__name__)


class EffectivePermissionsService:
    def __init__(self, *, session: AsyncSession, tenant_id: UUID) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self._roles = RolesService(session=session, tenant_id=tenant_id)

    async def load_snapshot(self) -> Snapshot:
        roles = (
            await self._session.execute(select(Role).where(Role.tenant_id == self.tenant_id))
        ).scalars().all()
        permissions = (await self._session.execute(select(Permission))).scalars().all()
        grant_rows = (
            await self._session.execute(
                select(RolePermission)
                .join(Role, Role.id == RolePermission.role_id)
                .join(Permission, Permission.id == RolePermission.permission_id)
                .where(Role.tenant_id == self.tenant_id)
                .order_by(Permission.key)
            )
        ).scalars().all()
        edges = (
            await self._session.execute(
                select(RoleInheritance.parent_role_id, RoleInheritance.child_role_id).where(
                    RoleInheritance.tenant_id == self.tenant_id
                )
            )
        ).all()

        grants: defaultdict[UUID, list[GrantEntry]] = defaultdict(list)
        for row in grant_rows:
            grants[row.role_id].append(
                GrantEntry(permission_id=row.permission_id, condition=row.condition)
            )

        return Snapshot(
            roles={role.id: RoleNode(id=role.id, name=role.name, kind=role.kind) for role in roles},
            catalog={
                permission.id: CatalogEntry(
                    id=permission.id, key=permission.key, name=permission.name
                )
                for permission in permissions
            },
            grants=dict(grants),
            edges=[(parent, child) for parent, child in edges],
        )

    async def _user_role_ids(self, user_id: UUID) -> list[UUID]:
        stmt = select(UserRole.role_id).where(
            UserRole.tenant_id == self.tenant_id,
            UserRole.user_id == user_id,
        )
        return list((await self._session.execute(stmt)).scalars().all())

    @storage_guard("rbac.effective.role")
    async def resolve_for_role(self, *, role_id: UUID) -> list[EffectivePermission]:
        await self._roles.require_role(role_id)
        return resolver.resolve_for_role(await self.load_snapshot(), role_id)

    @storage_guard("rbac.effective.user")
    async def resolve_for_user(self, *, user_id: UUID) -> list[EffectivePermission]:
        role_ids = await self._user_role_ids(user_id)
        if not role_ids:
            return []
        return resolver.resolve_for_user(await self.load_snapshot(), role_ids)

    @storage_guard("rbac.effective.check")
    async def check(
        self,
        *,
        user_id: UUID,
        permission_key: str,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        role_ids = await self._user_role_ids(user_id)
        allowed = bool(role_ids) and resolver.check(
            await self.load_snapshot(), role_ids, permission_key, context
        )
        logger.debug(
            "rbac.check",
            extra=log_context(
                tenant_id=self.tenant_id,
                user_id=user_id,
                permission_key=permission_key,
                allowed=allowed,
            ),
        )
        return allowed


__all__ = ["EffectivePermissionsService"]
