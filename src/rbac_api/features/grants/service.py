"""Direct permission grants on a role, with optional single-clause conditions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.conditions import build_condition
from rbac_api.core.errors import ConflictError, ImmutableRoleError, NotFoundError
from rbac_api.core.types import GrantCondition
from rbac_api.db.guards import storage_guard
from rbac_api.features.permissions.service import PermissionsService
from rbac_api.features.roles.service import RolesService
from rbac_api.models import Permission, Role, RolePermission

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GrantView:
    grant: RolePermission
    permission: Permission


class GrantsService:
    def __init__(self, *, session: AsyncSession, tenant_id: UUID) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self._roles = RolesService(session=session, tenant_id=tenant_id)
        self._permissions = PermissionsService(session=session)

    async def _grantable_role(self, role_id: UUID) -> Role:
        role = await self._roles.require_role(role_id)
        if not role.kind.accepts_grants:
            raise ImmutableRoleError(
                f"Role '{role.name}' holds every permission implicitly and takes no grants"
            )
        return role

    async def _get_grant(self, role_id: UUID, permission_id: UUID) -> RolePermission | None:
        stmt = select(RolePermission).where(
            RolePermission.role_id == role_id,
            RolePermission.permission_id == permission_id,
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def _require_grant(self, role_id: UUID, permission_id: UUID) -> RolePermission:
        await self._grantable_role(role_id)
        grant = await self._get_grant(role_id, permission_id)
        if grant is None:
            raise NotFoundError("Permission is not granted to this role")
        return grant

    async def view(self, grant: RolePermission) -> GrantView:
        permission = await self._permissions.require_permission(grant.permission_id)
        return GrantView(grant=grant, permission=permission)

    @storage_guard("rbac.grant.list")
    async def list_for_role(self, *, role_id: UUID) -> list[GrantView]:
        await self._roles.require_role(role_id)
        stmt = (
            select(RolePermission, Permission)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.key)
        )
        result = await self._session.execute(stmt)
        return [GrantView(grant=grant, permission=permission) for grant, permission in result.all()]

    @storage_guard("rbac.grant.assign")
    async def assign(
        self,
        *,
        role_id: UUID,
        permission_id: UUID,
        condition: GrantCondition | None = None,
    ) -> RolePermission:
        """Grant a permission; an existing grant is returned unchanged."""

        role = await self._grantable_role(role_id)
        await self._permissions.require_permission(permission_id)

        existing = await self._get_grant(role.id, permission_id)
        if existing is not None:
            return existing

        grant = RolePermission(role_id=role.id, permission_id=permission_id)
        grant.apply_condition(condition)
        try:
            async with self._session.begin_nested():
                self._session.add(grant)
                await self._session.flush([grant])
        except IntegrityError as exc:
            logger.debug(
                "rbac.grant.assign.conflict",
                extra=log_context(
                    tenant_id=self.tenant_id, role_id=role.id, permission_id=permission_id
                ),
            )
            concurrent = await self._get_grant(role.id, permission_id)
            if concurrent is not None:
                return concurrent
            raise ConflictError("Grant conflicts with a concurrent change") from exc

        logger.info(
            "rbac.grant.assign",
            extra=log_context(
                tenant_id=self.tenant_id,
                role_id=role.id,
                permission_id=permission_id,
                conditional=condition is not None,
            ),
        )
        return grant

    @storage_guard("rbac.grant.remove")
    async def remove(self, *, role_id: UUID, permission_id: UUID) -> bool:
        await self._roles.require_role(role_id)
        stmt = (
            delete(RolePermission)
            .where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        removed = bool(result.rowcount)
        if removed:
            logger.info(
                "rbac.grant.remove",
                extra=log_context(
                    tenant_id=self.tenant_id, role_id=role_id, permission_id=permission_id
                ),
            )
        return removed

    @storage_guard("rbac.grant.set_condition")
    async def set_condition(
        self,
        *,
        role_id: UUID,
        permission_id: UUID,
        field: str,
        operator: str,
        value: Any,
    ) -> RolePermission:
        condition = build_condition(field, operator, value)
        grant = await self._require_grant(role_id, permission_id)
        grant.apply_condition(condition)
        await self._session.flush([grant])
        logger.info(
            "rbac.grant.condition.set",
            extra=log_context(
                tenant_id=self.tenant_id,
                role_id=role_id,
                permission_id=permission_id,
                field=condition.field,
                operator=condition.operator.value,
            ),
        )
        return grant

    @storage_guard("rbac.grant.remove_condition")
    async def remove_condition(self, *, role_id: UUID, permission_id: UUID) -> RolePermission:
        grant = await self._require_grant(role_id, permission_id)
        if grant.condition is None:
            return grant
        grant.apply_condition(None)
        await self._session.flush([grant])
        logger.info(
            "rbac.grant.condition.remove",
            extra=log_context(
                tenant_id=self.tenant_id, role_id=role_id, permission_id=permission_id
            ),
        )
        return grant


__all__ = ["GrantView", "GrantsService"]
