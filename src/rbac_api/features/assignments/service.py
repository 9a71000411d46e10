"""User-to-role assignments scoped to a tenant."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.errors import ConflictError, ImmutableRoleError, ValidationError
from rbac_api.core.types import RoleKind, RoleType
from rbac_api.db.guards import storage_guard
from rbac_api.features.roles.service import RolesService
from rbac_api.models import Role, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssignmentView:
    assignment: UserRole
    role: Role


@dataclass(slots=True)
class BulkAssignResult:
    added: list[UUID] = field(default_factory=list)
    removed: list[UUID] = field(default_factory=list)


def _ensure_not_self(user_id: UUID, actor_id: UUID | None) -> None:
    if actor_id is not None and actor_id == user_id:
        raise ValidationError("You cannot change your own role assignments")


def _ensure_not_owner(role: Role, verb: str) -> None:
    if role.kind is RoleKind.OWNER:
        raise ImmutableRoleError(f"The owner role cannot be {verb}")


class AssignmentsService:
    def __init__(self, *, session: AsyncSession, tenant_id: UUID) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self._roles = RolesService(session=session, tenant_id=tenant_id)

    # ------------- reads ------------------------------------------------

    async def _views(self, *criteria) -> list[AssignmentView]:
        stmt = (
            select(UserRole, Role)
            .join(Role, Role.id == UserRole.role_id)
            .where(
                UserRole.tenant_id == self.tenant_id,
                Role.tenant_id == self.tenant_id,
                *criteria,
            )
            .order_by(Role.name, Role.id, UserRole.user_id)
        )
        result = await self._session.execute(stmt)
        return [AssignmentView(assignment=a, role=r) for a, r in result.all()]

    @storage_guard("rbac.assignment.list_for_user")
    async def list_for_user(self, *, user_id: UUID) -> list[AssignmentView]:
        return await self._views(UserRole.user_id == user_id)

    @storage_guard("rbac.assignment.list_for_role")
    async def list_for_role(self, *, role_id: UUID) -> list[AssignmentView]:
        await self._roles.require_role(role_id)
        return await self._views(UserRole.role_id == role_id)

    async def roles_for_user(self, user_id: UUID) -> list[Role]:
        return [view.role for view in await self._views(UserRole.user_id == user_id)]

    @storage_guard("rbac.assignment.is_owner")
    async def is_owner(self, user_id: UUID) -> bool:
        views = await self._views(UserRole.user_id == user_id, Role.role_type == RoleType.OWNER)
        return bool(views)

    @storage_guard("rbac.assignment.is_member")
    async def is_member(self, user_id: UUID) -> bool:
        return bool(await self._views(UserRole.user_id == user_id))

    async def _get_assignment(self, user_id: UUID, role_id: UUID) -> UserRole | None:
        stmt = select(UserRole).where(
            UserRole.tenant_id == self.tenant_id,
            UserRole.user_id == user_id,
            UserRole.role_id == role_id,
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    # ------------- writes -----------------------------------------------

    @storage_guard("rbac.assignment.assign")
    async def assign(
        self,
        *,
        user_id: UUID,
        role_id: UUID,
        assigned_by: UUID | None = None,
    ) -> UserRole:
        _ensure_not_self(user_id, assigned_by)
        role = await self._roles.require_role(role_id)
        _ensure_not_owner(role, "assigned")

        existing = await self._get_assignment(user_id, role.id)
        if existing is not None:
            return existing

        assignment = await self._insert(user_id, role, assigned_by)
        logger.info(
            "rbac.assignment.assign",
            extra=log_context(
                tenant_id=self.tenant_id,
                user_id=user_id,
                role_id=role.id,
                assigned_by=str(assigned_by) if assigned_by else None,
            ),
        )
        return assignment

    @storage_guard("rbac.assignment.remove")
    async def remove(
        self,
        *,
        user_id: UUID,
        role_id: UUID,
        removed_by: UUID | None = None,
    ) -> bool:
        """Remove one assignment; a user always keeps at least one role."""

        _ensure_not_self(user_id, removed_by)
        role = await self._roles.require_role(role_id)
        _ensure_not_owner(role, "removed")

        existing = await self._get_assignment(user_id, role.id)
        if existing is None:
            return False

        current = await self.roles_for_user(user_id)
        if len(current) <= 1:
            raise ValidationError("A user must keep at least one role")

        await self._session.delete(existing)
        await self._session.flush()
        logger.info(
            "rbac.assignment.remove",
            extra=log_context(tenant_id=self.tenant_id, user_id=user_id, role_id=role.id),
        )
        return True

    @storage_guard("rbac.assignment.bulk_assign")
    async def bulk_assign(
        self,
        *,
        user_id: UUID,
        role_ids: Sequence[UUID],
        assigned_by: UUID | None = None,
    ) -> BulkAssignResult:
        """Make the user's role set equal to ``role_ids``."""

        _ensure_not_self(user_id, assigned_by)
        if not role_ids:
            raise ValidationError("At least one role is required")

        target: dict[UUID, Role] = {}
        for role_id in role_ids:
            role = await self._roles.require_role(role_id)
            target[role.id] = role
        current = {role.id: role for role in await self.roles_for_user(user_id)}

        to_add = [target[rid] for rid in target if rid not in current]
        to_remove = [current[rid] for rid in current if rid not in target]
        for role in to_add:
            _ensure_not_owner(role, "assigned")
        for role in to_remove:
            _ensure_not_owner(role, "removed")

        result = BulkAssignResult()
        for role in to_add:
            await self._insert(user_id, role, assigned_by)
            result.added.append(role.id)
        if to_remove:
            await self._session.execute(
                delete(UserRole)
                .where(
                    UserRole.tenant_id == self.tenant_id,
                    UserRole.user_id == user_id,
                    UserRole.role_id.in_([role.id for role in to_remove]),
                )
                .execution_options(synchronize_session=False)
            )
            result.removed.extend(role.id for role in to_remove)
        await self._session.flush()

        logger.info(
            "rbac.assignment.bulk_assign",
            extra=log_context(
                tenant_id=self.tenant_id,
                user_id=user_id,
                added=len(result.added),
                removed=len(result.removed),
            ),
        )
        return result

    async def _insert(self, user_id: UUID, role: Role, assigned_by: UUID | None) -> UserRole:
        assignment = UserRole(
            user_id=user_id,
            role_id=role.id,
            tenant_id=self.tenant_id,
            assigned_by=assigned_by,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(assignment)
                await self._session.flush([assignment])
        except IntegrityError as exc:
            logger.debug(
                "rbac.assignment.assign.conflict",
                extra=log_context(tenant_id=self.tenant_id, user_id=user_id, role_id=role.id),
            )
            concurrent = await self._get_assignment(user_id, role.id)
            if concurrent is not None:
                return concurrent
            raise ConflictError("Role assignment conflicts with a concurrent change") from exc
        return assignment


__all__ = ["AssignmentView", "AssignmentsService", "BulkAssignResult"]
