"""Tenant role definitions with protected owner and system roles."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.errors import ImmutableRoleError, NotFoundError, ValidationError
from rbac_api.core.types import RoleType
from rbac_api.db.guards import storage_guard
from rbac_api.models import Role, RoleInheritance, RolePermission, UserRole

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({"name", "description", "role_type"})


@dataclass(slots=True, frozen=True)
class RoleDeleteSummary:
    role_id: UUID
    grants_removed: int
    edges_removed: int
    assignments_removed: int


def _clean_name(value: Any) -> str:
    name = str(value).strip() if value is not None else ""
    if not name:
        raise ValidationError("Role name is required")
    return name


def _coerce_role_type(value: RoleType | str) -> RoleType:
    try:
        return RoleType(value)
    except ValueError:
        raise ValidationError(f"Unknown role type '{value}'") from None


class RolesService:
    """Role CRUD bound to a single tenant.

    Every lookup filters on ``tenant_id`` so a role id from another tenant is
    indistinguishable from a missing one.
    """

    def __init__(self, *, session: AsyncSession, tenant_id: UUID) -> None:
        self._session = session
        self.tenant_id = tenant_id

    # ------------- reads ------------------------------------------------

    @storage_guard("rbac.role.list")
    async def list_roles(self) -> list[Role]:
        stmt = (
            select(Role)
            .where(Role.tenant_id == self.tenant_id)
            .order_by(Role.name, Role.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_role(self, role_id: UUID) -> Role | None:
        stmt = select(Role).where(Role.id == role_id, Role.tenant_id == self.tenant_id)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def require_role(self, role_id: UUID) -> Role:
        role = await self.get_role(role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    async def get_role_by_name(self, name: str) -> Role | None:
        stmt = select(Role).where(Role.tenant_id == self.tenant_id, Role.name == name)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def get_owner_role(self) -> Role | None:
        stmt = select(Role).where(
            Role.tenant_id == self.tenant_id,
            Role.role_type == RoleType.OWNER,
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    # ------------- writes -----------------------------------------------

    @storage_guard("rbac.role.create")
    async def create_role(
        self,
        *,
        name: str,
        description: str | None = None,
        role_type: RoleType | str = RoleType.CUSTOM,
    ) -> Role:
        resolved_type = _coerce_role_type(role_type)
        if resolved_type is RoleType.OWNER:
            raise ImmutableRoleError("Owner roles are created by tenant bootstrap only")

        cleaned = _clean_name(name)
        if await self.get_role_by_name(cleaned) is not None:
            raise ValidationError(f"Role '{cleaned}' already exists")

        role = Role(
            tenant_id=self.tenant_id,
            name=cleaned,
            description=description,
            role_type=resolved_type,
            is_system_role=False,
        )
        self._session.add(role)
        try:
            await self._session.flush([role])
        except IntegrityError as exc:
            logger.debug(
                "rbac.role.create.conflict",
                extra=log_context(tenant_id=self.tenant_id, role_name=cleaned),
            )
            raise ValidationError(f"Role '{cleaned}' already exists") from exc

        logger.info(
            "rbac.role.create",
            extra=log_context(
                tenant_id=self.tenant_id,
                role_id=role.id,
                role_name=role.name,
                role_type=resolved_type.value,
            ),
        )
        return role

    @storage_guard("rbac.role.update")
    async def update_role(self, *, role_id: UUID, changes: Mapping[str, Any]) -> Role:
        """Apply ``changes`` (name, description, role_type) to a role.

        Protected roles accept description edits only. Values equal to the
        stored ones are not treated as changes.
        """

        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown role field(s): {', '.join(sorted(unknown))}")

        role = await self.require_role(role_id)
        updates: dict[str, Any] = {}

        if "name" in changes:
            name = _clean_name(changes["name"])
            if name != role.name:
                updates["name"] = name
        if "role_type" in changes and changes["role_type"] is not None:
            role_type = _coerce_role_type(changes["role_type"])
            if role_type is not RoleType(role.role_type):
                if role_type is RoleType.OWNER:
                    raise ImmutableRoleError("A role cannot be converted into the owner role")
                updates["role_type"] = role_type
        if "description" in changes and changes["description"] != role.description:
            updates["description"] = changes["description"]

        if role.is_protected and set(updates) - {"description"}:
            raise ImmutableRoleError(
                f"Role '{role.name}' is protected; only its description can change"
            )

        if "name" in updates:
            clash = await self.get_role_by_name(updates["name"])
            if clash is not None and clash.id != role.id:
                raise ValidationError(f"Role '{updates['name']}' already exists")

        if not updates:
            return role

        for field, value in updates.items():
            setattr(role, field, value)
        try:
            await self._session.flush([role])
        except IntegrityError as exc:
            raise ValidationError(f"Role '{role.name}' already exists") from exc

        logger.info(
            "rbac.role.update",
            extra=log_context(
                tenant_id=self.tenant_id,
                role_id=role.id,
                fields=",".join(sorted(updates)),
            ),
        )
        return role

    @storage_guard("rbac.role.delete")
    async def delete_role(self, *, role_id: UUID) -> RoleDeleteSummary:
        """Delete an ordinary role together with its grants, edges and assignments."""

        role = await self.require_role(role_id)
        if role.is_protected:
            raise ImmutableRoleError(f"Role '{role.name}' is protected and cannot be deleted")

        grants = await self._delete_where(RolePermission, RolePermission.role_id == role.id)
        edges = await self._delete_where(
            RoleInheritance,
            or_(
                RoleInheritance.parent_role_id == role.id,
                RoleInheritance.child_role_id == role.id,
            ),
        )
        assignments = await self._delete_where(UserRole, UserRole.role_id == role.id)

        await self._session.delete(role)
        await self._session.flush()

        summary = RoleDeleteSummary(
            role_id=role_id,
            grants_removed=grants,
            edges_removed=edges,
            assignments_removed=assignments,
        )
        logger.info(
            "rbac.role.delete",
            extra=log_context(
                tenant_id=self.tenant_id,
                role_id=role_id,
                grants_removed=grants,
                edges_removed=edges,
                assignments_removed=assignments,
            ),
        )
        return summary

    async def _delete_where(self, model: type, criterion: Any) -> int:
        count_stmt = select(func.count()).select_from(model).where(criterion)
        count = int((await self._session.execute(count_stmt)).scalar_one())
        if count:
            await self._session.execute(
                delete(model).where(criterion).execution_options(synchronize_session=False)
            )
        return count


__all__ = ["RoleDeleteSummary", "RolesService"]
