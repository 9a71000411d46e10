"""Persisted role inheritance edges with cycle prevention."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.errors import ConflictError, CycleError, ImmutableRoleError
from rbac_api.db.guards import storage_guard
from rbac_api.features.roles.service import RolesService
from rbac_api.models import Role, RoleInheritance

from . import graph

logger = logging.getLogger(__name__)

# Check-then-insert-then-commit for edges is serialized per tenant in this process.
_TENANT_LOCKS: dict[UUID, asyncio.Lock] = {}


def tenant_lock(tenant_id: UUID) -> asyncio.Lock:
    lock = _TENANT_LOCKS.get(tenant_id)
    if lock is None:
        lock = _TENANT_LOCKS.setdefault(tenant_id, asyncio.Lock())
    return lock


@dataclass(frozen=True, slots=True)
class ForestEntry:
    role: Role
    depth: int
    parent_role_id: UUID | None


class InheritanceService:
    """Manage ``parent -> child`` edges inside one tenant."""

    def __init__(self, *, session: AsyncSession, tenant_id: UUID) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self._roles = RolesService(session=session, tenant_id=tenant_id)

    # ------------- reads ------------------------------------------------

    @storage_guard("rbac.inheritance.list")
    async def list_edges(self) -> list[RoleInheritance]:
        stmt = (
            select(RoleInheritance)
            .where(RoleInheritance.tenant_id == self.tenant_id)
            .order_by(RoleInheritance.created_at, RoleInheritance.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def _edge_pairs(self) -> list[graph.Edge]:
        stmt = select(RoleInheritance.parent_role_id, RoleInheritance.child_role_id).where(
            RoleInheritance.tenant_id == self.tenant_id
        )
        result = await self._session.execute(stmt)
        return [(parent, child) for parent, child in result.all()]

    async def _get_edge(self, parent_role_id: UUID, child_role_id: UUID) -> RoleInheritance | None:
        stmt = select(RoleInheritance).where(
            RoleInheritance.tenant_id == self.tenant_id,
            RoleInheritance.parent_role_id == parent_role_id,
            RoleInheritance.child_role_id == child_role_id,
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def _lock_tenant_roles(self) -> None:
        # Row lock on every role in the tenant; a no-op on SQLite, which
        # serialises writers itself.
        stmt = select(Role.id).where(Role.tenant_id == self.tenant_id).with_for_update()
        await self._session.execute(stmt)

    @storage_guard("rbac.inheritance.cycle_check")
    async def would_create_cycle(self, *, parent_role_id: UUID, child_role_id: UUID) -> bool:
        await self._roles.require_role(parent_role_id)
        await self._roles.require_role(child_role_id)
        return graph.would_create_cycle(await self._edge_pairs(), parent_role_id, child_role_id)

    @storage_guard("rbac.inheritance.children")
    async def get_children(self, *, role_id: UUID) -> list[Role]:
        await self._roles.require_role(role_id)
        stmt = (
            select(Role)
            .join(RoleInheritance, RoleInheritance.child_role_id == Role.id)
            .where(
                RoleInheritance.tenant_id == self.tenant_id,
                RoleInheritance.parent_role_id == role_id,
            )
            .order_by(Role.name, Role.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    @storage_guard("rbac.inheritance.forest")
    async def get_forest(self) -> list[ForestEntry]:
        roles = {role.id: role for role in await self._roles.list_roles()}
        names = {role_id: role.name for role_id, role in roles.items()}
        nodes = graph.walk_forest(names, await self._edge_pairs())
        return [
            ForestEntry(role=roles[node.role_id], depth=node.depth, parent_role_id=node.parent_id)
            for node in nodes
            if node.role_id in roles
        ]

    # ------------- writes -----------------------------------------------

    @storage_guard("rbac.inheritance.add")
    async def add_edge(self, *, parent_role_id: UUID, child_role_id: UUID) -> RoleInheritance:
        """Make ``parent_role_id`` inherit every permission of ``child_role_id``.

        Adding an edge that already exists returns it unchanged. The check and
        insert run under a per-tenant lock and the edge is committed before the
        lock is released, so this call ends the session's current transaction.
        """

        parent = await self._roles.require_role(parent_role_id)
        child = await self._roles.require_role(child_role_id)
        for role in (parent, child):
            if not role.kind.joins_inheritance:
                raise ImmutableRoleError(
                    f"Role '{role.name}' cannot take part in inheritance"
                )

        async with tenant_lock(self.tenant_id):
            # End any open read so the check sees edges committed by the
            # previous lock holder.
            await self._session.commit()
            await self._lock_tenant_roles()

            existing = await self._get_edge(parent.id, child.id)
            if existing is not None:
                await self._session.commit()
                return existing

            if graph.would_create_cycle(await self._edge_pairs(), parent.id, child.id):
                logger.warning(
                    "rbac.inheritance.cycle_rejected",
                    extra=log_context(
                        tenant_id=self.tenant_id,
                        parent_role_id=str(parent.id),
                        child_role_id=str(child.id),
                    ),
                )
                raise CycleError(
                    f"'{parent.name}' cannot inherit from '{child.name}': "
                    "this would create a cycle"
                )

            edge = RoleInheritance(
                tenant_id=self.tenant_id,
                parent_role_id=parent.id,
                child_role_id=child.id,
            )
            try:
                async with self._session.begin_nested():
                    self._session.add(edge)
                    await self._session.flush([edge])
            except IntegrityError as exc:
                # Lost a race with another process; the edge is there now.
                logger.debug(
                    "rbac.inheritance.add.conflict",
                    extra=log_context(
                        tenant_id=self.tenant_id,
                        parent_role_id=str(parent.id),
                        child_role_id=str(child.id),
                    ),
                )
                concurrent = await self._get_edge(parent.id, child.id)
                if concurrent is not None:
                    await self._session.commit()
                    return concurrent
                raise ConflictError("Inheritance edge conflicts with a concurrent change") from exc

            # The edge must be durable before the next holder runs its check.
            await self._session.commit()

        logger.info(
            "rbac.inheritance.add",
            extra=log_context(
                tenant_id=self.tenant_id,
                parent_role_id=str(parent.id),
                child_role_id=str(child.id),
            ),
        )
        return edge

    @storage_guard("rbac.inheritance.remove")
    async def remove_edge(self, *, parent_role_id: UUID, child_role_id: UUID) -> bool:
        """Delete the edge if present; returns whether anything was removed."""

        stmt = (
            delete(RoleInheritance)
            .where(
                RoleInheritance.tenant_id == self.tenant_id,
                RoleInheritance.parent_role_id == parent_role_id,
                RoleInheritance.child_role_id == child_role_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        removed = bool(result.rowcount)
        if removed:
            logger.info(
                "rbac.inheritance.remove",
                extra=log_context(
                    tenant_id=self.tenant_id,
                    parent_role_id=str(parent_role_id),
                    child_role_id=str(child_role_id),
                ),
            )
        return removed


__all__ = ["ForestEntry", "InheritanceService", "tenant_lock"]
