"""Commit a staged change set through the grants service, one savepoint per item."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.errors import RbacError
from rbac_api.features.grants.service import GrantsService
from rbac_api.features.roles.service import RolesService

from .changeset import ChangeSet, GrantAction

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommitResult:
    applied: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class ChangeSetsService:
    def __init__(self, *, session: AsyncSession, tenant_id: UUID) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self._roles = RolesService(session=session, tenant_id=tenant_id)
        self._grants = GrantsService(session=session, tenant_id=tenant_id)

    async def open(self, *, role_id: UUID) -> ChangeSet:
        """Start a change set whose baseline is the role's stored direct grants."""

        views = await self._grants.list_for_role(role_id=role_id)
        return ChangeSet.open(role_id, (view.permission.id for view in views))

    async def commit(self, changeset: ChangeSet) -> CommitResult:
        """Apply the diff; failures are reported per permission and never undo siblings."""

        await self._roles.require_role(changeset.role_id)
        diff = changeset.diff()
        result = CommitResult()

        steps = [(pid, GrantAction.ADD) for pid in diff.to_add]
        steps += [(pid, GrantAction.REMOVE) for pid in diff.to_remove]
        for permission_id, action in steps:
            try:
                async with self._session.begin_nested():
                    if action is GrantAction.ADD:
                        await self._grants.assign(
                            role_id=changeset.role_id, permission_id=permission_id
                        )
                    else:
                        await self._grants.remove(
                            role_id=changeset.role_id, permission_id=permission_id
                        )
            except RbacError as exc:
                result.errors.append(f"{permission_id}: {exc}")
                continue
            result.applied += 1

        log = logger.warning if result.errors else logger.info
        log(
            "rbac.changeset.commit",
            extra=log_context(
                tenant_id=self.tenant_id,
                role_id=changeset.role_id,
                to_add=len(diff.to_add),
                to_remove=len(diff.to_remove),
                applied=result.applied,
                error_count=len(result.errors),
            ),
        )
        return result


__all__ = ["ChangeSetsService", "CommitResult"]
