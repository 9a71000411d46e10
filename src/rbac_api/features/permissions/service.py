"""Permission catalog: CRUD plus the batched save used by the registry editor."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.errors import NotFoundError, ReferentialIntegrityError, ValidationError
from rbac_api.core.registry import PERMISSIONS
from rbac_api.db.guards import storage_guard
from rbac_api.models import Permission, RolePermission

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("key", "name", "resource", "action")
_OPTIONAL_FIELDS = ("description", "scope")
_EDITABLE_FIELDS = frozenset(_REQUIRED_FIELDS + _OPTIONAL_FIELDS)


@dataclass(slots=True)
class PermissionDraft:
    key: str
    name: str
    resource: str
    action: str
    description: str | None = None
    scope: str | None = None

    def values(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "resource": self.resource,
            "action": self.action,
            "description": self.description,
            "scope": self.scope,
        }


@dataclass(slots=True)
class PermissionPatch:
    id: UUID
    fields: dict[str, Any]


@dataclass(slots=True)
class BatchSaveResult:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _normalize(values: Mapping[str, Any]) -> dict[str, Any]:
    """Trim fields and reject blank required ones; raises ``ValidationError``."""

    normalized: dict[str, Any] = {}
    for name in _REQUIRED_FIELDS:
        cleaned = _clean(values.get(name))
        if cleaned is None:
            raise ValidationError(f"{name} is required")
        normalized[name] = cleaned
    for name in _OPTIONAL_FIELDS:
        normalized[name] = _clean(values.get(name))
    return normalized


def _merge(permission: Permission, changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"unknown field(s): {', '.join(sorted(unknown))}")
    current = {name: getattr(permission, name) for name in _EDITABLE_FIELDS}
    current.update(changes)
    return _normalize(current)


class PermissionsService:
    """Catalog operations; the catalog is shared by every tenant."""

    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session

    # ------------- reads ------------------------------------------------

    @storage_guard("rbac.permission.list")
    async def list_permissions(self) -> list[Permission]:
        stmt = select(Permission).order_by(Permission.key)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_permission(self, permission_id: UUID) -> Permission | None:
        return await self._session.get(Permission, permission_id)

    async def get_permission_by_key(self, key: str) -> Permission | None:
        stmt = select(Permission).where(Permission.key == key).limit(1)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def require_permission(self, permission_id: UUID) -> Permission:
        permission = await self.get_permission(permission_id)
        if permission is None:
            raise NotFoundError("Permission not found")
        return permission

    async def count_grants(self, permission_id: UUID) -> int:
        stmt = select(func.count()).select_from(RolePermission).where(
            RolePermission.permission_id == permission_id
        )
        return int((await self._session.execute(stmt)).scalar_one())

    # ------------- single-item writes ------------------------------------

    @storage_guard("rbac.permission.create")
    async def create_permission(
        self,
        *,
        key: str,
        name: str,
        resource: str,
        action: str,
        description: str | None = None,
        scope: str | None = None,
    ) -> Permission:
        values = _normalize(
            {
                "key": key,
                "name": name,
                "resource": resource,
                "action": action,
                "description": description,
                "scope": scope,
            }
        )
        if await self.get_permission_by_key(values["key"]) is not None:
            raise ValidationError(f"Permission key '{values['key']}' already exists")

        permission = Permission(**values)
        self._session.add(permission)
        try:
            await self._session.flush([permission])
        except IntegrityError as exc:
            raise ValidationError(f"Permission key '{values['key']}' already exists") from exc

        logger.info(
            "rbac.permission.create",
            extra=log_context(permission_id=permission.id, key=permission.key),
        )
        return permission

    @storage_guard("rbac.permission.update")
    async def update_permission(
        self,
        *,
        permission_id: UUID,
        changes: Mapping[str, Any],
    ) -> Permission:
        permission = await self.require_permission(permission_id)
        values = _merge(permission, changes)

        if values["key"] != permission.key:
            clash = await self.get_permission_by_key(values["key"])
            if clash is not None and clash.id != permission.id:
                raise ValidationError(f"Permission key '{values['key']}' already exists")

        for name, value in values.items():
            setattr(permission, name, value)
        try:
            await self._session.flush([permission])
        except IntegrityError as exc:
            raise ValidationError(f"Permission key '{values['key']}' already exists") from exc

        logger.info(
            "rbac.permission.update",
            extra=log_context(permission_id=permission.id, key=permission.key),
        )
        return permission

    @storage_guard("rbac.permission.delete")
    async def delete_permission(self, *, permission_id: UUID) -> None:
        permission = await self.require_permission(permission_id)
        in_use = await self.count_grants(permission.id)
        if in_use:
            raise ReferentialIntegrityError(
                f"Permission '{permission.key}' is granted to {in_use} role(s) "
                "and cannot be deleted"
            )
        await self._session.delete(permission)
        await self._session.flush()
        logger.info(
            "rbac.permission.delete",
            extra=log_context(permission_id=permission_id, key=permission.key),
        )

    # ------------- batch save --------------------------------------------

    @storage_guard("rbac.permission.batch_save")
    async def batch_save(
        self,
        *,
        creates: Sequence[PermissionDraft] = (),
        updates: Sequence[PermissionPatch] = (),
        deletes: Sequence[UUID] = (),
    ) -> BatchSaveResult:
        """Validate the whole proposed catalog, then apply each item on its own.

        Deletes run first so their keys are free for the creates and updates
        that follow. Each item runs inside a savepoint, so a failing item is
        reported in ``errors`` without undoing its siblings.
        """

        result = BatchSaveResult()
        existing = {permission.id: permission for permission in await self.list_permissions()}
        final_keys: dict[UUID | str, str] = {pid: p.key for pid, p in existing.items()}
        staged_deletes: list[tuple[str, Permission]] = []
        staged_creates: list[tuple[str, dict[str, Any]]] = []
        staged_updates: list[tuple[str, Permission, dict[str, Any]]] = []

        for permission_id in deletes:
            ident = str(permission_id)
            permission = existing.get(permission_id)
            if permission is None:
                result.errors.append(f"{ident}: not found")
                continue
            if await self.count_grants(permission_id):
                result.errors.append(f"{ident}: in use, cannot delete")
                continue
            final_keys.pop(permission_id, None)
            staged_deletes.append((ident, permission))

        deleting = {permission.id for _, permission in staged_deletes}
        for patch in updates:
            ident = str(patch.id)
            permission = existing.get(patch.id)
            if permission is None or patch.id in deleting:
                result.errors.append(f"{ident}: not found")
                continue
            try:
                values = _merge(permission, patch.fields)
            except ValidationError as exc:
                result.errors.append(f"{ident}: {exc}")
                continue
            final_keys[patch.id] = values["key"]
            staged_updates.append((ident, permission, values))

        for index, draft in enumerate(creates):
            ident = _clean(draft.key) or f"create #{index + 1}"
            try:
                values = _normalize(draft.values())
            except ValidationError as exc:
                result.errors.append(f"{ident}: {exc}")
                continue
            final_keys[f"create:{index}"] = values["key"]
            staged_creates.append((ident, values))

        duplicates = {key for key, count in Counter(final_keys.values()).items() if count > 1}

        for ident, permission in staged_deletes:
            if await self._apply(ident, result, self._remove, permission):
                result.deleted += 1

        for ident, values in staged_creates:
            if values["key"] in duplicates:
                result.errors.append(f"{ident}: duplicate key '{values['key']}'")
                continue
            if await self._apply(ident, result, self._insert, values):
                result.created += 1

        for ident, permission, values in staged_updates:
            if values["key"] in duplicates:
                result.errors.append(f"{ident}: duplicate key '{values['key']}'")
                continue
            if await self._apply(ident, result, self._assign, permission, values):
                result.updated += 1

        log = logger.warning if result.errors else logger.info
        log(
            "rbac.permission.batch_save",
            extra=log_context(
                created_count=result.created,
                updated_count=result.updated,
                deleted_count=result.deleted,
                error_count=len(result.errors),
            ),
        )
        return result

    async def _apply(self, ident: str, result: BatchSaveResult, op, *args: Any) -> bool:
        try:
            async with self._session.begin_nested():
                await op(*args)
        except IntegrityError:
            logger.debug("rbac.permission.batch_item.conflict", extra=log_context(item=ident))
            result.errors.append(f"{ident}: conflicts with an existing permission")
            return False
        return True

    async def _insert(self, values: dict[str, Any]) -> None:
        permission = Permission(**values)
        self._session.add(permission)
        await self._session.flush([permission])

    async def _assign(self, permission: Permission, values: dict[str, Any]) -> None:
        for name, value in values.items():
            setattr(permission, name, value)
        await self._session.flush([permission])

    async def _remove(self, permission: Permission) -> None:
        await self._session.delete(permission)
        await self._session.flush()

    # ------------- seeding -----------------------------------------------

    @storage_guard("rbac.permission.seed")
    async def seed_defaults(self, definitions: Iterable = PERMISSIONS) -> int:
        """Insert catalog entries that are missing; existing keys are left alone."""

        present = set((await self._session.execute(select(Permission.key))).scalars().all())
        added = 0
        for definition in definitions:
            if definition.key in present:
                continue
            self._session.add(
                Permission(
                    key=definition.key,
                    name=definition.name,
                    resource=definition.resource,
                    action=definition.action,
                    description=definition.description,
                    scope=definition.scope,
                )
            )
            present.add(definition.key)
            added += 1
        await self._session.flush()
        if added:
            logger.info("rbac.permission.seed", extra=log_context(added=added))
        return added


__all__ = [
    "BatchSaveResult",
    "PermissionDraft",
    "PermissionPatch",
    "PermissionsService",
]
