"""Effective permission resolution over an in-memory snapshot of one tenant.

The snapshot is rebuilt from storage for every call; nothing here touches the
database, so the traversal rules can be tested directly.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from rbac_api.core.conditions import evaluate
from rbac_api.core.errors import NotFoundError
from rbac_api.core.types import EffectivePermission, GrantCondition, RoleKind
from rbac_api.features.inheritance.graph import Edge, build_adjacency, reachable


@dataclass(frozen=True, slots=True)
class RoleNode:
    id: UUID
    name: str
    kind: RoleKind = RoleKind.STANDARD


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    id: UUID
    key: str
    name: str


@dataclass(frozen=True, slots=True)
class GrantEntry:
    permission_id: UUID
    condition: GrantCondition | None = None


@dataclass
class Snapshot:
    roles: Mapping[UUID, RoleNode]
    catalog: Mapping[UUID, CatalogEntry]
    grants: Mapping[UUID, Sequence[GrantEntry]] = field(default_factory=dict)
    edges: Sequence[Edge] = ()

    def __post_init__(self) -> None:
        names = {role_id: role.name for role_id, role in self.roles.items()}
        self._adjacency = build_adjacency(self.edges, names)

    @property
    def adjacency(self) -> Mapping[UUID, list[UUID]]:
        return self._adjacency

    def role(self, role_id: UUID) -> RoleNode:
        try:
            return self.roles[role_id]
        except KeyError:
            raise NotFoundError("Role not found") from None

    def ordered(self, role_ids: Iterable[UUID]) -> list[RoleNode]:
        nodes = {role_id: self.role(role_id) for role_id in role_ids}
        return sorted(nodes.values(), key=lambda node: (node.name, str(node.id)))


def _walk(snapshot: Snapshot, role_id: UUID) -> Iterator[tuple[RoleNode, GrantEntry, bool]]:
    """Yield ``(source_role, grant, is_inherited)``; direct grants first."""

    for source_id in [role_id, *reachable(snapshot.adjacency, role_id)]:
        source = snapshot.roles.get(source_id)
        if source is None:
            continue
        for grant in snapshot.grants.get(source_id, ()):
            if grant.permission_id in snapshot.catalog:
                yield source, grant, source_id != role_id


def _whole_catalog(snapshot: Snapshot, owner: RoleNode) -> list[EffectivePermission]:
    return [
        EffectivePermission(
            permission_id=entry.id,
            key=entry.key,
            name=entry.name,
            is_inherited=False,
            source_role_id=owner.id,
            source_role_name=owner.name,
        )
        for entry in sorted(snapshot.catalog.values(), key=lambda item: item.key)
    ]


def resolve_for_role(snapshot: Snapshot, role_id: UUID) -> list[EffectivePermission]:
    """Permissions held by ``role_id`` directly or through inheritance.

    When several paths grant the same permission the first one reached wins:
    a direct grant always beats an inherited one.
    """

    role = snapshot.role(role_id)
    if role.kind.holds_all_permissions:
        return _whole_catalog(snapshot, role)

    resolved: dict[UUID, EffectivePermission] = {}
    for source, grant, inherited in _walk(snapshot, role.id):
        if grant.permission_id in resolved:
            continue
        entry = snapshot.catalog[grant.permission_id]
        resolved[grant.permission_id] = EffectivePermission(
            permission_id=entry.id,
            key=entry.key,
            name=entry.name,
            is_inherited=inherited,
            source_role_id=source.id,
            source_role_name=source.name,
            condition=grant.condition,
        )
    return list(resolved.values())


def resolve_for_user(snapshot: Snapshot, role_ids: Iterable[UUID]) -> list[EffectivePermission]:
    roles = snapshot.ordered(role_ids)
    for role in roles:
        if role.kind.holds_all_permissions:
            return _whole_catalog(snapshot, role)

    merged: dict[UUID, EffectivePermission] = {}
    for role in roles:
        for permission in resolve_for_role(snapshot, role.id):
            current = merged.get(permission.permission_id)
            if current is None or (current.is_inherited and not permission.is_inherited):
                merged[permission.permission_id] = permission
    return list(merged.values())


def check(
    snapshot: Snapshot,
    role_ids: Iterable[UUID],
    permission_key: str,
    context: Mapping[str, Any] | None = None,
) -> bool:
    """Whether any grant of ``permission_key`` reachable from the roles admits ``context``."""

    roles = snapshot.ordered(role_ids)
    if any(role.kind.holds_all_permissions for role in roles):
        return True

    for role in roles:
        for _source, grant, _inherited in _walk(snapshot, role.id):
            if snapshot.catalog[grant.permission_id].key != permission_key:
                continue
            if evaluate(grant.condition, context):
                return True
    return False


__all__ = [
    "CatalogEntry",
    "GrantEntry",
    "RoleNode",
    "Snapshot",
    "check",
    "resolve_for_role",
    "resolve_for_user",
]
