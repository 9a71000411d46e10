"""Core RBAC value types shared by services, models and schemas."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID


class RoleType(str, Enum):
    """Catalog of role archetypes a tenant can hold."""

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    SUPERVISOR = "supervisor"
    CASHIER = "cashier"
    WAITER = "waiter"
    KITCHEN = "kitchen"
    CUSTOM = "custom"


class RoleKind(str, Enum):
    """Behavioural variant of a role.

    ``OWNER`` roles hold every permission implicitly, take no explicit grants
    and never appear in inheritance edges. Every other role is ``STANDARD``.
    """

    OWNER = "owner"
    STANDARD = "standard"

    @classmethod
    def of(cls, role_type: RoleType | str) -> RoleKind:
        if RoleType(role_type) is RoleType.OWNER:
            return cls.OWNER
        return cls.STANDARD

    @property
    def accepts_grants(self) -> bool:
        return self is RoleKind.STANDARD

    @property
    def joins_inheritance(self) -> bool:
        return self is RoleKind.STANDARD

    @property
    def holds_all_permissions(self) -> bool:
        return self is RoleKind.OWNER


class ConditionOperator(str, Enum):
    EQ = "="
    NE = "!="
    IN = "in"
    NOT_IN = "not_in"


@dataclass(frozen=True, slots=True)
class GrantCondition:
    """Single ``{field, operator, value}`` restriction on a grant."""

    field: str
    operator: ConditionOperator
    value: Any

    def as_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}


@dataclass(frozen=True, slots=True)
class EffectivePermission:
    """A permission a role or user holds, tagged with where it came from."""

    permission_id: UUID
    key: str
    name: str
    is_inherited: bool
    source_role_id: UUID
    source_role_name: str
    condition: GrantCondition | None = None


@dataclass(frozen=True, slots=True)
class PermissionDef:
    """Seed definition for a catalog permission."""

    key: str
    name: str
    resource: str
    action: str
    description: str | None = None
    scope: str | None = None


@dataclass(frozen=True, slots=True)
class SystemRoleDef:
    """Seed definition for a tenant's built-in role."""

    role_type: RoleType
    name: str
    description: str
    permissions: tuple[str, ...] = ()


__all__ = [
    "ConditionOperator",
    "EffectivePermission",
    "GrantCondition",
    "PermissionDef",
    "RoleKind",
    "RoleType",
    "SystemRoleDef",
]
