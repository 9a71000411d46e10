from __future__ import annotations

from datetime import datetime

from rbac_api.common.ids import UUIDStr
from rbac_api.common.schema import BaseSchema
from rbac_api.core.types import RoleType


class InheritanceCreate(BaseSchema):
    parent_role_id: UUIDStr
    child_role_id: UUIDStr


class InheritanceOut(BaseSchema):
    id: UUIDStr
    parent_role_id: UUIDStr
    child_role_id: UUIDStr
    created_at: datetime


class CycleCheckOut(BaseSchema):
    parent_role_id: UUIDStr
    child_role_id: UUIDStr
    would_create_cycle: bool


class RoleSummary(BaseSchema):
    id: UUIDStr
    name: str
    role_type: RoleType


class ForestNodeOut(BaseSchema):
    """One row of the inheritance tree, in display order."""

    role: RoleSummary
    depth: int
    parent_role_id: UUIDStr | None = None


__all__ = [
    "CycleCheckOut",
    "ForestNodeOut",
    "InheritanceCreate",
    "InheritanceOut",
    "RoleSummary",
]
