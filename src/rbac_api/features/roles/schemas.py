from __future__ import annotations

from datetime import datetime

from pydantic import Field

from rbac_api.common.ids import UUIDStr
from rbac_api.common.schema import BaseSchema
from rbac_api.core.types import RoleType


class RoleCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=150)
    description: str | None = None
    role_type: RoleType = RoleType.CUSTOM


class RoleUpdate(BaseSchema):
    name: str | None = Field(default=None, min_length=1, max_length=150)
    description: str | None = None
    role_type: RoleType | None = None


class RoleOut(BaseSchema):
    id: UUIDStr
    tenant_id: UUIDStr
    name: str
    description: str | None = None
    role_type: RoleType
    is_system_role: bool
    is_protected: bool
    created_at: datetime
    updated_at: datetime


class RoleDeleteOut(BaseSchema):
    """Counts of dependent rows removed alongside the role."""

    role_id: UUIDStr
    grants_removed: int
    edges_removed: int
    assignments_removed: int


__all__ = ["RoleCreate", "RoleDeleteOut", "RoleOut", "RoleUpdate"]
