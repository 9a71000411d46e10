from __future__ import annotations

from datetime import datetime

from pydantic import Field

from rbac_api.common.ids import UUIDStr
from rbac_api.common.schema import BaseSchema
from rbac_api.core.types import RoleType


class UserRoleOut(BaseSchema):
    id: UUIDStr
    user_id: UUIDStr
    role_id: UUIDStr
    role_name: str
    role_type: RoleType
    assigned_by: UUIDStr | None = None
    created_at: datetime


class UserRolesEnvelope(BaseSchema):
    user_id: UUIDStr
    roles: list[UserRoleOut] = Field(default_factory=list)


class BulkAssignRequest(BaseSchema):
    role_ids: list[UUIDStr] = Field(description="Complete set of roles the user should hold.")


class BulkAssignResponse(BaseSchema):
    user_id: UUIDStr
    added: list[UUIDStr] = Field(default_factory=list)
    removed: list[UUIDStr] = Field(default_factory=list)


__all__ = ["BulkAssignRequest", "BulkAssignResponse", "UserRoleOut", "UserRolesEnvelope"]
