from __future__ import annotations

from typing import Any

from pydantic import Field

from rbac_api.common.ids import UUIDStr
from rbac_api.common.schema import BaseSchema
from rbac_api.features.grants.schemas import ConditionOut


class EffectivePermissionOut(BaseSchema):
    permission_id: UUIDStr
    key: str
    name: str
    is_inherited: bool
    source_role_id: UUIDStr
    source_role_name: str
    condition: ConditionOut | None = None


class EffectivePermissionsEnvelope(BaseSchema):
    subject_id: UUIDStr = Field(description="Role or user the permissions were resolved for.")
    permissions: list[EffectivePermissionOut] = Field(default_factory=list)


class PermissionCheckRequest(BaseSchema):
    permission_key: str = Field(min_length=1)
    context: dict[str, Any] | None = Field(
        default=None,
        description="Values that grant conditions are evaluated against.",
    )


class PermissionCheckResponse(BaseSchema):
    user_id: UUIDStr
    permission_key: str
    allowed: bool


__all__ = [
    "EffectivePermissionOut",
    "EffectivePermissionsEnvelope",
    "PermissionCheckRequest",
    "PermissionCheckResponse",
]
