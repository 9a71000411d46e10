from __future__ import annotations

from datetime import datetime

from pydantic import Field

from rbac_api.common.ids import UUIDStr
from rbac_api.common.schema import BaseSchema


class PermissionOut(BaseSchema):
    id: UUIDStr
    key: str
    name: str
    description: str | None = None
    resource: str
    action: str
    scope: str | None = None
    created_at: datetime
    updated_at: datetime


class PermissionCreate(BaseSchema):
    key: str = Field(min_length=1, max_length=120)
    name: str = Field(min_length=1, max_length=200)
    resource: str = Field(min_length=1, max_length=120)
    action: str = Field(min_length=1, max_length=120)
    description: str | None = None
    scope: str | None = Field(default=None, max_length=120)


class PermissionUpdate(BaseSchema):
    """Partial update; omitted fields keep their stored value."""

    key: str | None = Field(default=None, max_length=120)
    name: str | None = Field(default=None, max_length=200)
    resource: str | None = Field(default=None, max_length=120)
    action: str | None = Field(default=None, max_length=120)
    description: str | None = None
    scope: str | None = Field(default=None, max_length=120)


class PermissionBatchUpdate(PermissionUpdate):
    id: UUIDStr


class PermissionBatchRequest(BaseSchema):
    creates: list[PermissionCreate] = Field(default_factory=list)
    updates: list[PermissionBatchUpdate] = Field(default_factory=list)
    deletes: list[UUIDStr] = Field(default_factory=list)


class PermissionBatchCounts(BaseSchema):
    created: int = 0
    updated: int = 0
    deleted: int = 0


class PermissionBatchResponse(BaseSchema):
    success: bool
    results: PermissionBatchCounts
    errors: list[str] = Field(default_factory=list)


__all__ = [
    "PermissionBatchCounts",
    "PermissionBatchRequest",
    "PermissionBatchResponse",
    "PermissionBatchUpdate",
    "PermissionCreate",
    "PermissionOut",
    "PermissionUpdate",
]
