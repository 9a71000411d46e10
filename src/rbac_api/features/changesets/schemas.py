from __future__ import annotations

from pydantic import Field

from rbac_api.common.ids import UUIDStr
from rbac_api.common.schema import BaseSchema

from .changeset import GrantAction


class StagedToggle(BaseSchema):
    permission_id: UUIDStr
    action: GrantAction


class ChangeSetCommitRequest(BaseSchema):
    baseline: list[UUIDStr] | None = Field(
        default=None,
        description="Grants the editor started from; defaults to the role's stored grants.",
    )
    changes: list[StagedToggle] = Field(default_factory=list)


class ChangeSetCommitResponse(BaseSchema):
    role_id: UUIDStr
    to_add: list[UUIDStr] = Field(default_factory=list)
    to_remove: list[UUIDStr] = Field(default_factory=list)
    applied: int
    errors: list[str] = Field(default_factory=list)


__all__ = ["ChangeSetCommitRequest", "ChangeSetCommitResponse", "StagedToggle"]
