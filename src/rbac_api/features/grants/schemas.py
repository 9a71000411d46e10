from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from rbac_api.common.ids import UUIDStr
from rbac_api.common.schema import BaseSchema


class ConditionIn(BaseSchema):
    field: str = Field(
        min_length=1, max_length=200, description="Dotted path into the check context."
    )
    operator: str = Field(description="One of '=', '!=', 'in', 'not_in'.")
    value: Any = None


class ConditionOut(BaseSchema):
    field: str
    operator: str
    value: Any = None


class GrantAssignRequest(BaseSchema):
    condition: ConditionIn | None = None


class GrantOut(BaseSchema):
    id: UUIDStr
    role_id: UUIDStr
    permission_id: UUIDStr
    permission_key: str
    permission_name: str
    condition: ConditionOut | None = None
    created_at: datetime


__all__ = ["ConditionIn", "ConditionOut", "GrantAssignRequest", "GrantOut"]
