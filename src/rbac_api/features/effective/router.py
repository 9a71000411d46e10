from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from rbac_api.app.dependencies import MemberDep, SessionDep
from rbac_api.core.errors import NotFoundError
from rbac_api.core.types import EffectivePermission
from rbac_api.features.grants.schemas import ConditionOut

from .schemas import (
    EffectivePermissionOut,
    EffectivePermissionsEnvelope,
    PermissionCheckRequest,
    PermissionCheckResponse,
)
from .service import EffectivePermissionsService

router = APIRouter(tags=["effective-permissions"])


def _serialize(permission: EffectivePermission) -> EffectivePermissionOut:
    condition = permission.condition
    return EffectivePermissionOut(
        permission_id=permission.permission_id,
        key=permission.key,
        name=permission.name,
        is_inherited=permission.is_inherited,
        source_role_id=permission.source_role_id,
        source_role_name=permission.source_role_name,
        condition=ConditionOut(**condition.as_dict()) if condition is not None else None,
    )


@router.get(
    "/roles/{role_id}/effective-permissions",
    response_model=EffectivePermissionsEnvelope,
    response_model_exclude_none=True,
    summary="Permissions a role holds directly or through inheritance",
)
async def read_role_effective_permissions(
    role_id: Annotated[UUID, Path(description="Role identifier")],
    principal: MemberDep,
    session: SessionDep,
) -> EffectivePermissionsEnvelope:
    service = EffectivePermissionsService(session=session, tenant_id=principal.tenant_id)
    try:
        permissions = await service.resolve_for_role(role_id=role_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return EffectivePermissionsEnvelope(
        subject_id=role_id,
        permissions=[_serialize(permission) for permission in permissions],
    )


@router.get(
    "/users/{user_id}/effective-permissions",
    response_model=EffectivePermissionsEnvelope,
    response_model_exclude_none=True,
    summary="Permissions a user holds through their roles",
)
async def read_user_effective_permissions(
    user_id: Annotated[UUID, Path(description="User identifier")],
    principal: MemberDep,
    session: SessionDep,
) -> EffectivePermissionsEnvelope:
    service = EffectivePermissionsService(session=session, tenant_id=principal.tenant_id)
    permissions = await service.resolve_for_user(user_id=user_id)
    return EffectivePermissionsEnvelope(
        subject_id=user_id,
        permissions=[_serialize(permission) for permission in permissions],
    )


@router.post(
    "/users/{user_id}/permission-check",
    response_model=PermissionCheckResponse,
    summary="Check one permission for a user against a request context",
)
async def check_user_permission(
    user_id: Annotated[UUID, Path(description="User identifier")],
    payload: PermissionCheckRequest,
    principal: MemberDep,
    session: SessionDep,
) -> PermissionCheckResponse:
    service = EffectivePermissionsService(session=session, tenant_id=principal.tenant_id)
    allowed = await service.check(
        user_id=user_id,
        permission_key=payload.permission_key,
        context=payload.context,
    )
    return PermissionCheckResponse(
        user_id=user_id,
        permission_key=payload.permission_key,
        allowed=allowed,
    )


__all__ = ["router"]
