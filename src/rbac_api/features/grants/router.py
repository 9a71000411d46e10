from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, HTTPException, Path, Response, status

from rbac_api.app.dependencies import MemberDep, OwnerDep, SessionDep
from rbac_api.core.conditions import build_condition
from rbac_api.core.errors import ImmutableRoleError, NotFoundError, ValidationError
from rbac_api.models import Permission, RolePermission

from .schemas import ConditionIn, ConditionOut, GrantAssignRequest, GrantOut
from .service import GrantsService

router = APIRouter(tags=["grants"])

RoleIdPath = Annotated[UUID, Path(description="Role identifier")]
PermissionIdPath = Annotated[UUID, Path(description="Permission identifier")]


def _serialize_grant(grant: RolePermission, permission: Permission) -> GrantOut:
    condition = grant.condition
    return GrantOut(
        id=grant.id,
        role_id=grant.role_id,
        permission_id=grant.permission_id,
        permission_key=permission.key,
        permission_name=permission.name,
        condition=ConditionOut(**condition.as_dict()) if condition is not None else None,
        created_at=grant.created_at,
    )


async def _grant_out(service: GrantsService, grant: RolePermission) -> GrantOut:
    view = await service.view(grant)
    return _serialize_grant(view.grant, view.permission)


@router.get(
    "/roles/{role_id}/permissions",
    response_model=list[GrantOut],
    summary="List a role's direct grants",
)
async def list_role_permissions(
    role_id: RoleIdPath,
    principal: MemberDep,
    session: SessionDep,
) -> list[GrantOut]:
    service = GrantsService(session=session, tenant_id=principal.tenant_id)
    try:
        views = await service.list_for_role(role_id=role_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [_serialize_grant(view.grant, view.permission) for view in views]


@router.put(
    "/roles/{role_id}/permissions/{permission_id}",
    response_model=GrantOut,
    summary="Grant a permission to a role",
)
async def assign_permission(
    role_id: RoleIdPath,
    permission_id: PermissionIdPath,
    principal: OwnerDep,
    session: SessionDep,
    payload: Annotated[GrantAssignRequest | None, Body()] = None,
) -> GrantOut:
    service = GrantsService(session=session, tenant_id=principal.tenant_id)
    try:
        condition = None
        if payload is not None and payload.condition is not None:
            condition = build_condition(
                payload.condition.field, payload.condition.operator, payload.condition.value
            )
        grant = await service.assign(
            role_id=role_id,
            permission_id=permission_id,
            condition=condition,
        )
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return await _grant_out(service, grant)


@router.delete(
    "/roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a permission from a role",
)
async def remove_permission(
    role_id: RoleIdPath,
    permission_id: PermissionIdPath,
    principal: OwnerDep,
    session: SessionDep,
) -> Response:
    service = GrantsService(session=session, tenant_id=principal.tenant_id)
    try:
        await service.remove(role_id=role_id, permission_id=permission_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/roles/{role_id}/permissions/{permission_id}/condition",
    response_model=GrantOut,
    summary="Attach a condition to a grant",
)
async def set_grant_condition(
    role_id: RoleIdPath,
    permission_id: PermissionIdPath,
    payload: ConditionIn,
    principal: OwnerDep,
    session: SessionDep,
) -> GrantOut:
    service = GrantsService(session=session, tenant_id=principal.tenant_id)
    try:
        grant = await service.set_condition(
            role_id=role_id,
            permission_id=permission_id,
            field=payload.field,
            operator=payload.operator,
            value=payload.value,
        )
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return await _grant_out(service, grant)


@router.delete(
    "/roles/{role_id}/permissions/{permission_id}/condition",
    response_model=GrantOut,
    summary="Clear a grant's condition",
)
async def remove_grant_condition(
    role_id: RoleIdPath,
    permission_id: PermissionIdPath,
    principal: OwnerDep,
    session: SessionDep,
) -> GrantOut:
    service = GrantsService(session=session, tenant_id=principal.tenant_id)
    try:
        grant = await service.remove_condition(role_id=role_id, permission_id=permission_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return await _grant_out(service, grant)


__all__ = ["router"]
