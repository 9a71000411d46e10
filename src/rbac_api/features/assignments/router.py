from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Response, status

from rbac_api.app.dependencies import MemberDep, OwnerDep, SessionDep
from rbac_api.core.errors import ImmutableRoleError, NotFoundError, ValidationError

from .schemas import BulkAssignRequest, BulkAssignResponse, UserRoleOut, UserRolesEnvelope
from .service import AssignmentsService, AssignmentView

router = APIRouter(tags=["assignments"])

UserIdPath = Annotated[UUID, Path(description="User identifier")]
RoleIdPath = Annotated[UUID, Path(description="Role identifier")]


def _serialize(view: AssignmentView) -> UserRoleOut:
    return UserRoleOut(
        id=view.assignment.id,
        user_id=view.assignment.user_id,
        role_id=view.role.id,
        role_name=view.role.name,
        role_type=view.role.role_type,
        assigned_by=view.assignment.assigned_by,
        created_at=view.assignment.created_at,
    )


async def _envelope(service: AssignmentsService, user_id: UUID) -> UserRolesEnvelope:
    views = await service.list_for_user(user_id=user_id)
    return UserRolesEnvelope(user_id=user_id, roles=[_serialize(view) for view in views])


@router.get(
    "/users/{user_id}/roles",
    response_model=UserRolesEnvelope,
    response_model_exclude_none=True,
    summary="List a user's roles",
)
async def list_user_roles(
    user_id: UserIdPath,
    principal: MemberDep,
    session: SessionDep,
) -> UserRolesEnvelope:
    service = AssignmentsService(session=session, tenant_id=principal.tenant_id)
    return await _envelope(service, user_id)


@router.put(
    "/users/{user_id}/roles/{role_id}",
    response_model=UserRolesEnvelope,
    response_model_exclude_none=True,
    summary="Assign a role to a user",
)
async def assign_role(
    user_id: UserIdPath,
    role_id: RoleIdPath,
    principal: OwnerDep,
    session: SessionDep,
) -> UserRolesEnvelope:
    service = AssignmentsService(session=session, tenant_id=principal.tenant_id)
    try:
        await service.assign(user_id=user_id, role_id=role_id, assigned_by=principal.user_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return await _envelope(service, user_id)


@router.delete(
    "/users/{user_id}/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a role from a user",
)
async def remove_role(
    user_id: UserIdPath,
    role_id: RoleIdPath,
    principal: OwnerDep,
    session: SessionDep,
) -> Response:
    service = AssignmentsService(session=session, tenant_id=principal.tenant_id)
    try:
        await service.remove(user_id=user_id, role_id=role_id, removed_by=principal.user_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/users/{user_id}/roles",
    response_model=BulkAssignResponse,
    summary="Replace a user's role set",
)
async def replace_user_roles(
    user_id: UserIdPath,
    payload: BulkAssignRequest,
    principal: OwnerDep,
    session: SessionDep,
) -> BulkAssignResponse:
    service = AssignmentsService(session=session, tenant_id=principal.tenant_id)
    try:
        result = await service.bulk_assign(
            user_id=user_id,
            role_ids=payload.role_ids,
            assigned_by=principal.user_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return BulkAssignResponse(user_id=user_id, added=result.added, removed=result.removed)


@router.get(
    "/roles/{role_id}/users",
    response_model=list[UserRoleOut],
    response_model_exclude_none=True,
    summary="List the users holding a role",
)
async def list_role_members(
    role_id: RoleIdPath,
    principal: MemberDep,
    session: SessionDep,
) -> list[UserRoleOut]:
    service = AssignmentsService(session=session, tenant_id=principal.tenant_id)
    try:
        views = await service.list_for_role(role_id=role_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [_serialize(view) for view in views]


__all__ = ["router"]
