from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, status

from rbac_api.app.dependencies import MemberDep, OwnerDep, PrincipalDep, SessionDep
from rbac_api.core.errors import ImmutableRoleError, NotFoundError, ValidationError
from rbac_api.models import Role

from .schemas import RoleCreate, RoleDeleteOut, RoleOut, RoleUpdate
from .service import RolesService

router = APIRouter(tags=["roles"])


def _serialize_role(role: Role) -> RoleOut:
    return RoleOut(
        id=role.id,
        tenant_id=role.tenant_id,
        name=role.name,
        description=role.description,
        role_type=role.role_type,
        is_system_role=role.is_system_role,
        is_protected=role.is_protected,
        created_at=role.created_at,
        updated_at=role.updated_at,
    )


async def _load_role(
    role_id: Annotated[UUID, Path(description="Role identifier")],
    principal: PrincipalDep,
    session: SessionDep,
) -> Role:
    service = RolesService(session=session, tenant_id=principal.tenant_id)
    role = await service.get_role(role_id)
    if role is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role


RoleDep = Annotated[Role, Depends(_load_role)]


@router.get(
    "/roles",
    response_model=list[RoleOut],
    summary="List the tenant's roles",
)
async def list_roles(principal: MemberDep, session: SessionDep) -> list[RoleOut]:
    service = RolesService(session=session, tenant_id=principal.tenant_id)
    return [_serialize_role(role) for role in await service.list_roles()]


@router.post(
    "/roles",
    response_model=RoleOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
)
async def create_role(
    payload: RoleCreate,
    principal: OwnerDep,
    session: SessionDep,
) -> RoleOut:
    service = RolesService(session=session, tenant_id=principal.tenant_id)
    try:
        role = await service.create_role(
            name=payload.name,
            description=payload.description,
            role_type=payload.role_type,
        )
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _serialize_role(role)


@router.get(
    "/roles/{role_id}",
    response_model=RoleOut,
    response_model_exclude_none=True,
    summary="Retrieve a role",
)
async def read_role(_: MemberDep, role: RoleDep) -> RoleOut:
    return _serialize_role(role)


@router.patch(
    "/roles/{role_id}",
    response_model=RoleOut,
    response_model_exclude_none=True,
    summary="Update a role",
)
async def update_role(
    payload: RoleUpdate,
    principal: OwnerDep,
    role: RoleDep,
    session: SessionDep,
) -> RoleOut:
    service = RolesService(session=session, tenant_id=principal.tenant_id)
    try:
        updated = await service.update_role(
            role_id=role.id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _serialize_role(updated)


@router.delete(
    "/roles/{role_id}",
    response_model=RoleDeleteOut,
    summary="Delete a role and everything that references it",
)
async def delete_role(
    principal: OwnerDep,
    role: RoleDep,
    session: SessionDep,
) -> RoleDeleteOut:
    service = RolesService(session=session, tenant_id=principal.tenant_id)
    try:
        summary = await service.delete_role(role_id=role.id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RoleDeleteOut(
        role_id=summary.role_id,
        grants_removed=summary.grants_removed,
        edges_removed=summary.edges_removed,
        assignments_removed=summary.assignments_removed,
    )


__all__ = ["RoleDep", "router"]
