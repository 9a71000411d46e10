from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from rbac_api.app.dependencies import MemberDep, OwnerDep, SessionDep
from rbac_api.core.errors import CycleError, ImmutableRoleError, NotFoundError

from .schemas import CycleCheckOut, ForestNodeOut, InheritanceCreate, InheritanceOut, RoleSummary
from .service import InheritanceService

router = APIRouter(tags=["inheritance"])


@router.get(
    "/inheritance",
    response_model=list[InheritanceOut],
    summary="List inheritance edges",
)
async def list_edges(principal: MemberDep, session: SessionDep) -> list[InheritanceOut]:
    service = InheritanceService(session=session, tenant_id=principal.tenant_id)
    return [InheritanceOut.model_validate(edge) for edge in await service.list_edges()]


@router.get(
    "/inheritance/tree",
    response_model=list[ForestNodeOut],
    summary="Inheritance forest in display order",
)
async def read_forest(principal: MemberDep, session: SessionDep) -> list[ForestNodeOut]:
    service = InheritanceService(session=session, tenant_id=principal.tenant_id)
    return [
        ForestNodeOut(
            role=RoleSummary.model_validate(entry.role),
            depth=entry.depth,
            parent_role_id=entry.parent_role_id,
        )
        for entry in await service.get_forest()
    ]


@router.get(
    "/inheritance/cycle-check",
    response_model=CycleCheckOut,
    summary="Check whether an edge would create a cycle",
)
async def check_cycle(
    parent_role_id: Annotated[UUID, Query()],
    child_role_id: Annotated[UUID, Query()],
    principal: MemberDep,
    session: SessionDep,
) -> CycleCheckOut:
    service = InheritanceService(session=session, tenant_id=principal.tenant_id)
    try:
        result = await service.would_create_cycle(
            parent_role_id=parent_role_id,
            child_role_id=child_role_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CycleCheckOut(
        parent_role_id=parent_role_id,
        child_role_id=child_role_id,
        would_create_cycle=result,
    )


@router.post(
    "/inheritance",
    response_model=InheritanceOut,
    status_code=status.HTTP_201_CREATED,
    summary="Make a role inherit another role's permissions",
)
async def add_edge(
    payload: InheritanceCreate,
    principal: OwnerDep,
    session: SessionDep,
) -> InheritanceOut:
    service = InheritanceService(session=session, tenant_id=principal.tenant_id)
    try:
        edge = await service.add_edge(
            parent_role_id=payload.parent_role_id,
            child_role_id=payload.child_role_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImmutableRoleError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except CycleError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return InheritanceOut.model_validate(edge)


@router.delete(
    "/inheritance/{parent_role_id}/{child_role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an inheritance edge",
)
async def remove_edge(
    parent_role_id: Annotated[UUID, Path()],
    child_role_id: Annotated[UUID, Path()],
    principal: OwnerDep,
    session: SessionDep,
) -> Response:
    service = InheritanceService(session=session, tenant_id=principal.tenant_id)
    await service.remove_edge(parent_role_id=parent_role_id, child_role_id=child_role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/roles/{role_id}/children",
    response_model=list[RoleSummary],
    summary="Roles this role inherits from directly",
)
async def list_children(
    role_id: Annotated[UUID, Path(description="Role identifier")],
    principal: MemberDep,
    session: SessionDep,
) -> list[RoleSummary]:
    service = InheritanceService(session=session, tenant_id=principal.tenant_id)
    try:
        children = await service.get_children(role_id=role_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [RoleSummary.model_validate(role) for role in children]


__all__ = ["router"]
