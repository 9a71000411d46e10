from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Response, status
from fastapi.responses import JSONResponse

from rbac_api.app.dependencies import MemberDep, OwnerDep, SessionDep
from rbac_api.core.errors import NotFoundError, ReferentialIntegrityError, ValidationError

from .schemas import (
    PermissionBatchCounts,
    PermissionBatchRequest,
    PermissionBatchResponse,
    PermissionCreate,
    PermissionOut,
    PermissionUpdate,
)
from .service import PermissionDraft, PermissionPatch, PermissionsService

router = APIRouter(tags=["permissions"])

PermissionIdPath = Annotated[UUID, Path(description="Permission identifier")]


@router.get(
    "/permissions",
    response_model=list[PermissionOut],
    summary="List the permission catalog",
)
async def list_permissions(_: MemberDep, session: SessionDep) -> list[PermissionOut]:
    service = PermissionsService(session=session)
    return [PermissionOut.model_validate(p) for p in await service.list_permissions()]


@router.post(
    "/permissions",
    response_model=PermissionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a permission",
)
async def create_permission(
    payload: PermissionCreate,
    _: OwnerDep,
    session: SessionDep,
) -> PermissionOut:
    service = PermissionsService(session=session)
    try:
        permission = await service.create_permission(**payload.model_dump())
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return PermissionOut.model_validate(permission)


@router.patch(
    "/permissions/{permission_id}",
    response_model=PermissionOut,
    summary="Update a permission",
)
async def update_permission(
    permission_id: PermissionIdPath,
    payload: PermissionUpdate,
    _: OwnerDep,
    session: SessionDep,
) -> PermissionOut:
    service = PermissionsService(session=session)
    try:
        permission = await service.update_permission(
            permission_id=permission_id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return PermissionOut.model_validate(permission)


@router.delete(
    "/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an unused permission",
)
async def delete_permission(
    permission_id: PermissionIdPath,
    _: OwnerDep,
    session: SessionDep,
) -> Response:
    service = PermissionsService(session=session)
    try:
        await service.delete_permission(permission_id=permission_id)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ReferentialIntegrityError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/permissions/batch",
    response_model=PermissionBatchResponse,
    responses={status.HTTP_207_MULTI_STATUS: {"model": PermissionBatchResponse}},
    summary="Apply creates, updates and deletes to the catalog",
)
async def batch_save_permissions(
    payload: PermissionBatchRequest,
    _: OwnerDep,
    session: SessionDep,
) -> JSONResponse:
    """Per-item outcome; 207 when at least one item failed."""

    service = PermissionsService(session=session)
    result = await service.batch_save(
        creates=[PermissionDraft(**item.model_dump()) for item in payload.creates],
        updates=[
            PermissionPatch(id=item.id, fields=item.model_dump(exclude_unset=True, exclude={"id"}))
            for item in payload.updates
        ],
        deletes=list(payload.deletes),
    )
    body = PermissionBatchResponse(
        success=result.success,
        results=PermissionBatchCounts(
            created=result.created,
            updated=result.updated,
            deleted=result.deleted,
        ),
        errors=result.errors,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_207_MULTI_STATUS,
        content=body.model_dump(mode="json"),
    )


__all__ = ["router"]
