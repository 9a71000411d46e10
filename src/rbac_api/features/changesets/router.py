from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status
from fastapi.responses import JSONResponse

from rbac_api.app.dependencies import OwnerDep, SessionDep
from rbac_api.core.errors import NotFoundError

from .changeset import ChangeSet
from .schemas import ChangeSetCommitRequest, ChangeSetCommitResponse
from .service import ChangeSetsService

router = APIRouter(tags=["grants"])


@router.post(
    "/roles/{role_id}/permissions/batch",
    response_model=ChangeSetCommitResponse,
    responses={status.HTTP_207_MULTI_STATUS: {"model": ChangeSetCommitResponse}},
    summary="Commit staged grant toggles for a role",
)
async def commit_changeset(
    role_id: Annotated[UUID, Path(description="Role identifier")],
    payload: ChangeSetCommitRequest,
    principal: OwnerDep,
    session: SessionDep,
) -> JSONResponse:
    """Rebuild the editor's change set, diff it and apply each toggle.

    Returns 207 when at least one toggle failed.
    """

    service = ChangeSetsService(session=session, tenant_id=principal.tenant_id)
    try:
        if payload.baseline is None:
            changeset = await service.open(role_id=role_id)
        else:
            changeset = ChangeSet.open(role_id, payload.baseline)
        for toggle in payload.changes:
            changeset = changeset.stage(toggle.permission_id, toggle.action)
        diff = changeset.diff()
        result = await service.commit(changeset)
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    body = ChangeSetCommitResponse(
        role_id=role_id,
        to_add=list(diff.to_add),
        to_remove=list(diff.to_remove),
        applied=result.applied,
        errors=result.errors,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_207_MULTI_STATUS,
        content=body.model_dump(mode="json"),
    )


__all__ = ["router"]
