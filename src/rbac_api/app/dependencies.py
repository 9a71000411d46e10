"""Request-scoped dependencies shared by the RBAC routers."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.core.principal import TENANT_ID_HEADER, USER_ID_HEADER, AuthenticatedPrincipal
from rbac_api.db.database import get_db_session
from rbac_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def _parse_identity(value: str | None, header: str) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {header} header",
        )
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Malformed {header} header",
        ) from None


async def get_current_principal(
    x_user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None,
    x_tenant_id: Annotated[str | None, Header(alias=TENANT_ID_HEADER)] = None,
) -> AuthenticatedPrincipal:
    """Identity asserted by the gateway in front of this service."""

    return AuthenticatedPrincipal(
        user_id=_parse_identity(x_user_id, USER_ID_HEADER),
        tenant_id=_parse_identity(x_tenant_id, TENANT_ID_HEADER),
    )


PrincipalDep = Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]


def _forbidden(principal: AuthenticatedPrincipal, requirement: str) -> HTTPException:
    logger.info(
        "rbac.authz.denied",
        extra=log_context(
            tenant_id=principal.tenant_id,
            user_id=principal.user_id,
            requirement=requirement,
        ),
    )
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


async def require_tenant_member(
    principal: PrincipalDep,
    session: SessionDep,
) -> AuthenticatedPrincipal:
    from rbac_api.features.assignments.service import AssignmentsService

    service = AssignmentsService(session=session, tenant_id=principal.tenant_id)
    if not await service.is_member(principal.user_id):
        raise _forbidden(principal, "member")
    return principal


async def require_tenant_owner(
    principal: PrincipalDep,
    session: SessionDep,
) -> AuthenticatedPrincipal:
    from rbac_api.features.assignments.service import AssignmentsService

    service = AssignmentsService(session=session, tenant_id=principal.tenant_id)
    if not await service.is_owner(principal.user_id):
        raise _forbidden(principal, "owner")
    return principal


MemberDep = Annotated[AuthenticatedPrincipal, Depends(require_tenant_member)]
OwnerDep = Annotated[AuthenticatedPrincipal, Depends(require_tenant_owner)]


def get_health_service(session: SessionDep, settings: SettingsDep):
    from rbac_api.features.health.service import HealthService

    return HealthService(settings=settings, session=session)


__all__ = [
    "MemberDep",
    "OwnerDep",
    "PrincipalDep",
    "SessionDep",
    "SettingsDep",
    "get_current_principal",
    "get_health_service",
    "require_tenant_member",
    "require_tenant_owner",
]
