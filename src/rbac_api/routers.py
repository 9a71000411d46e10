"""API router composition for the RBAC FastAPI application."""

from __future__ import annotations

from fastapi import APIRouter

from .features.assignments.router import router as assignments_router
from .features.changesets.router import router as changesets_router
from .features.effective.router import router as effective_router
from .features.grants.router import router as grants_router
from .features.health.router import router as health_router
from .features.inheritance.router import router as inheritance_router
from .features.permissions.router import router as permissions_router
from .features.roles.router import router as roles_router

rbac_router = APIRouter()
rbac_router.include_router(permissions_router)
rbac_router.include_router(roles_router)
rbac_router.include_router(changesets_router)
rbac_router.include_router(grants_router)
rbac_router.include_router(inheritance_router)
rbac_router.include_router(assignments_router)
rbac_router.include_router(effective_router)

api_router = APIRouter(prefix="/v1")
api_router.include_router(health_router, prefix="/health")
api_router.include_router(rbac_router, prefix="/rbac")

__all__ = ["api_router"]
