"""Service layer for the health module."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.common.logging import log_context
from rbac_api.common.time import utc_now
from rbac_api.settings import Settings

from .schemas import HealthCheckResponse, HealthComponentStatus

logger = logging.getLogger(__name__)


class HealthService:
    def __init__(self, *, settings: Settings, session: AsyncSession) -> None:
        self._settings = settings
        self._session = session

    async def status(self) -> HealthCheckResponse:
        components = [
            HealthComponentStatus(
                name="api",
                status="available",
                detail=f"v{self._settings.app_version}",
            ),
            await self._database_status(),
        ]
        overall = "ok" if all(c.status == "available" for c in components) else "error"
        return HealthCheckResponse(status=overall, timestamp=utc_now(), components=components)

    async def _database_status(self) -> HealthComponentStatus:
        try:
            await self._session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning(
                "health.database.unavailable",
                extra=log_context(exception_type=type(exc).__name__),
            )
            return HealthComponentStatus(name="database", status="unavailable")
        return HealthComponentStatus(name="database", status="available")


__all__ = ["HealthService"]
