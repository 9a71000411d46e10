"""FastAPI lifespan helpers for the RBAC application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import Lifespan

from rbac_api.common.logging import log_context
from rbac_api.db import DatabaseConfig, db
from rbac_api.settings import Settings

logger = logging.getLogger(__name__)


def create_application_lifespan(*, settings: Settings) -> Lifespan[FastAPI]:
    """Return the lifespan handler: open the engine on startup, dispose it on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        cfg = DatabaseConfig.from_settings(settings)
        db.init(cfg)
        logger.info(
            "app.startup",
            extra=log_context(
                app_version=settings.app_version,
                database=db.engine.url.get_backend_name(),
            ),
        )
        try:
            yield
        finally:
            await db.dispose()
            logger.info("app.shutdown")

    return lifespan


__all__ = ["create_application_lifespan"]
