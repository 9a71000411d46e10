"""Centralized FastAPI exception handlers with structured logging."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from rbac_api.common.logging import log_context
from rbac_api.core.errors import ConflictError, ServerError

_UNHANDLED_LOGGER = logging.getLogger("rbac_api.errors")
_HTTP_LOGGER = logging.getLogger("rbac_api.http")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected exceptions.

    Registered as the ``Exception`` handler. Any unhandled error results in a
    JSON 500 response and an ERROR log with a stack trace.
    """
    _UNHANDLED_LOGGER.exception(
        "unhandled_exception",
        extra=log_context(
            path=str(request.url.path),
            method=request.method,
            exception_type=type(exc).__name__,
            detail=str(exc),
        ),
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


async def server_error_handler(request: Request, exc: ServerError) -> JSONResponse:
    """Return storage failures as a generic 500.

    The service layer already logged the operation and ids involved.
    """
    _HTTP_LOGGER.error(
        "server_error",
        extra=log_context(path=str(request.url.path), method=request.method),
    )
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    """Concurrent writes that could not be reconciled surface as 409."""
    _HTTP_LOGGER.warning(
        "conflict_error",
        extra=log_context(path=str(request.url.path), method=request.method, detail=str(exc)),
    )
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException instances.

    4xx responses are returned without logging; 5xx responses are logged at
    ERROR level.
    """
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "http_exception",
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=exc.status_code,
                detail=exc.detail,
            ),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(ConflictError, conflict_error_handler)
    app.add_exception_handler(ServerError, server_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "conflict_error_handler",
    "http_exception_handler",
    "register_exception_handlers",
    "server_error_handler",
    "unhandled_exception_handler",
]
