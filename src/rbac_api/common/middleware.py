"""Request correlation middleware."""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .logging import bind_request_context, clear_request_context, log_context

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_LOGGER = logging.getLogger("rbac_api.request")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the caller's request id (or a fresh one) and log each request once."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        bind_request_context(request_id)
        started = time.perf_counter()
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            _REQUEST_LOGGER.log(
                logging.INFO if status_code is not None else logging.ERROR,
                "request.complete" if status_code is not None else "request.error",
                extra=log_context(
                    method=request.method,
                    path=request.url.path,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
                ),
            )
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def register_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestContextMiddleware)


__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "register_middleware"]
