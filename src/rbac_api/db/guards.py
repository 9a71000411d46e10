"""Translate unexpected storage failures into :class:`ServerError`."""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from rbac_api.common.logging import log_context
from rbac_api.core.errors import ServerError

logger = logging.getLogger("rbac_api.storage")

P = ParamSpec("P")
R = TypeVar("R")


def storage_guard(
    operation: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Log ``SQLAlchemyError`` with the operation and ids involved, then raise ``ServerError``.

    Domain errors pass through untouched. Identifiers are taken from UUID
    keyword arguments and from a ``tenant_id`` attribute on the bound service.
    """

    def decorator(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await fn(*args, **kwargs)
            except SQLAlchemyError as exc:
                ids: dict[str, Any] = {
                    key: str(value) for key, value in kwargs.items() if isinstance(value, UUID)
                }
                tenant_id = getattr(args[0], "tenant_id", None) if args else None
                ids.setdefault("tenant_id", tenant_id)
                logger.error(
                    "rbac.storage.failure",
                    exc_info=exc,
                    extra=log_context(
                        operation=operation,
                        exception_type=type(exc).__name__,
                        **ids,
                    ),
                )
                raise ServerError() from exc

        return wrapper

    return decorator


__all__ = ["storage_guard"]
