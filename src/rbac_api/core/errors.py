"""Domain errors raised by the RBAC services.

Routers translate these into HTTP responses; services never raise
``HTTPException`` themselves.
"""

from __future__ import annotations


class RbacError(ValueError):
    """Base class for every access-control domain error."""


class ValidationError(RbacError):
    """A required field is missing or a unique field collides."""


class NotFoundError(RbacError):
    """A referenced role, permission or grant does not exist in the tenant."""


class CycleError(RbacError):
    """Adding an inheritance edge would create a cycle."""


class ImmutableRoleError(RbacError):
    """A protected role (owner or system) was asked to change."""


class ConflictError(RbacError):
    """A unique row was inserted concurrently."""


class ReferentialIntegrityError(RbacError):
    """The record is still referenced and cannot be deleted."""


class ServerError(RbacError):
    """Unexpected storage failure; the message is safe to return to callers."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


__all__ = [
    "ConflictError",
    "CycleError",
    "ImmutableRoleError",
    "NotFoundError",
    "RbacError",
    "ReferentialIntegrityError",
    "ServerError",
    "ValidationError",
]
