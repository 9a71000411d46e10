"""Pydantic schemas for the health module."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from rbac_api.common.schema import BaseSchema


class HealthComponentStatus(BaseSchema):
    name: str = Field(..., description="Component identifier.")
    status: Literal["available", "unavailable"] = Field(
        ..., description="High-level component status flag."
    )
    detail: str | None = Field(default=None, description="Optional note about the component.")


class HealthCheckResponse(BaseSchema):
    """Payload returned by ``GET /api/v1/health``."""

    status: Literal["ok", "error"] = Field(..., description="Overall health indicator.")
    timestamp: datetime = Field(..., description="UTC time the check executed.")
    components: list[HealthComponentStatus] = Field(default_factory=list)


__all__ = ["HealthCheckResponse", "HealthComponentStatus"]
