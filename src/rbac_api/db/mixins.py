"""Reusable SQLAlchemy mixins for RBAC models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from rbac_api.common.ids import generate_uuid7
from rbac_api.common.time import utc_now
from rbac_api.db.types import UTCDateTime, UUIDType

__all__ = ["CreatedAtMixin", "TimestampMixin", "UUIDPrimaryKeyMixin"]


class UUIDPrimaryKeyMixin:
    """Mixin that supplies a UUIDv7-backed primary key column."""

    @declared_attr.directive
    def id(cls) -> Mapped[UUID]:  # noqa: N805 - SQLAlchemy declared attr
        return mapped_column(
            "id",
            UUIDType(),
            primary_key=True,
            default=generate_uuid7,
        )


class CreatedAtMixin:
    """Insert-only timestamp for association rows."""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
    )


class TimestampMixin(CreatedAtMixin):
    """Created/updated timestamps as timezone-aware datetimes."""

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )
