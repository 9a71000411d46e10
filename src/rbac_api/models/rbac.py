"""RBAC tables: permission catalog, tenant roles, grants, inheritance, assignments."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    false,
    text,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from rbac_api.core.conditions import condition_from_columns
from rbac_api.core.types import GrantCondition, RoleKind, RoleType
from rbac_api.db.base import Base
from rbac_api.db.enums import enum_values
from rbac_api.db.mixins import CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin
from rbac_api.db.types import UUIDType

role_type_enum = SAEnum(
    RoleType,
    name="role_type",
    native_enum=False,
    length=20,
    values_callable=enum_values,
)


class Permission(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Catalog entry for a checkable capability, shared by every tenant."""

    __tablename__ = "permissions"

    key: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    resource: Mapped[str] = mapped_column(String(120), nullable=False)
    action: Mapped[str] = mapped_column(String(120), nullable=False)
    scope: Mapped[str | None] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        CheckConstraint("length(resource) > 0", name="resource_present"),
        CheckConstraint("length(action) > 0", name="action_present"),
    )


class Role(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Named bundle of permissions inside one tenant."""

    __tablename__ = "roles"

    tenant_id: Mapped[UUID] = mapped_column(UUIDType(), nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    role_type: Mapped[RoleType] = mapped_column(
        role_type_enum,
        nullable=False,
        default=RoleType.CUSTOM,
    )
    is_system_role: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
        Index("ix_roles_tenant_id", "tenant_id"),
        Index(
            "ux_roles_tenant_owner",
            "tenant_id",
            unique=True,
            sqlite_where=text("role_type = 'owner'"),
            postgresql_where=text("role_type = 'owner'"),
        ),
    )

    @property
    def kind(self) -> RoleKind:
        return RoleKind.of(self.role_type)

    @property
    def is_protected(self) -> bool:
        return self.is_system_role or self.kind is RoleKind.OWNER


class RolePermission(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """Grant of one permission to one role, optionally restricted by a condition."""

    __tablename__ = "role_permissions"

    role_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("roles.id", ondelete="NO ACTION"), nullable=False
    )
    permission_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("permissions.id", ondelete="NO ACTION"), nullable=False
    )
    condition_field: Mapped[str | None] = mapped_column(String(200), nullable=True)
    condition_operator: Mapped[str | None] = mapped_column(String(10), nullable=True)
    condition_value: Mapped[Any | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_pair"),
        Index("ix_role_permissions_permission_id", "permission_id"),
        CheckConstraint(
            "(condition_field IS NULL AND condition_operator IS NULL) OR "
            "(condition_field IS NOT NULL AND condition_operator IS NOT NULL)",
            name="condition_complete",
        ),
    )

    @property
    def condition(self) -> GrantCondition | None:
        return condition_from_columns(
            self.condition_field, self.condition_operator, self.condition_value
        )

    def apply_condition(self, condition: GrantCondition | None) -> None:
        if condition is None:
            self.condition_field = None
            self.condition_operator = None
            self.condition_value = None
            return
        self.condition_field = condition.field
        self.condition_operator = condition.operator.value
        self.condition_value = condition.value


class RoleInheritance(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """Edge stating that ``parent_role_id`` inherits every permission of ``child_role_id``."""

    __tablename__ = "role_inheritance"

    tenant_id: Mapped[UUID] = mapped_column(UUIDType(), nullable=False)
    parent_role_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("roles.id", ondelete="NO ACTION"), nullable=False
    )
    child_role_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("roles.id", ondelete="NO ACTION"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("parent_role_id", "child_role_id", name="uq_role_inheritance_edge"),
        CheckConstraint("parent_role_id <> child_role_id", name="no_self_loop"),
        Index("ix_role_inheritance_tenant_id", "tenant_id"),
        Index("ix_role_inheritance_child_role_id", "child_role_id"),
    )


class UserRole(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """Assignment of a role to a user inside a tenant.

    Users live in an external directory; ``user_id`` is not a foreign key.
    """

    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(UUIDType(), nullable=False)
    role_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("roles.id", ondelete="NO ACTION"), nullable=False
    )
    tenant_id: Mapped[UUID] = mapped_column(UUIDType(), nullable=False)
    assigned_by: Mapped[UUID | None] = mapped_column(UUIDType(), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
        Index("ix_user_roles_tenant_user", "tenant_id", "user_id"),
        Index("ix_user_roles_role_id", "role_id"),
    )


__all__ = [
    "Permission",
    "Role",
    "RoleInheritance",
    "RolePermission",
    "UserRole",
    "role_type_enum",
]
