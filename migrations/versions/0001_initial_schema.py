"""Initial RBAC schema: permissions, roles, grants, inheritance, user roles.

Identifiers are UUIDv7 values generated in the application layer by
:func:`rbac_api.common.ids.generate_uuid7`.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import sqlalchemy as sa
from alembic import op
from sqlalchemy.types import CHAR, TypeDecorator

# Revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision: Optional[str] = None
branch_labels: Optional[str] = None
depends_on: Optional[str] = None


# ---------------------------------------------------------------------------
# Types / enums
# ---------------------------------------------------------------------------


class UUIDType(TypeDecorator):
    """Frozen copy of the UUID column type as of this revision."""

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect: Any):
        if dialect.name in {"postgresql", "postgres"}:
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect: Any):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value: Any, dialect: Any):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


ROLE_TYPE = sa.Enum(
    "owner",
    "admin",
    "manager",
    "supervisor",
    "cashier",
    "waiter",
    "kitchen",
    "custom",
    name="role_type",
    native_enum=False,
    create_constraint=True,
    length=20,
)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def upgrade() -> None:
    _create_permissions()
    _create_roles()
    _create_role_permissions()
    _create_role_inheritance()
    _create_user_roles()


def downgrade() -> None:
    op.drop_table("user_roles")
    op.drop_table("role_inheritance")
    op.drop_table("role_permissions")
    op.drop_table("roles")
    op.drop_table("permissions")


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def _uuid_pk(name: str = "id") -> sa.Column:
    """UUID primary key column; no server default, ids come from the app."""
    return sa.Column(name, UUIDType(), primary_key=True, nullable=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _timestamps() -> tuple[sa.Column, sa.Column]:
    """Common created_at / updated_at pair."""
    return (
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def _role_fk(name: str) -> sa.Column:
    return sa.Column(
        name,
        UUIDType(),
        sa.ForeignKey("roles.id", ondelete="NO ACTION", name=f"fk_{name}_roles"),
        nullable=False,
    )


def _create_permissions() -> None:
    op.create_table(
        "permissions",
        _uuid_pk(),
        sa.Column("key", sa.String(length=120), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("resource", sa.String(length=120), nullable=False),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("scope", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("length(resource) > 0", name="permissions_resource_present_check"),
        sa.CheckConstraint("length(action) > 0", name="permissions_action_present_check"),
    )


def _create_roles() -> None:
    op.create_table(
        "roles",
        _uuid_pk(),
        sa.Column("tenant_id", UUIDType(), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("role_type", ROLE_TYPE, nullable=False, server_default="custom"),
        sa.Column(
            "is_system_role",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
    )
    op.create_index("ix_roles_tenant_id", "roles", ["tenant_id"], unique=False)
    op.create_index(
        "ux_roles_tenant_owner",
        "roles",
        ["tenant_id"],
        unique=True,
        sqlite_where=sa.text("role_type = 'owner'"),
        postgresql_where=sa.text("role_type = 'owner'"),
    )


def _create_role_permissions() -> None:
    op.create_table(
        "role_permissions",
        _uuid_pk(),
        _role_fk("role_id"),
        sa.Column(
            "permission_id",
            UUIDType(),
            sa.ForeignKey(
                "permissions.id",
                ondelete="NO ACTION",
                name="fk_permission_id_permissions",
            ),
            nullable=False,
        ),
        sa.Column("condition_field", sa.String(length=200), nullable=True),
        sa.Column("condition_operator", sa.String(length=10), nullable=True),
        sa.Column("condition_value", sa.JSON(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_pair"),
        sa.CheckConstraint(
            "(condition_field IS NULL AND condition_operator IS NULL) OR "
            "(condition_field IS NOT NULL AND condition_operator IS NOT NULL)",
            name="role_permissions_condition_complete_check",
        ),
    )
    op.create_index(
        "ix_role_permissions_permission_id",
        "role_permissions",
        ["permission_id"],
        unique=False,
    )


def _create_role_inheritance() -> None:
    op.create_table(
        "role_inheritance",
        _uuid_pk(),
        sa.Column("tenant_id", UUIDType(), nullable=False),
        _role_fk("parent_role_id"),
        _role_fk("child_role_id"),
        _created_at(),
        sa.UniqueConstraint(
            "parent_role_id", "child_role_id", name="uq_role_inheritance_edge"
        ),
        sa.CheckConstraint(
            "parent_role_id <> child_role_id",
            name="role_inheritance_no_self_loop_check",
        ),
    )
    op.create_index(
        "ix_role_inheritance_tenant_id", "role_inheritance", ["tenant_id"], unique=False
    )
    op.create_index(
        "ix_role_inheritance_child_role_id",
        "role_inheritance",
        ["child_role_id"],
        unique=False,
    )


def _create_user_roles() -> None:
    op.create_table(
        "user_roles",
        _uuid_pk(),
        sa.Column("user_id", UUIDType(), nullable=False),
        _role_fk("role_id"),
        sa.Column("tenant_id", UUIDType(), nullable=False),
        sa.Column("assigned_by", UUIDType(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )
    op.create_index(
        "ix_user_roles_tenant_user", "user_roles", ["tenant_id", "user_id"], unique=False
    )
    op.create_index("ix_user_roles_role_id", "user_roles", ["role_id"], unique=False)
