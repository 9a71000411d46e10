"""Default permission catalog and built-in tenant roles.

Seeded by ``rbac-api seed-permissions`` and ``rbac-api bootstrap-tenant``.
Tenants are free to edit the catalog afterwards through the API.
"""

from __future__ import annotations

from rbac_api.core.types import PermissionDef, RoleType, SystemRoleDef


def _permission(
    *,
    key: str,
    name: str,
    description: str,
    resource: str | None = None,
    action: str | None = None,
    scope: str | None = None,
) -> PermissionDef:
    if resource is None or action is None:
        parts = key.split(".")
        resource = resource or parts[0]
        action = action or (parts[1] if len(parts) > 1 else key)
        if scope is None and len(parts) > 2:
            scope = ".".join(parts[2:])
    return PermissionDef(
        key=key,
        name=name,
        resource=resource,
        action=action,
        description=description,
        scope=scope,
    )


PERMISSIONS: tuple[PermissionDef, ...] = (
    # Orders --------------------------------------------------------------
    _permission(key="orders.view", name="View Orders", description="View all orders"),
    _permission(
        key="orders.view.own",
        name="View Own Orders",
        description="View orders assigned to user",
    ),
    _permission(key="orders.create", name="Create Orders", description="Create new orders"),
    _permission(key="orders.update", name="Update Orders", description="Update order details"),
    _permission(
        key="orders.update.status",
        name="Update Order Status",
        description="Change order status",
    ),
    _permission(key="orders.delete", name="Delete Orders", description="Delete orders"),
    # Menu ----------------------------------------------------------------
    _permission(key="menu.view", name="View Menu", description="View menu items and categories"),
    _permission(key="menu.manage", name="Manage Menu", description="Add, edit, delete menu items"),
    _permission(
        key="menu.categories.manage",
        name="Manage Categories",
        description="Add, edit, delete categories",
        action="categories",
        scope="manage",
    ),
    # Tables --------------------------------------------------------------
    _permission(key="tables.view", name="View Tables", description="View table list"),
    _permission(key="tables.manage", name="Manage Tables", description="Add, edit, delete tables"),
    _permission(
        key="tables.sessions.view",
        name="View Table Sessions",
        description="View active sessions",
        action="sessions",
        scope="view",
    ),
    _permission(
        key="tables.sessions.manage",
        name="Manage Table Sessions",
        description="Close sessions, process payments",
        action="sessions",
        scope="manage",
    ),
    # Billing -------------------------------------------------------------
    _permission(key="billing.view", name="View Billing", description="View bills and payments"),
    _permission(key="billing.collect", name="Collect Payment", description="Process payments"),
    _permission(key="billing.refund", name="Process Refunds", description="Issue refunds"),
    # Reports -------------------------------------------------------------
    _permission(key="reports.view", name="View Reports", description="View analytics and reports"),
    _permission(key="reports.export", name="Export Reports", description="Export data to files"),
    # Users & roles -------------------------------------------------------
    _permission(key="users.view", name="View Users", description="View staff members"),
    _permission(key="users.manage", name="Manage Users", description="Add, edit, remove staff"),
    _permission(
        key="users.assign_roles",
        name="Assign Roles",
        description="Assign roles to users",
    ),
    _permission(key="roles.view", name="View Roles", description="View role definitions"),
    _permission(
        key="roles.manage",
        name="Manage Roles",
        description="Create, edit roles and permissions",
    ),
    # Settings ------------------------------------------------------------
    _permission(key="settings.view", name="View Settings", description="View tenant settings"),
    _permission(key="settings.manage", name="Manage Settings", description="Edit tenant settings"),
)

OWNER_ROLE_NAME = "Owner"

SYSTEM_ROLES: tuple[SystemRoleDef, ...] = (
    SystemRoleDef(
        role_type=RoleType.ADMIN,
        name="Admin",
        description="Tenant administrator with every catalog permission.",
        permissions=tuple(defn.key for defn in PERMISSIONS),
    ),
    SystemRoleDef(
        role_type=RoleType.MANAGER,
        name="Manager",
        description="Runs daily operations: menu, orders, tables and reports.",
        permissions=(
            "menu.view",
            "menu.manage",
            "menu.categories.manage",
            "orders.view",
            "orders.update",
            "orders.update.status",
            "billing.view",
            "billing.collect",
            "reports.view",
            "reports.export",
            "tables.view",
            "tables.manage",
            "tables.sessions.view",
            "tables.sessions.manage",
            "users.view",
        ),
    ),
    SystemRoleDef(
        role_type=RoleType.SUPERVISOR,
        name="Supervisor",
        description="Oversees service on the floor.",
        permissions=(
            "menu.view",
            "orders.view",
            "orders.update.status",
            "billing.view",
            "tables.view",
            "tables.sessions.view",
        ),
    ),
    SystemRoleDef(
        role_type=RoleType.CASHIER,
        name="Cashier",
        description="Collects payments and closes table sessions.",
        permissions=(
            "orders.view",
            "billing.view",
            "billing.collect",
            "tables.view",
            "tables.sessions.view",
            "tables.sessions.manage",
        ),
    ),
    SystemRoleDef(
        role_type=RoleType.WAITER,
        name="Waiter",
        description="Takes orders at the table.",
        permissions=(
            "menu.view",
            "orders.view",
            "orders.create",
            "tables.view",
            "tables.sessions.view",
        ),
    ),
    SystemRoleDef(
        role_type=RoleType.KITCHEN,
        name="Kitchen",
        description="Prepares orders and updates their status.",
        permissions=("orders.view", "orders.update.status"),
    ),
)

__all__ = [
    "OWNER_ROLE_NAME",
    "PERMISSIONS",
    "SYSTEM_ROLES",
]
