"""ORM models; importing this package registers every table on ``Base.metadata``."""

from .rbac import Permission, Role, RoleInheritance, RolePermission, UserRole

__all__ = [
    "Permission",
    "Role",
    "RoleInheritance",
    "RolePermission",
    "UserRole",
]
