from rbac_api.api.v1.dependencies.auth import CurrentUser, get_current_user
from rbac_api.api.v1.dependencies.permissions import (
    admin_required,
    require_admin,
    require_all_roles,
    require_any_role,
    require_permission,
    require_permissions,
    require_role,
    require_roles,
)

__all__ = [
    "CurrentUser",
    "get_current_user",
    "admin_required",
    "require_admin",
    "require_all_roles",
    "require_any_role",
    "require_permission",
    "require_permissions",
    "require_role",
    "require_roles",
]
