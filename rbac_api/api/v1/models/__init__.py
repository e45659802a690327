from rbac_api.api.v1.models.user import User
from rbac_api.api.v1.models.role import Role
from rbac_api.api.v1.models.permission import Permission
from rbac_api.api.v1.models.user_role import UserRole
from rbac_api.api.v1.models.role_permission import RolePermission
from rbac_api.api.v1.models.password_reset_token import PasswordResetToken
from rbac_api.api.v1.models.email_template import EmailTemplate

__all__ = [
    "User",
    "Role",
    "Permission",
    "UserRole",
    "RolePermission",
    "PasswordResetToken",
    "EmailTemplate",
]
