from typing import Iterable, List

from fastapi import Depends, HTTPException, status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.dependencies.auth import CurrentUser, get_current_user
from rbac_api.api.v1.models.role import ADMIN_ROLE
from rbac_api.api.v1.security.access import Match, check_permissions, check_roles
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.core.db.session import get_db

NO_ROLES = "Access denied: no roles found"
INSUFFICIENT = "Access denied: insufficient permissions"


def forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def require_roles(roles: Iterable[str], match: Match = Match.ALL):
    match = Match(match)
    required: List[str] = list(roles)

    async def role_guard(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not current_user.roles:
            raise forbidden(NO_ROLES)
        if not check_roles(current_user.roles, required, match):
            logger.info(f"User {current_user.id} denied, needs {match.value} of {required}, has {current_user.roles}")
            raise forbidden(INSUFFICIENT)
        return current_user

    return role_guard


def require_role(role: str):
    return require_roles([role], Match.ALL)


def require_any_role(roles: Iterable[str]):
    return require_roles(roles, Match.ANY)


def require_all_roles(roles: Iterable[str]):
    return require_roles(roles, Match.ALL)


def require_admin():
    return require_role(ADMIN_ROLE)


def require_permissions(permissions: Iterable[str], match: Match = Match.ALL):
    match = Match(match)
    required: List[str] = list(permissions)

    async def permission_guard(
        current_user: CurrentUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> CurrentUser:
        if not current_user.roles:
            raise forbidden(NO_ROLES)
        user_id = current_user.id
        try:
            held = await RBACService.get_user_permission_names(db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load permissions for user {user_id}: {e}")
            await db.rollback()
            held = []
        if not check_permissions(held, required, match):
            logger.info(f"User {user_id} denied, needs {match.value} of {required}")
            raise forbidden(INSUFFICIENT)
        return current_user

    return permission_guard


def require_permission(permission: str):
    return require_permissions([permission], Match.ALL)


admin_required = require_admin()
