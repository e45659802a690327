"""
Role and permission resolution.

Every call reads straight from the database so that grants, revocations and
expiries take effect on the next request.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status
from loguru import logger
from sqlalchemy import and_, delete, exists, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rbac_api.api.v1.models.permission import ADMIN_ACCESS_PERMISSION, Permission
from rbac_api.api.v1.models.role import ADMIN_ROLE, Role
from rbac_api.api.v1.models.role_permission import RolePermission
from rbac_api.api.v1.models.user import User
from rbac_api.api.v1.models.user_role import UserRole
from rbac_api.core.db import as_utc, utcnow


def active_assignment_clause(now: Optional[datetime] = None):
    """SQL filter for assignments that have not expired at ``now``."""
    now = now or utcnow()
    return or_(UserRole.expires_at.is_(None), UserRole.expires_at > now)


class RBACService:
    @staticmethod
    async def get_active_role_names(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> List[str]:
        """
        Returns the sorted names of the user's roles whose assignment is still active.
        """
        result = await db.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id, active_assignment_clause(now))
            .order_by(Role.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_active_role_names_for_users(db: AsyncSession, user_ids: Iterable[str]) -> Dict[str, List[str]]:
        """
        Batch variant of get_active_role_names for list endpoints.
        """
        user_ids = list(user_ids)
        roles: Dict[str, List[str]] = {user_id: [] for user_id in user_ids}
        if not user_ids:
            return roles
        result = await db.execute(
            select(UserRole.user_id, Role.name)
            .join(Role, Role.id == UserRole.role_id)
            .where(UserRole.user_id.in_(user_ids), active_assignment_clause())
            .order_by(Role.name)
        )
        for user_id, role_name in result.all():
            roles[user_id].append(role_name)
        return roles

    @staticmethod
    async def resolve_roles(db: AsyncSession, user_id: str) -> List[str]:
        """
        Role lookup used by the authentication dependency.
        A failed lookup is logged and yields no roles, so role checks deny.
        """
        try:
            return await RBACService.get_active_role_names(db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load roles for user {user_id}: {e}")
            await db.rollback()
            return []

    @staticmethod
    async def get_user_assignments(db: AsyncSession, user_id: str) -> List[UserRole]:
        result = await db.execute(
            select(UserRole)
            .options(selectinload(UserRole.role))
            .where(UserRole.user_id == user_id)
            .order_by(UserRole.granted_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_user_permissions(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> List[Permission]:
        """
        Returns the distinct permissions granted through the user's active roles.
        """
        result = await db.execute(
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .where(UserRole.user_id == user_id, active_assignment_clause(now))
            .distinct()
            .order_by(Permission.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_user_permission_names(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> List[str]:
        permissions = await RBACService.get_user_permissions(db, user_id, now)
        return [permission.name for permission in permissions]

    @staticmethod
    async def has_permission(db: AsyncSession, user_id: str, permission_name: str) -> bool:
        query = select(
            exists()
            .where(
                and_(
                    Permission.name == permission_name,
                    RolePermission.permission_id == Permission.id,
                    UserRole.role_id == RolePermission.role_id,
                    UserRole.user_id == user_id,
                    active_assignment_clause(),
                )
            )
        )
        result = await db.execute(query)
        return bool(result.scalar())

    @staticmethod
    async def get_role_by_name(db: AsyncSession, name: str) -> Optional[Role]:
        result = await db.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    @staticmethod
    async def assign_role(
        db: AsyncSession,
        user_id: str,
        role_name: str,
        granted_by: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> UserRole:
        """
        Grants a role to a user.

        Granting a role the user already actively holds changes nothing and
        returns the existing assignment. An expired assignment is renewed with
        the new grantor and expiry.
        """
        await RBACService._get_user_or_404(db, user_id)
        role = await RBACService.get_role_by_name(db, role_name)
        if role is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")

        now = utcnow()
        if expires_at is not None:
            expires_at = as_utc(expires_at)
            if expires_at <= now:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="expires_at must be in the future"
                )

        assignment = await db.get(UserRole, (user_id, role.id))
        if assignment is not None and assignment.is_active(now):
            return assignment

        if assignment is None:
            assignment = UserRole(user_id=user_id, role_id=role.id)
            db.add(assignment)
        assignment.granted_at = now
        assignment.granted_by = granted_by
        assignment.expires_at = expires_at
        await db.commit()
        logger.info(f"Role {role_name} granted to user {user_id} by {granted_by or 'system'}")
        return assignment

    @staticmethod
    async def remove_role(db: AsyncSession, user_id: str, role_name: str) -> None:
        role = await RBACService.get_role_by_name(db, role_name)
        if role is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
        assignment = await db.get(UserRole, (user_id, role.id))
        if assignment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User does not have this role")
        await db.delete(assignment)
        await db.commit()
        logger.info(f"Role {role_name} removed from user {user_id}")

    @staticmethod
    async def set_user_roles(
        db: AsyncSession,
        user_id: str,
        role_names: Iterable[str],
        granted_by: Optional[str] = None,
    ) -> List[str]:
        """
        Replaces the user's roles with exactly ``role_names`` in one transaction.
        Assignments for roles the user keeps retain their grant history.
        """
        await RBACService._get_user_or_404(db, user_id)
        wanted = list(dict.fromkeys(role_names))
        result = await db.execute(select(Role).where(Role.name.in_(wanted)))
        roles = {role.name: role for role in result.scalars().all()}
        for name in wanted:
            if name not in roles:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"role not found: {name}")

        now = utcnow()
        wanted_ids = {role.id for role in roles.values()}
        current = {a.role_id: a for a in await RBACService.get_user_assignments(db, user_id)}
        try:
            for role_id, assignment in current.items():
                if role_id not in wanted_ids:
                    await db.delete(assignment)
                elif assignment.is_expired(now):
                    assignment.granted_at = now
                    assignment.granted_by = granted_by
                    assignment.expires_at = None
            for role_id in wanted_ids - set(current):
                db.add(UserRole(user_id=user_id, role_id=role_id, granted_at=now, granted_by=granted_by))
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        logger.info(f"Roles of user {user_id} set to {sorted(roles)} by {granted_by or 'system'}")
        return sorted(roles)

    @staticmethod
    async def set_role_permissions(db: AsyncSession, role_id: str, permission_ids: Iterable[str]) -> Role:
        """
        Replaces the permissions granted to a role.
        The admin role always keeps admin.access.
        """
        role = await db.get(Role, role_id)
        if role is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")

        wanted = list(dict.fromkeys(permission_ids))
        result = await db.execute(select(Permission).where(Permission.id.in_(wanted)))
        permissions = {permission.id: permission for permission in result.scalars().all()}
        for permission_id in wanted:
            if permission_id not in permissions:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"permission not found: {permission_id}"
                )
        if role.name == ADMIN_ROLE and ADMIN_ACCESS_PERMISSION not in {p.name for p in permissions.values()}:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot remove {ADMIN_ACCESS_PERMISSION} permission from admin role"
            )

        existing = set(
            (await db.execute(
                select(RolePermission.permission_id).where(RolePermission.role_id == role_id)
            )).scalars().all()
        )
        try:
            stale = existing - set(permissions)
            if stale:
                await db.execute(
                    delete(RolePermission).where(
                        RolePermission.role_id == role_id,
                        RolePermission.permission_id.in_(stale),
                    )
                )
            for permission_id in set(permissions) - existing:
                db.add(RolePermission(role_id=role_id, permission_id=permission_id))
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        await db.refresh(role, attribute_names=["permissions"])
        return role
