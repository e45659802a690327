from typing import List, Optional

from fastapi import HTTPException, status
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.models.role import Role as RoleModel
from rbac_api.api.v1.models.role_permission import RolePermission
from rbac_api.api.v1.models.user_role import UserRole
from rbac_api.api.v1.schemas.role import RoleCreate, RoleUpdate
from rbac_api.api.v1.validators.role import (
    ensure_not_system_role,
    ensure_system_role_not_renamed,
    ensure_unique_role_name,
)


class RoleService:

    @staticmethod
    async def get_all_roles(db: AsyncSession) -> List[RoleModel]:
        result = await db.execute(select(RoleModel).order_by(RoleModel.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_role(db: AsyncSession, role_id: str) -> Optional[RoleModel]:
        result = await db.execute(select(RoleModel).where(RoleModel.id == role_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_role_or_404(db: AsyncSession, role_id: str) -> RoleModel:
        role = await RoleService.get_role(db, role_id)
        if not role:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
        return role

    @staticmethod
    async def create_role(db: AsyncSession, role_in: RoleCreate) -> RoleModel:
        await ensure_unique_role_name(role_in.name, db)
        role = RoleModel(**role_in.model_dump())
        db.add(role)
        await db.commit()
        await db.refresh(role)
        logger.info(f"Created role {role.name}")
        return role

    @staticmethod
    async def update_role(db: AsyncSession, role_id: str, role_in: RoleUpdate) -> RoleModel:
        role = await RoleService.get_role_or_404(db, role_id)
        changes = role_in.model_dump(exclude_unset=True)
        if not changes:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
        if "name" in changes:
            if changes["name"] is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role name cannot be empty")
            ensure_system_role_not_renamed(role, changes["name"])
            await ensure_unique_role_name(changes["name"], db, exclude_role_id=role.id)
        for key, value in changes.items():
            setattr(role, key, value)
        await db.commit()
        await db.refresh(role)
        return role

    @staticmethod
    async def delete_role(db: AsyncSession, role_id: str) -> None:
        """
        Deletes a role together with every grant of it and every permission
        attached to it. System roles cannot be deleted.
        """
        role = await RoleService.get_role_or_404(db, role_id)
        ensure_not_system_role(role)
        await db.execute(delete(UserRole).where(UserRole.role_id == role.id))
        await db.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
        await db.delete(role)
        await db.commit()
        logger.info(f"Deleted role {role.name}")
