from typing import List, Optional

from fastapi import HTTPException, status
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.models.permission import ADMIN_ACCESS_PERMISSION, Permission as PermissionModel
from rbac_api.api.v1.models.role_permission import RolePermission
from rbac_api.api.v1.schemas.permission import PermissionCreate, PermissionUpdate
from rbac_api.api.v1.validators.permission import ensure_unique_permission_name


class PermissionService:

    @staticmethod
    async def get_all_permissions(db: AsyncSession) -> List[PermissionModel]:
        result = await db.execute(
            select(PermissionModel).order_by(PermissionModel.resource, PermissionModel.action)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_permission(db: AsyncSession, permission_id: str) -> Optional[PermissionModel]:
        return await db.get(PermissionModel, permission_id)

    @staticmethod
    async def get_permission_or_404(db: AsyncSession, permission_id: str) -> PermissionModel:
        permission = await PermissionService.get_permission(db, permission_id)
        if not permission:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Permission not found")
        return permission

    @staticmethod
    async def create_permission(db: AsyncSession, permission_in: PermissionCreate) -> PermissionModel:
        await ensure_unique_permission_name(permission_in.name, db)
        permission = PermissionModel(**permission_in.model_dump())
        db.add(permission)
        await db.commit()
        await db.refresh(permission)
        logger.info(f"Created permission {permission.name}")
        return permission

    @staticmethod
    async def update_permission(db: AsyncSession, permission_id: str, permission_in: PermissionUpdate) -> PermissionModel:
        permission = await PermissionService.get_permission_or_404(db, permission_id)
        changes = permission_in.model_dump(exclude_unset=True)
        if not changes:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
        for required in ("name", "resource", "action"):
            if required in changes and changes[required] is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{required} cannot be empty")
        if "name" in changes and changes["name"] != permission.name:
            if permission.name == ADMIN_ACCESS_PERMISSION:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Cannot rename {ADMIN_ACCESS_PERMISSION} permission"
                )
            await ensure_unique_permission_name(changes["name"], db, exclude_permission_id=permission.id)
        for key, value in changes.items():
            setattr(permission, key, value)
        await db.commit()
        await db.refresh(permission)
        return permission

    @staticmethod
    async def delete_permission(db: AsyncSession, permission_id: str) -> None:
        permission = await PermissionService.get_permission_or_404(db, permission_id)
        if permission.name == ADMIN_ACCESS_PERMISSION:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete {ADMIN_ACCESS_PERMISSION} permission"
            )
        await db.execute(delete(RolePermission).where(RolePermission.permission_id == permission.id))
        await db.delete(permission)
        await db.commit()
        logger.info(f"Deleted permission {permission.name}")
