from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.dependencies.auth import CurrentUser
from rbac_api.api.v1.dependencies.permissions import admin_required
from rbac_api.api.v1.schemas.common import MessageResponse
from rbac_api.api.v1.schemas.permission import Permission, PermissionCreate, PermissionList, PermissionUpdate
from rbac_api.api.v1.services.permission import PermissionService
from rbac_api.core.db.session import get_db

router = APIRouter(prefix="", tags=["Permissions"])


@router.get("", response_model=PermissionList)
async def read_permissions(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    permissions = await PermissionService.get_all_permissions(db)
    return PermissionList(permissions=[Permission.model_validate(p) for p in permissions])


@router.post("", response_model=Permission, status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission_in: PermissionCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await PermissionService.create_permission(db, permission_in)


@router.get("/{permission_id}", response_model=Permission)
async def read_permission(
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await PermissionService.get_permission_or_404(db, permission_id)


@router.put("/{permission_id}", response_model=Permission)
async def update_permission(
    permission_id: str,
    permission_in: PermissionUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await PermissionService.update_permission(db, permission_id, permission_in)


@router.delete("/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await PermissionService.delete_permission(db, permission_id)
    return MessageResponse(message="Permission deleted successfully")
