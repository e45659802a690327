from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.dependencies.auth import CurrentUser
from rbac_api.api.v1.dependencies.permissions import admin_required
from rbac_api.api.v1.schemas.common import MessageResponse
from rbac_api.api.v1.schemas.permission import Permission, PermissionList
from rbac_api.api.v1.schemas.role import Role, RoleCreate, RoleList, RolePermissionsUpdate, RoleUpdate
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.api.v1.services.role import RoleService
from rbac_api.core.db.session import get_db

router = APIRouter(prefix="", tags=["Roles"])


@router.get("", response_model=RoleList)
async def read_roles(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    roles = await RoleService.get_all_roles(db)
    return RoleList(roles=[Role.model_validate(role) for role in roles])


@router.post("", response_model=Role, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_in: RoleCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await RoleService.create_role(db, role_in)


@router.get("/{role_id}", response_model=Role)
async def read_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await RoleService.get_role_or_404(db, role_id)


@router.put("/{role_id}", response_model=Role)
async def update_role(
    role_id: str,
    role_in: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await RoleService.update_role(db, role_id, role_in)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await RoleService.delete_role(db, role_id)
    return MessageResponse(message="Role deleted successfully")


@router.get("/{role_id}/permissions", response_model=PermissionList)
async def read_role_permissions(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    role = await RoleService.get_role_or_404(db, role_id)
    return PermissionList(permissions=[Permission.model_validate(p) for p in role.permissions])


@router.put("/{role_id}/permissions", response_model=Role)
async def update_role_permissions(
    role_id: str,
    permissions_in: RolePermissionsUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await RBACService.set_role_permissions(db, role_id, permissions_in.permission_ids)
