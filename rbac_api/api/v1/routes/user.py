from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.dependencies.auth import CurrentUser
from rbac_api.api.v1.dependencies.permissions import admin_required
from rbac_api.api.v1.schemas.common import MessageResponse
from rbac_api.api.v1.schemas.permission import Permission
from rbac_api.api.v1.schemas.user import (
    AssignRoleRequest,
    PermissionCheck,
    RoleAssignment,
    UpdateRolesRequest,
    User,
    UserCreate,
    UserList,
    UserPermissions,
    UserUpdate,
)
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.api.v1.services.user import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, UserService, to_user_schema
from rbac_api.core.db.session import get_db

router = APIRouter(prefix="", tags=["Users"])


@router.get("", response_model=UserList)
async def read_users(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    search: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_desc: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    users, total, roles = await UserService.list_users(db, page, limit, search, sort_by, sort_desc)
    limit = min(limit, MAX_PAGE_SIZE)
    return UserList(
        users=[to_user_schema(user, roles.get(user.id, [])) for user in users],
        total=total,
        page=page,
        limit=limit,
        total_pages=UserService.total_pages(total, limit),
    )


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    user = await UserService.create_user(db, user_in, granted_by=admin.id)
    return to_user_schema(user, await RBACService.get_active_role_names(db, user.id))


@router.get("/{user_id}", response_model=User)
async def read_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    user = await UserService.get_user_or_404(db, user_id)
    return to_user_schema(user, await RBACService.get_active_role_names(db, user.id))


@router.put("/{user_id}", response_model=User)
async def update_user(
    user_id: str,
    user_in: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    user = await UserService.update_user(db, user_id, user_in)
    return to_user_schema(user, await RBACService.get_active_role_names(db, user.id))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await UserService.delete_user(db, user_id, acting_user_id=admin.id)
    return MessageResponse(message="User deleted successfully")


@router.get("/{user_id}/roles", response_model=List[RoleAssignment])
async def read_user_roles(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await UserService.get_user_or_404(db, user_id)
    assignments = await RBACService.get_user_assignments(db, user_id)
    return [
        RoleAssignment(
            role=assignment.role.name,
            granted_at=assignment.granted_at,
            granted_by=assignment.granted_by,
            expires_at=assignment.expires_at,
        )
        for assignment in assignments
    ]


@router.put("/{user_id}/roles", response_model=User)
async def update_user_roles(
    user_id: str,
    roles_in: UpdateRolesRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    roles = await UserService.update_user_roles(db, user_id, roles_in.roles, acting_user_id=admin.id)
    user = await UserService.get_user_or_404(db, user_id)
    return to_user_schema(user, roles)


@router.post("/{user_id}/roles", response_model=RoleAssignment, status_code=status.HTTP_201_CREATED)
async def assign_user_role(
    user_id: str,
    assignment_in: AssignRoleRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    assignment = await RBACService.assign_role(
        db, user_id, assignment_in.role, granted_by=admin.id, expires_at=assignment_in.expires_at
    )
    return RoleAssignment(
        role=assignment_in.role,
        granted_at=assignment.granted_at,
        granted_by=assignment.granted_by,
        expires_at=assignment.expires_at,
    )


@router.delete("/{user_id}/roles/{role_name}", response_model=MessageResponse)
async def remove_user_role(
    user_id: str,
    role_name: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await UserService.remove_user_role(db, user_id, role_name, acting_user_id=admin.id)
    return MessageResponse(message="Role removed successfully")


@router.get("/{user_id}/permissions", response_model=UserPermissions)
async def read_user_permissions(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await UserService.get_user_or_404(db, user_id)
    roles = await RBACService.get_active_role_names(db, user_id)
    permissions = await RBACService.get_user_permissions(db, user_id)
    return UserPermissions(
        user_id=user_id,
        roles=roles,
        permissions=[Permission.model_validate(p) for p in permissions],
    )


@router.get("/{user_id}/permissions/{permission}", response_model=PermissionCheck)
async def check_user_permission(
    user_id: str,
    permission: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await UserService.get_user_or_404(db, user_id)
    allowed = await RBACService.has_permission(db, user_id, permission)
    return PermissionCheck(user_id=user_id, permission=permission, has_permission=allowed)
