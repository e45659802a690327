from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.dependencies.auth import CurrentUser, get_current_user
from rbac_api.api.v1.schemas.permission import Permission
from rbac_api.api.v1.schemas.user import ProfileUpdate, User, UserPermissions
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.api.v1.services.user import UserService, to_user_schema
from rbac_api.core.db.session import get_db

router = APIRouter(prefix="", tags=["Profile"])


@router.get("/profile", response_model=User)
async def read_profile(current_user: CurrentUser = Depends(get_current_user)):
    return to_user_schema(current_user.user, current_user.roles)


@router.put("/profile", response_model=User)
async def update_profile(
    profile_in: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    user = await UserService.update_profile(db, current_user.user, profile_in)
    return to_user_schema(user, current_user.roles)


@router.get("/permissions", response_model=UserPermissions)
async def read_own_permissions(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    permissions = await RBACService.get_user_permissions(db, current_user.id)
    return UserPermissions(
        user_id=current_user.id,
        roles=current_user.roles,
        permissions=[Permission.model_validate(p) for p in permissions],
    )
