import math
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from loguru import logger
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.models.password_reset_token import PasswordResetToken
from rbac_api.api.v1.models.role import ADMIN_ROLE, DEFAULT_ROLE, Role
from rbac_api.api.v1.models.user import User as UserModel
from rbac_api.api.v1.models.user_role import UserRole
from rbac_api.api.v1.schemas.user import ProfileUpdate, User, UserCreate, UserUpdate
from rbac_api.api.v1.security.passwords import hash_password
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.api.v1.validators.user import (
    ensure_name_length,
    ensure_unique_email,
    normalize_optional_text,
    normalize_phone,
)
from rbac_api.core.db import utcnow

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
SORTABLE_FIELDS = {
    "email": UserModel.email,
    "name": UserModel.name,
    "created_at": UserModel.created_at,
    "updated_at": UserModel.updated_at,
}


def to_user_schema(user: UserModel, roles: List[str]) -> User:
    return User(
        id=user.id,
        email=user.email,
        name=user.name,
        phone=user.phone,
        company=user.company,
        roles=roles,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class UserService:
    @staticmethod
    async def list_users(
        db: AsyncSession,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_desc: bool = True,
    ) -> Tuple[List[UserModel], int, Dict[str, List[str]]]:
        """
        Returns one page of users, the total match count and each listed
        user's active role names.
        """
        if page < 1 or limit < 1:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid pagination parameters")
        limit = min(limit, MAX_PAGE_SIZE)

        query = select(UserModel)
        count_query = select(func.count()).select_from(UserModel)
        if search:
            pattern = f"%{search.strip().lower()}%"
            condition = or_(func.lower(UserModel.email).like(pattern), func.lower(UserModel.name).like(pattern))
            query = query.where(condition)
            count_query = count_query.where(condition)

        column = SORTABLE_FIELDS.get(sort_by, UserModel.created_at)
        query = query.order_by(column.desc() if sort_desc else column.asc(), UserModel.id)
        query = query.offset((page - 1) * limit).limit(limit)

        total = (await db.execute(count_query)).scalar_one()
        users = list((await db.execute(query)).scalars().all())
        roles = await RBACService.get_active_role_names_for_users(db, [user.id for user in users])
        return users, total, roles

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> Optional[UserModel]:
        """
        Retrieves a single user record by its ID.
        """
        result = await db.execute(select(UserModel).where(UserModel.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_or_404(db: AsyncSession, user_id: str) -> UserModel:
        user = await UserService.get_user(db, user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[UserModel]:
        result = await db.execute(select(UserModel).where(UserModel.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_user(db: AsyncSession, user_in: UserCreate, granted_by: Optional[str] = None) -> UserModel:
        """
        Creates a user and grants the requested roles, or the default role when none are given.
        """
        await ensure_unique_email(user_in.email, db)
        ensure_name_length(user_in.name)
        phone = normalize_phone(user_in.phone)

        role_names = list(dict.fromkeys(user_in.roles or [DEFAULT_ROLE]))
        result = await db.execute(select(Role).where(Role.name.in_(role_names)))
        roles = {role.name: role for role in result.scalars().all()}
        for name in role_names:
            if name not in roles:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"role not found: {name}")

        new_user = UserModel(
            email=user_in.email,
            name=user_in.name.strip(),
            password=hash_password(user_in.password),
            phone=phone,
            company=normalize_optional_text(user_in.company),
        )
        db.add(new_user)
        await db.flush()
        now = utcnow()
        for role in roles.values():
            db.add(UserRole(user_id=new_user.id, role_id=role.id, granted_at=now, granted_by=granted_by))
        await db.commit()
        logger.info(f"Created user {new_user.email} with roles {sorted(roles)}")
        return new_user

    @staticmethod
    async def update_user(db: AsyncSession, user_id: str, user_in: UserUpdate) -> UserModel:
        user = await UserService.get_user_or_404(db, user_id)
        changes = user_in.model_dump(exclude_unset=True)
        if not changes:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

        if changes.get("email") is not None and changes["email"] != user.email:
            await ensure_unique_email(changes["email"], db, exclude_user_id=user.id)
            user.email = changes["email"]
        if changes.get("name") is not None:
            ensure_name_length(changes["name"])
            user.name = changes["name"].strip()
        if "phone" in changes:
            user.phone = normalize_phone(changes["phone"])
        if "company" in changes:
            user.company = normalize_optional_text(changes["company"])

        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def update_profile(db: AsyncSession, user: UserModel, profile_in: ProfileUpdate) -> UserModel:
        """
        Applies self-service profile edits. Only name, phone and company can change;
        an empty phone or company clears the stored value.
        """
        changes = profile_in.model_dump(exclude_unset=True)
        if changes.get("name") is not None:
            ensure_name_length(changes["name"])
            user.name = changes["name"].strip()
        if "phone" in changes:
            user.phone = normalize_phone(changes["phone"])
        if "company" in changes:
            user.company = normalize_optional_text(changes["company"])
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def set_password(db: AsyncSession, user: UserModel, plain_password: str) -> None:
        user.password = hash_password(plain_password)
        await db.commit()

    @staticmethod
    async def delete_user(db: AsyncSession, user_id: str, acting_user_id: Optional[str] = None) -> None:
        """
        Deletes a user with their role assignments and reset tokens.
        Grants the user made to others are kept with the grantor cleared.
        """
        if acting_user_id is not None and user_id == acting_user_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")
        user = await UserService.get_user_or_404(db, user_id)
        await db.execute(update(UserRole).where(UserRole.granted_by == user.id).values(granted_by=None))
        await db.execute(delete(UserRole).where(UserRole.user_id == user.id))
        await db.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id))
        await db.delete(user)
        await db.commit()
        logger.info(f"Deleted user {user.email}")

    @staticmethod
    async def update_user_roles(
        db: AsyncSession, user_id: str, role_names: List[str], acting_user_id: Optional[str] = None
    ) -> List[str]:
        """
        Replaces a user's roles. Admins cannot take the admin role away from themselves.
        """
        await UserService.get_user_or_404(db, user_id)
        if acting_user_id is not None and user_id == acting_user_id and ADMIN_ROLE not in role_names:
            current = await RBACService.get_active_role_names(db, user_id)
            if ADMIN_ROLE in current:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot remove admin role from yourself"
                )
        return await RBACService.set_user_roles(db, user_id, role_names, granted_by=acting_user_id)

    @staticmethod
    async def remove_user_role(
        db: AsyncSession, user_id: str, role_name: str, acting_user_id: Optional[str] = None
    ) -> None:
        await UserService.get_user_or_404(db, user_id)
        if acting_user_id is not None and user_id == acting_user_id and role_name == ADMIN_ROLE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot remove admin role from yourself"
            )
        await RBACService.remove_role(db, user_id, role_name)
