from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from rbac_api.api.v1.models.role import Role, SYSTEM_ROLES


async def ensure_unique_role_name(name: str, db: AsyncSession, exclude_role_id: Optional[str] = None) -> None:
    """
    Ensures no other role already uses the given name.
    """
    query = select(Role.id).where(Role.name == name)
    if exclude_role_id is not None:
        query = query.where(Role.id != exclude_role_id)
    result = await db.execute(query)
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Role name already exists")


def ensure_not_system_role(role: Role) -> None:
    if role.name in SYSTEM_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete system role: {role.name}"
        )


def ensure_system_role_not_renamed(role: Role, new_name: Optional[str]) -> None:
    if new_name is not None and new_name != role.name and role.name in SYSTEM_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot rename system role: {role.name}"
        )
