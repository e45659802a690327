from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from rbac_api.api.v1.models.permission import Permission


async def ensure_unique_permission_name(name: str, db: AsyncSession, exclude_permission_id: Optional[str] = None) -> None:
    """
    Ensures no other permission already uses the given name.
    """
    query = select(Permission.id).where(Permission.name == name)
    if exclude_permission_id is not None:
        query = query.where(Permission.id != exclude_permission_id)
    result = await db.execute(query)
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Permission name already exists")
