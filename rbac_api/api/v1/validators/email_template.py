from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from rbac_api.api.v1.models.email_template import EmailTemplate


async def ensure_unique_template_name(name: str, db: AsyncSession, exclude_template_id: Optional[str] = None) -> None:
    query = select(EmailTemplate.id).where(EmailTemplate.name == name)
    if exclude_template_id is not None:
        query = query.where(EmailTemplate.id != exclude_template_id)
    result = await db.execute(query)
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Template name already exists")
