from typing import Optional

import phonenumbers
from fastapi import HTTPException, status
from phonenumbers import NumberParseException, PhoneNumberFormat
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from rbac_api.api.v1.models.user import User
from rbac_api.core.config import PHONE_DEFAULT_REGION


async def ensure_unique_email(email: str, db: AsyncSession, exclude_user_id: Optional[str] = None) -> None:
    """
    Ensures that the provided email address is unique in the User table.
    Raises HTTPException 409 if the email is already in use by another user.
    """
    query = select(User.id).where(User.email == email)
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    result = await db.execute(query)
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")


def normalize_phone(phone: Optional[str], region: Optional[str] = None) -> Optional[str]:
    """
    Returns the number in E.164 form, or None when it is empty.
    Numbers without a country code are read as local to ``region``
    (PHONE_DEFAULT_REGION when not given).
    Raises HTTPException if the number cannot be parsed or is not a valid number.
    """
    if phone is None:
        return None
    phone = phone.strip()
    if not phone:
        return None
    try:
        parsed = phonenumbers.parse(phone, region or PHONE_DEFAULT_REGION)
    except NumberParseException:
        parsed = None
    if parsed is None or not phonenumbers.is_valid_number(parsed):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid phone number format"
        )
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def normalize_optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def ensure_name_length(name: str, field_name: str = "Name") -> None:
    """
    Ensures a name field has at least 2 non-blank characters.
    """
    if len(name.strip()) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} must be at least 2 characters long"
        )
