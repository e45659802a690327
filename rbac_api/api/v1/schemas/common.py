from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr


def normalize_email(value: str) -> str:
    return value.strip().lower()


# Emails are stored and compared lowercase
NormalizedEmail = Annotated[EmailStr, AfterValidator(normalize_email)]


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
