from typing import List, Optional

from pydantic import BaseModel, Field

from rbac_api.api.v1.schemas.common import NormalizedEmail


class RegisterRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2, max_length=255)
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: NormalizedEmail


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)


class AuthUser(BaseModel):
    id: str
    email: str
    name: str
    roles: List[str] = []


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUser
