from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from rbac_api.api.v1.schemas.common import MessageResponse
from rbac_api.api.v1.services.auth import AuthService
from rbac_api.api.v1.services.email import EmailService, get_email_service
from rbac_api.core.db.session import get_db

router = APIRouter(prefix="", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    reg: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    auth_service = AuthService(db=db)
    return await auth_service.register_user(reg)


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    auth_service = AuthService(db=db)
    return await auth_service.login(credentials.email, credentials.password)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    auth_service = AuthService(db=db)
    message = await auth_service.forgot_password(payload.email, email_service)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    auth_service = AuthService(db=db)
    message = await auth_service.reset_password(payload.token, payload.password)
    return MessageResponse(message=message)
