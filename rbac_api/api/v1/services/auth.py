from typing import Optional

from fastapi import HTTPException, status
from loguru import logger
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from rbac_api.api.v1.models.password_reset_token import PasswordResetToken
from rbac_api.api.v1.models.role import DEFAULT_ROLE
from rbac_api.api.v1.models.user import User
from rbac_api.api.v1.schemas.auth import AuthResponse, AuthUser, RegisterRequest
from rbac_api.api.v1.schemas.user import UserCreate
from rbac_api.api.v1.security.jwt import create_access_token
from rbac_api.api.v1.security.passwords import verify_password
from rbac_api.api.v1.security.reset_tokens import (
    generate_reset_token,
    get_reset_token_expiration,
    hash_token,
)
from rbac_api.api.v1.services.email import EmailDeliveryError, EmailMessage, EmailService
from rbac_api.api.v1.services.email_template import (
    EmailTemplateService,
    TemplateSyntaxError,
    render_email,
)
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.api.v1.services.user import UserService
from rbac_api.core.config import COMPANY_NAME, FRONTEND_URL

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."
RESET_PASSWORD_MESSAGE = "Password has been reset successfully"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
PASSWORD_RESET_TEMPLATE = "password_reset"


def invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid email or password",
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthService:
    def __init__(self, db: AsyncSession):
        if db is None:
            raise ValueError("Database session cannot be None")
        self.db = db

    async def register_user(self, reg: RegisterRequest) -> AuthResponse:
        """
        Creates an account with the default role and signs the new user in.
        """
        user = await UserService.create_user(
            self.db,
            UserCreate(email=reg.email, password=reg.password, name=reg.name, phone=reg.phone, roles=[DEFAULT_ROLE]),
        )
        return await self.create_token_response(user)

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        query = await self.db.execute(select(User).where(User.email == email))
        user = query.scalars().first()
        if not user:
            return None
        if not verify_password(password, user.password):
            return None
        return user

    async def login(self, email: str, password: str) -> AuthResponse:
        user = await self.authenticate_user(email, password)
        if not user:
            logger.info(f"Failed login for {email}")
            raise invalid_credentials()
        return await self.create_token_response(user)

    async def create_token_response(self, user: User) -> AuthResponse:
        roles = await RBACService.get_active_role_names(self.db, user.id)
        token = create_access_token(subject=user.id, email=user.email)
        return AuthResponse(
            access_token=token,
            user=AuthUser(id=user.id, email=user.email, name=user.name, roles=roles),
        )

    async def forgot_password(self, email: str, email_service: EmailService) -> str:
        """
        Emails a single-use reset link. The response never reveals whether the account exists.
        """
        user = await UserService.get_user_by_email(self.db, email)
        if not user:
            logger.debug(f"Password reset requested for unknown email {email}")
            return FORGOT_PASSWORD_MESSAGE

        token, token_hash = generate_reset_token()
        self.db.add(PasswordResetToken(user_id=user.id, token=token_hash, expires_at=get_reset_token_expiration()))
        await self.db.commit()

        message = await self.build_reset_email(user, f"{FRONTEND_URL.rstrip('/')}/reset-password?token={token}")
        try:
            await email_service.send(message)
        except EmailDeliveryError as e:
            logger.error(f"Failed to send reset email to {user.email}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send reset email"
            )
        return FORGOT_PASSWORD_MESSAGE

    async def build_reset_email(self, user: User, reset_url: str) -> EmailMessage:
        variables = {"ResetURL": reset_url, "CompanyName": COMPANY_NAME}
        template = await EmailTemplateService.get_active_template_by_name(self.db, PASSWORD_RESET_TEMPLATE)
        if template is not None:
            try:
                rendered = render_email(template, variables)
                return EmailMessage(
                    to=user.email,
                    subject=rendered.subject,
                    html=rendered.html_content,
                    text=rendered.text_content,
                )
            except TemplateSyntaxError as e:
                logger.warning(f"Stored {PASSWORD_RESET_TEMPLATE} template is broken, using built-in text: {e}")

        text = (
            f"You requested a password reset for your {COMPANY_NAME} account.\n\n"
            f"Reset your password here: {reset_url}\n\n"
            "This link expires in 15 minutes. If you did not request it, ignore this email."
        )
        return EmailMessage(
            to=user.email,
            subject="Reset Your Password",
            html=f'<p>{text.splitlines()[0]}</p><p><a href="{reset_url}">Reset Password</a></p>',
            text=text,
        )

    async def reset_password(self, token: str, password: str) -> str:
        result = await self.db.execute(
            select(PasswordResetToken).where(PasswordResetToken.token == hash_token(token))
        )
        reset_token = result.scalar_one_or_none()
        if reset_token is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_RESET_TOKEN)
        if reset_token.is_expired():
            await self.db.delete(reset_token)
            await self.db.commit()
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_RESET_TOKEN)

        user = await UserService.get_user(self.db, reset_token.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_RESET_TOKEN)
        user_id = user.id
        await self.db.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id))
        await UserService.set_password(self.db, user, password)
        logger.info(f"Password reset for user {user_id}")
        return RESET_PASSWORD_MESSAGE
