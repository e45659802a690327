from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.models.user import User
from rbac_api.api.v1.security.jwt import TokenClaims, decode_jwt
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.core.db.session import get_db

# Only used to document the scheme in OpenAPI; the header is parsed below
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """The authenticated caller and the roles resolved for this request."""

    user: User
    claims: TokenClaims
    roles: List[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise unauthorized("Authorization header is required")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise unauthorized("Invalid authorization header format")
    return token


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    token = extract_bearer_token(request.headers.get("Authorization"))
    claims = decode_jwt(token)

    user = await db.get(User, claims.subject)
    if user is None:
        raise unauthorized("User not found")

    roles = await RBACService.resolve_roles(db, user.id)
    if inspect(user).expired:
        # a failed role lookup rolls the session back
        await db.refresh(user)
    request.state.user_id = user.id
    request.state.roles = roles
    return CurrentUser(user=user, claims=claims, roles=roles)
