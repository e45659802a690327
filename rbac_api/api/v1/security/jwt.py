from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, ExpiredSignatureError, jwt
from fastapi import HTTPException, status

from rbac_api.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY


class TokenError(Exception):
    """Base class for rejected bearer tokens."""


class InvalidTokenError(TokenError):
    """Bad signature, malformed token or missing subject."""


class ExpiredTokenError(TokenError):
    """The token's exp claim is in the past."""


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: Optional[str]
    issued_at: Optional[datetime]
    expires_at: datetime
    extra: Dict[str, Any] = field(default_factory=dict)


def _from_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def create_access_token(
    subject: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Creates a signed JWT access token for the given user id.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode: Dict[str, Any] = dict(extra_claims or {})
    to_encode.update({
        "sub": subject,
        "email": email,
        "iat": int(now.timestamp()),
        "nbf": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    })
    return jwt.encode(to_encode, str(SECRET_KEY), algorithm=ALGORITHM)


def verify_token(token: str) -> TokenClaims:
    """
    Validates signature and time claims of a bearer token.
    Only the configured algorithm is accepted. Has no side effects.

    :raises ExpiredTokenError: exp is in the past.
    :raises InvalidTokenError: anything else wrong with the token.
    """
    if not token:
        raise InvalidTokenError("Empty token")
    try:
        payload = jwt.decode(
            token,
            str(SECRET_KEY),
            algorithms=[ALGORITHM],
            options={"require_exp": True},
        )
    except ExpiredSignatureError as e:
        raise ExpiredTokenError("Token expired") from e
    except JWTError as e:
        raise InvalidTokenError(str(e) or "Invalid token") from e

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise InvalidTokenError("No sub claim in token")

    reserved = {"sub", "email", "iat", "nbf", "exp"}
    return TokenClaims(
        subject=subject,
        email=payload.get("email"),
        issued_at=_from_timestamp(payload.get("iat")),
        expires_at=_from_timestamp(payload["exp"]),
        extra={k: v for k, v in payload.items() if k not in reserved},
    )


def decode_jwt(token: str) -> TokenClaims:
    """
    Decodes a JWT token.
    Raises HTTPException with specific details for expired or invalid tokens.
    """
    try:
        return verify_token(token)
    except ExpiredTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
