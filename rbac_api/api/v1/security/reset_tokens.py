import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Tuple

from rbac_api.core.config import RESET_TOKEN_EXPIRE_MINUTES
from rbac_api.core.db import utcnow


def generate_reset_token() -> Tuple[str, str]:
    """
    Returns the plain token to email and the hash to store.
    """
    token = secrets.token_hex(32)
    return token, hash_token(token)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def get_reset_token_expiration() -> datetime:
    return utcnow() + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
