from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

pwd_context = PasswordHasher()


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False
