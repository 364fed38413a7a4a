"""Authentication utilities for password hashing and JWT session tokens."""

from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
import bcrypt
from .config import settings

# bcrypt only looks at the first 72 bytes; newer releases reject longer input
BCRYPT_MAX_BYTES = 72


# ==================== Password Hashing ====================

def hash_password(password: str) -> str:
    """Hash a plain text password with a fresh salt for storage."""
    password_bytes = password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a stored hash. Malformed hashes never match."""
    password_bytes = plain_password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except (ValueError, TypeError):
        return False


# ==================== JWT Token Management ====================

def create_access_token(user_id: int, username: str, expires_delta: timedelta | None = None) -> str:
    """Sign a token carrying {id, username}.

    Tokens carry no exp claim unless expires_delta is given or
    JWT_EXPIRATION_MINUTES is configured.
    """
    to_encode: dict = {"id": user_id, "username": username}

    if expires_delta is None and settings.JWT_EXPIRATION_MINUTES:
        expires_delta = timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    if expires_delta is not None:
        to_encode["exp"] = datetime.now(timezone.utc) + expires_delta

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, returning the payload.

    Raises ValueError for a bad signature, an expired token or a payload
    missing an integer id or a string username.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise ValueError(f"Token validation failed: {str(e)}") from e

    user_id = payload.get("id")
    username = payload.get("username")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise ValueError("Missing or malformed id in token")
    if not isinstance(username, str) or not username:
        raise ValueError("Missing or malformed username in token")
    return payload
