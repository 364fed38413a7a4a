"""FastAPI dependencies for bearer-token authentication."""

from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from .auth import decode_access_token
from .errors import AuthError
from .schemas import CurrentUser
from .logger import logger


# ==================== Authentication Dependencies ====================

# auto_error=False so a missing header becomes our own 401 body
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """Identity from the bearer token's claims. 401 if absent, 403 if invalid.

    The claims are trusted as-is: no database lookup is made, so a token
    stays valid until the signing key changes (or it expires, when
    JWT_EXPIRATION_MINUTES is set).
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required")

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise AuthError("Invalid token", status_code=status.HTTP_403_FORBIDDEN) from e

    return CurrentUser(id=payload["id"], username=payload["username"])
