"""FastAPI dependencies: get_current_user_key, require_admin.

Usage in any protected router:
    from src.tm_gateway.auth.dependencies import get_current_user_key

    @router.get("/protected")
    async def protected(user_key: Annotated[str, Depends(get_current_user_key)]):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from src.tm_common.errors import AdminRequiredError, InvalidCredentialsError
from src.tm_gateway.auth.jwt_handler import decode_token

_bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


def is_admin(user_key: str) -> bool:
    """Opaque admin predicate: membership in ADMIN_USER_KEYS, case-insensitive."""
    admins = {key.strip().lower() for key in settings.ADMIN_USER_KEYS}
    return user_key.strip().lower() in admins


async def get_current_user_key(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """Validate the Bearer token and return its subject (the user key).

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_key = payload.get("sub")
    if not user_key:
        raise _CREDENTIALS_EXCEPTION
    return user_key


async def require_admin(user_key: str = Depends(get_current_user_key)) -> str:
    """Admin-only guard. Raises AdminRequiredError (1006, HTTP 403)."""
    if not is_admin(user_key):
        raise AdminRequiredError()
    return user_key
