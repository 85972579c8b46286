"""API dependencies for authentication and common utilities.

Sign-in is handled by the hosted auth provider; requests carry its access
token and the ``sub`` claim is the reward profile's user id.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.logging_config import bind_context
from points_forest.middleware.sentry import set_user_context
from points_forest.models.user import User
from points_forest.utils.db import get_db
from points_forest.utils.errors import PermissionDeniedError
from points_forest.utils.security import TokenError, verify_access_token

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "success": False,
            "error": message,
            "code": code,
            "details": {},
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get current user from token (required auth).

    Raises:
        HTTPException: If not authenticated, token invalid or profile missing
    """
    if not credentials:
        raise _unauthorized("AUTH_REQUIRED", "Authentication required")

    try:
        payload = verify_access_token(credentials.credentials)
    except TokenError as e:
        raise _unauthorized(e.code, e.message) from e

    if not payload:
        raise _unauthorized("AUTH_INVALID_TOKEN", "Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("AUTH_INVALID_TOKEN", "Invalid token payload")

    user = await db.get(User, user_id)
    if not user:
        raise _unauthorized("AUTH_USER_NOT_FOUND", "User not found")

    bind_context(user_id=user.id)
    set_user_context(user.id, user.username)
    return user


async def get_admin_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Current user, who must be an administrator."""
    if not current_user.is_admin:
        raise PermissionDeniedError("Administrator access required")
    return current_user


# Type aliases for cleaner annotations
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(get_admin_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
