"""Access token verification.

Sign-up and login are handled by the hosted auth provider; this service only
verifies the bearer JWT it issues and reads the subject claim.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from points_forest.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Token validation error with specific code."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def verify_access_token(token: str) -> dict[str, Any] | None:
    """Verify an access token and return its payload.

    Args:
        token: JWT access token

    Returns:
        Token payload if valid, None otherwise

    Raises:
        TokenError: If the token is expired
    """
    if not token:
        logger.debug("Access token verification failed: empty token")
        return None

    options = {
        "require_exp": True,
        "require_sub": True,
        "verify_aud": settings.jwt_audience is not None,
    }
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Access token verification failed: token expired")
        raise TokenError("AUTH_EXPIRED", "Token has expired")
    except jwt.JWTClaimsError as e:
        logger.debug(f"Access token verification failed: invalid claims - {e}")
        return None
    except JWTError as e:
        logger.warning(f"Access token verification failed: {type(e).__name__}")
        return None

    return payload


def create_access_token(
    user_id: str,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Create an access token in the hosted provider's format.

    Used by integration tests and local tooling; production tokens come from
    the auth provider.
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + (expires_delta or timedelta(minutes=30))).timestamp()),
    }
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    if extra_claims:
        payload.update(extra_claims)

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
