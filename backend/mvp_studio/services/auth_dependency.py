"""FastAPI dependency verifying bearer JWTs issued by the OAuth provider.

The service never issues tokens; it only checks the signature, expiry and
audience, and reads the user id from ``sub``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from mvp_studio.config import Settings, get_settings

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: str | None = None


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str, settings: Settings) -> dict | None:
    """Verify *token* and return its claims, or ``None`` when invalid."""
    if not settings.AUTH_JWT_SECRET:
        logger.error("AUTH_JWT_SECRET is not configured; rejecting all tokens")
        return None
    audience = settings.AUTH_JWT_AUDIENCE or None
    try:
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except JWTError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return None


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> AuthenticatedUser:
    """Return the caller's identity. Raises 401 when the token is missing or invalid."""
    if creds is None:
        raise _unauthorized()

    claims = decode_access_token(creds.credentials, settings)
    if claims is None:
        raise _unauthorized()

    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized()

    return AuthenticatedUser(id=str(user_id), email=claims.get("email"))
