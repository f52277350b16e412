"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from goldtrade.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from goldtrade.app.core.jwt import decode_access_token
from goldtrade.app.db.session import get_db
from goldtrade.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    1. Validates JWT token signature and expiry
    2. Verifies the user still exists, is active and not soft-deleted

    Returns:
        Decoded token payload containing user information

    Raises:
        AuthenticationError: 401 if authentication fails
        InsufficientPermissionsError: 403 if the account is inactive
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or user.deleted_at is not None:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise InsufficientPermissionsError("User account is inactive")

    # Role comes from the row so a demotion takes effect immediately
    payload["role"] = user.role.value
    return payload
