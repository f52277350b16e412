"""
Security guards for role-based access control.
"""

from fastapi import Depends
from goldtrade.app.models.enums import UserRole
from goldtrade.app.core.dependencies import get_current_user
from goldtrade.app.core.exceptions import InsufficientPermissionsError


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency for admin-only endpoints.

    Usage:
        @router.get("/deposit-limits")
        async def list_limits(admin: dict = Depends(require_admin)):
            ...

    Returns:
        User payload if admin, raises InsufficientPermissionsError (403) otherwise
    """
    if current_user.get("role") != UserRole.ADMIN.value:
        raise InsufficientPermissionsError("Admin access required")

    return current_user


def is_admin(current_user: dict) -> bool:
    return current_user.get("role") == UserRole.ADMIN.value
