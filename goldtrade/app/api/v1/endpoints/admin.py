"""
Admin account management endpoints.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.exceptions import ResourceNotFoundError
from goldtrade.app.core.guards import require_admin
from goldtrade.app.core.security import get_password_hash
from goldtrade.app.db.session import get_db, atomic
from goldtrade.app.models.enums import UserRole
from goldtrade.app.models.user import User
from goldtrade.app.schemas.auth import AdminCreate, AdminResponse, PasswordResetRequest
from goldtrade.app.schemas.common import MessageResponse
from goldtrade.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin - Accounts"])


@router.post("/create", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    body: AdminCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create another admin account."""
    result = await db.execute(select(User).where(User.email == body.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    async with atomic(db):
        new_admin = User(
            name=body.name,
            email=body.email,
            hashed_password=get_password_hash(body.password),
            role=UserRole.ADMIN,
            is_active=True,
        )
        db.add(new_admin)
        await db.flush()
        await log_event(
            db=db,
            action=AuditAction.ADMIN_CREATED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=new_admin.id,
            metadata={"email": new_admin.email},
        )
    logger.info("Admin %s created by %s", new_admin.email, admin["sub"])
    return AdminResponse.model_validate(new_admin)


@router.get("/list", response_model=List[AdminResponse])
async def list_admins(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.ADMIN, User.deleted_at.is_(None))
        .order_by(User.id)
    )
    return [AdminResponse.model_validate(user) for user in result.scalars().all()]


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: PasswordResetRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set a new password for any account."""
    async with atomic(db):
        user = await db.get(User, body.user_id, with_for_update=True)
        if user is None or user.deleted_at is not None:
            raise ResourceNotFoundError("User", body.user_id)
        user.hashed_password = get_password_hash(body.new_password)
        await log_event(
            db=db,
            action=AuditAction.PASSWORD_RESET,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=user.id,
        )
    return MessageResponse(message="Password updated")
