"""
Authentication API endpoints.

Provides register, login, and user info endpoints for the web and mobile clients.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from goldtrade.app.db.session import get_db
from goldtrade.app.models.user import User
from goldtrade.app.models.enums import UserRole
from goldtrade.app.schemas.auth import UserRegister, UserLogin, TokenResponse, UserResponse
from goldtrade.app.core.security import get_password_hash, verify_password
from goldtrade.app.core.jwt import create_access_token
from goldtrade.app.core.dependencies import get_current_user
from goldtrade.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from goldtrade.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(user: User) -> TokenResponse:
    access_token = create_access_token(data={
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.value,
    })
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new customer.

    Every registration gets the member role.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        name=user_data.name,
        email=user_data.email,
        phone=user_data.phone,
        hashed_password=get_password_hash(user_data.password),
        role=UserRole.MEMBER,
        is_active=True,
    )
    db.add(new_user)
    await db.flush()

    await log_event(
        db=db,
        action=AuditAction.USER_REGISTERED,
        actor_id=new_user.id,
        actor_email=new_user.email,
    )
    await db.commit()

    return _token_response(new_user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Failed and successful attempts are written to the audit log.
    """
    result = await db.execute(
        select(User).where(User.email == credentials.email, User.deleted_at.is_(None))
    )
    user = result.scalar_one_or_none()
    ip_address = request.client.host if request.client else None

    if not user or not verify_password(credentials.password, user.hashed_password):
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id if user else None,
            actor_email=credentials.email,
            ip_address=ip_address,
            metadata={"reason": "invalid_credentials"},
        )
        await db.commit()
        raise AuthenticationError("Incorrect email or password")

    if not user.is_active:
        raise InsufficientPermissionsError("User account is inactive")

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=user.id,
        actor_email=user.email,
        ip_address=ip_address,
    )
    await db.commit()

    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current authenticated user's information."""
    user = await db.get(User, current_user["user_id"])
    return UserResponse.model_validate(user)
