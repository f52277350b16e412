"""
Authentication Pydantic schemas.
"""

from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional
from goldtrade.app.models.enums import UserRole
from goldtrade.app.schemas.common import CamelModel


class UserRegister(CamelModel):
    """
    Schema for customer registration.

    Admin accounts come from the seed script or /admin/create.
    """
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    name: str
    email: str
    role: UserRole


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    deposit_limit_id: Optional[int] = None
    is_active: bool
    created_at: datetime


class AdminCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)


class AdminResponse(CamelModel):
    id: int
    name: str
    email: str
    created_at: datetime


class PasswordResetRequest(CamelModel):
    user_id: int
    new_password: str = Field(..., min_length=6)
