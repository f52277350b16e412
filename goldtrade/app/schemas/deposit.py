"""
Deposit slip and deposit limit schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import Field

from goldtrade.app.schemas.common import CamelModel


class SlipVerificationResponse(CamelModel):
    """Envelope returned by slip verification, success or failure."""
    status: int
    message: str
    amount: Optional[Decimal] = None
    balance: Optional[Decimal] = None
    details: Optional[Dict[str, Any]] = None


class DepositLimitCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    daily_limit: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)
    monthly_limit: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)


class DepositLimitUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    daily_limit: Optional[Decimal] = Field(default=None, gt=0, max_digits=20, decimal_places=2)
    monthly_limit: Optional[Decimal] = Field(default=None, gt=0, max_digits=20, decimal_places=2)


class DepositLimitResponse(CamelModel):
    id: int
    name: str
    daily_limit: Decimal
    monthly_limit: Decimal
    created_at: datetime


class UserDepositLimitResponse(CamelModel):
    limit: Optional[DepositLimitResponse] = None
    daily_used: Decimal
    monthly_used: Decimal


class AssignDepositLimitRequest(CamelModel):
    user_id: int
    limit_id: int


class RecentDepositResponse(CamelModel):
    id: int
    amount: Decimal
    verified_at: datetime
    status: str = "completed"
