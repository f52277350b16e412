"""
Withdrawal request schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field

from goldtrade.app.models.enums import RequestStatus
from goldtrade.app.schemas.common import CamelModel


class GoldWithdrawalCreate(CamelModel):
    gold_type: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)
    name: str = Field(..., min_length=1, max_length=255)
    tel: str = Field(..., min_length=1, max_length=50)
    address: str = Field(..., min_length=1, max_length=1000)


class GoldWithdrawalResponse(CamelModel):
    id: int
    user_id: int
    gold_type: str
    amount: Decimal
    name: str
    tel: str
    address: str
    status: RequestStatus
    created_at: datetime


class CashWithdrawalCreate(CamelModel):
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)
    bank: str = Field(..., min_length=1, max_length=50)
    account_number: str = Field(..., min_length=1, max_length=50)
    account_name: str = Field(..., min_length=1, max_length=255)


class CashWithdrawalResponse(CamelModel):
    id: int
    user_id: int
    amount: Decimal
    bank: str
    account_number: str
    account_name: str
    status: RequestStatus
    created_at: datetime


class WithdrawalDecision(CamelModel):
    action: Literal["approve", "reject"]
