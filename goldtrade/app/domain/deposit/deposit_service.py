"""
Deposits (Domain Logic).

Deposit limit tiers, the daily/monthly limit check and crediting a verified
slip to the customer's balance.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import (
    DepositLimitExceededError,
    InvalidInputError,
    ResourceNotFoundError,
    SlipAlreadyUsedError,
)
from goldtrade.app.domain.ledger import balances
from goldtrade.app.domain.ledger.lot_engine import MONEY_PLACES, to_decimal
from goldtrade.app.models.deposit_limit import DepositLimit
from goldtrade.app.models.user import User
from goldtrade.app.models.verified_slip import VerifiedSlip

logger = logging.getLogger(__name__)

NO_LIMIT_MESSAGE = "No deposit limit set for user"


def format_baht(value: Decimal) -> str:
    return f"{to_decimal(value):,.2f}"


@dataclass
class DepositUsage:
    daily_total: Decimal
    monthly_total: Decimal


@dataclass
class DepositResult:
    slip: VerifiedSlip
    balance: Decimal


def period_starts(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Start of the local day and local month, returned in UTC."""
    tz = ZoneInfo(settings.trading_timezone)
    local = now.astimezone(tz) if now is not None else datetime.now(tz)
    day_start = local.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = day_start.replace(day=1)
    return day_start.astimezone(timezone.utc), month_start.astimezone(timezone.utc)


class DepositLimitService:

    @staticmethod
    async def list_limits(db: AsyncSession) -> List[DepositLimit]:
        result = await db.execute(select(DepositLimit).order_by(DepositLimit.daily_limit, DepositLimit.id))
        return list(result.scalars().all())

    @staticmethod
    async def get_limit(db: AsyncSession, limit_id: int) -> DepositLimit:
        limit = await db.get(DepositLimit, limit_id)
        if limit is None:
            raise ResourceNotFoundError("Deposit limit", limit_id)
        return limit

    @staticmethod
    async def create_limit(
        db: AsyncSession, actor_id: int, name: str, daily_limit: Decimal, monthly_limit: Decimal
    ) -> DepositLimit:
        _check_limits(daily_limit, monthly_limit)
        existing = await db.execute(select(DepositLimit.id).where(DepositLimit.name == name))
        if existing.scalar_one_or_none() is not None:
            raise InvalidInputError(f"Deposit limit '{name}' already exists")
        limit = DepositLimit(name=name, daily_limit=daily_limit, monthly_limit=monthly_limit, created_by=actor_id)
        db.add(limit)
        await db.flush()
        return limit

    @staticmethod
    async def update_limit(
        db: AsyncSession,
        limit_id: int,
        name: Optional[str] = None,
        daily_limit: Optional[Decimal] = None,
        monthly_limit: Optional[Decimal] = None,
    ) -> DepositLimit:
        limit = await DepositLimitService.get_limit(db, limit_id)
        if name is not None:
            limit.name = name
        if daily_limit is not None:
            limit.daily_limit = daily_limit
        if monthly_limit is not None:
            limit.monthly_limit = monthly_limit
        _check_limits(limit.daily_limit, limit.monthly_limit)
        await db.flush()
        return limit

    @staticmethod
    async def delete_limit(db: AsyncSession, limit_id: int) -> None:
        limit = await DepositLimitService.get_limit(db, limit_id)
        await db.delete(limit)
        await db.flush()

    @staticmethod
    async def assign_limit(db: AsyncSession, user_id: int, limit_id: int) -> User:
        limit = await DepositLimitService.get_limit(db, limit_id)
        user = await db.get(User, user_id)
        if user is None or user.deleted_at is not None:
            raise ResourceNotFoundError("User", user_id)
        user.deposit_limit_id = limit.id
        await db.flush()
        return user

    @staticmethod
    async def resolve_user_limit(db: AsyncSession, user: User) -> Optional[DepositLimit]:
        """
        The user's tier. Users without one are given the default tier when it
        exists.
        """
        if user.deposit_limit_id is not None:
            limit = await db.get(DepositLimit, user.deposit_limit_id)
            if limit is not None:
                return limit

        result = await db.execute(
            select(DepositLimit).where(DepositLimit.name == settings.default_deposit_limit_name)
        )
        default_limit = result.scalar_one_or_none()
        if default_limit is not None:
            user.deposit_limit_id = default_limit.id
            await db.flush()
        return default_limit


def _check_limits(daily_limit: Decimal, monthly_limit: Decimal) -> None:
    if to_decimal(daily_limit) <= 0 or to_decimal(monthly_limit) <= 0:
        raise InvalidInputError("Deposit limits must be greater than zero")


async def deposit_usage(db: AsyncSession, user_id: int, now: Optional[datetime] = None) -> DepositUsage:
    day_start, month_start = period_starts(now)

    async def total_since(start: datetime) -> Decimal:
        result = await db.execute(
            select(func.coalesce(func.sum(VerifiedSlip.amount), 0)).where(
                VerifiedSlip.user_id == user_id, VerifiedSlip.verified_at >= start
            )
        )
        return to_decimal(result.scalar()).quantize(MONEY_PLACES)

    return DepositUsage(daily_total=await total_since(day_start), monthly_total=await total_since(month_start))


async def recent_deposits(db: AsyncSession, user_id: int, limit: int = 5) -> List[VerifiedSlip]:
    result = await db.execute(
        select(VerifiedSlip)
        .where(VerifiedSlip.user_id == user_id)
        .order_by(VerifiedSlip.verified_at.desc(), VerifiedSlip.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def check_deposit_limit(db: AsyncSession, user: User, amount: Decimal, now: Optional[datetime] = None) -> None:
    """
    Totals including this deposit may equal the limits but not exceed them.

    Raises:
        DepositLimitExceededError: no tier available, or a limit would be exceeded
    """
    limit = await DepositLimitService.resolve_user_limit(db, user)
    if limit is None:
        raise DepositLimitExceededError(NO_LIMIT_MESSAGE)

    amount = to_decimal(amount)
    usage = await deposit_usage(db, user.id, now)
    daily_limit = to_decimal(limit.daily_limit)
    monthly_limit = to_decimal(limit.monthly_limit)

    if usage.daily_total + amount > daily_limit:
        raise DepositLimitExceededError(
            f"Deposit would exceed daily limit of ฿{format_baht(daily_limit)}",
            details={"period": "daily", "limit": str(daily_limit), "used": str(usage.daily_total)},
        )
    if usage.monthly_total + amount > monthly_limit:
        raise DepositLimitExceededError(
            f"Deposit would exceed monthly limit of ฿{format_baht(monthly_limit)}",
            details={"period": "monthly", "limit": str(monthly_limit), "used": str(usage.monthly_total)},
        )


async def record_verified_deposit(
    db: AsyncSession,
    user: User,
    trans_ref: str,
    amount: Decimal,
    now: Optional[datetime] = None,
) -> DepositResult:
    """
    Credit a verified slip exactly once.

    Raises:
        SlipAlreadyUsedError: trans_ref was credited before (or concurrently)
        DepositLimitExceededError: see check_deposit_limit
        InvalidInputError: the amount is not a positive sum of money
    """
    amount = to_decimal(amount).quantize(MONEY_PLACES)
    if amount <= 0:
        raise InvalidInputError("Slip amount must be greater than zero")

    existing = await db.execute(select(VerifiedSlip.id).where(VerifiedSlip.trans_ref == trans_ref))
    if existing.scalar_one_or_none() is not None:
        raise SlipAlreadyUsedError(trans_ref)

    await check_deposit_limit(db, user, amount, now)

    slip = VerifiedSlip(trans_ref=trans_ref, amount=amount, user_id=user.id)
    db.add(slip)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise SlipAlreadyUsedError(trans_ref) from exc

    new_balance = await balances.credit(db, user.id, amount)
    logger.info("Deposit %s credited to user %s: ฿%s (balance ฿%s)", trans_ref, user.id, amount, new_balance)
    return DepositResult(slip=slip, balance=new_balance)
