"""
Trading window, global trading switch and minimum purchase.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import TradingClosedError
from goldtrade.app.models.minimum_purchase import MinimumPurchaseSettings
from goldtrade.app.models.trading_status import TradingStatus

WEEKEND_MESSAGE = "Trading is only available on weekdays (Monday to Friday)"
HOURS_MESSAGE = "Trading is only available between 9:30 AM and 5:00 PM (Thailand time)"
DISABLED_MESSAGE = "Trading is currently closed"


def check_trading_hours(now: Optional[datetime] = None) -> Tuple[bool, Optional[str]]:
    """
    Weekdays only, 09:30 through 17:00 inclusive, in the trading timezone.

    Returns:
        (allowed, reason) where reason is None when allowed
    """
    tz = ZoneInfo(settings.trading_timezone)
    local = now.astimezone(tz) if now is not None else datetime.now(tz)

    if local.weekday() >= 5:
        return False, WEEKEND_MESSAGE

    hhmm = local.hour * 100 + local.minute
    if hhmm < settings.trading_open_hhmm or hhmm > settings.trading_close_hhmm:
        return False, HOURS_MESSAGE

    return True, None


async def get_trading_status(db: AsyncSession) -> TradingStatus:
    """Return the singleton status row, creating an open one if missing."""
    result = await db.execute(select(TradingStatus).order_by(TradingStatus.id).limit(1))
    status_row = result.scalar_one_or_none()
    if status_row is None:
        status_row = TradingStatus(is_open=True)
        db.add(status_row)
        await db.flush()
    return status_row


async def ensure_trading_allowed(db: AsyncSession, now: Optional[datetime] = None) -> None:
    """
    Raises:
        TradingClosedError: outside trading hours or trading disabled by an admin
    """
    if settings.enforce_trading_hours:
        allowed, reason = check_trading_hours(now)
        if not allowed:
            raise TradingClosedError(reason)

    status_row = await get_trading_status(db)
    if not status_row.is_open:
        raise TradingClosedError(status_row.message or DISABLED_MESSAGE)


async def get_minimum_purchase(db: AsyncSession) -> Optional[MinimumPurchaseSettings]:
    result = await db.execute(select(MinimumPurchaseSettings).order_by(MinimumPurchaseSettings.id).limit(1))
    return result.scalar_one_or_none()


async def save_minimum_purchase(db: AsyncSession, actor_id: int, minimum_amount: Decimal) -> MinimumPurchaseSettings:
    setting = await get_minimum_purchase(db)
    if setting is None:
        setting = MinimumPurchaseSettings()
        db.add(setting)
    setting.minimum_amount = minimum_amount
    setting.updated_by = actor_id
    await db.flush()
    return setting
