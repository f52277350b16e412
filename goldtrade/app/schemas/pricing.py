"""
Price, markup and trading status schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from goldtrade.app.schemas.common import CamelModel


class MarkupSettingsSchema(CamelModel):
    gold_spot_bid: Decimal = Decimal("0")
    gold_spot_ask: Decimal = Decimal("0")
    gold_9999_bid: Decimal = Decimal("0")
    gold_9999_ask: Decimal = Decimal("0")
    gold_965_bid: Decimal = Decimal("0")
    gold_965_ask: Decimal = Decimal("0")
    gold_association_bid: Decimal = Decimal("0")
    gold_association_ask: Decimal = Decimal("0")


class TradingStatusUpdate(CamelModel):
    is_open: bool
    message: Optional[str] = Field(default=None, max_length=500)


class TradingStatusResponse(CamelModel):
    is_open: bool
    message: Optional[str] = None
    within_trading_hours: bool
    hours_message: Optional[str] = None
    updated_at: Optional[datetime] = None


class MinimumPurchaseSchema(CamelModel):
    minimum_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=20, decimal_places=2)
