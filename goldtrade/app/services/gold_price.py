"""
Gold price feed and shop markup.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import UpstreamFailureError
from goldtrade.app.core.reliability import CircuitOpenError, price_feed_breaker
from goldtrade.app.models.markup_settings import MarkupSettings

logger = logging.getLogger(__name__)

# Futures contracts and housekeeping rows the shop does not quote
UNWANTED_NAMES = frozenset({
    "GFG25", "GFJ25", "GFM25", "SVG25", "SVJ25", "SVM25",
    "GFPTM23-curr", "GF10M23-curr", "GF10Q23-curr", "GF10V23-curr",
    "GFM23-curr", "GFQ23-curr", "GFV23-curr", "SVFM23-curr", "SVFU23-curr",
    "Update",
})

# Row name -> (bid field, ask field, is_percentage)
MARKUP_FIELDS = {
    "GoldSpot": ("gold_spot_bid", "gold_spot_ask", True),
    "99.99%": ("gold_9999_bid", "gold_9999_ask", True),
    "96.5%": ("gold_965_bid", "gold_965_ask", True),
    "สมาคมฯ": ("gold_association_bid", "gold_association_ask", False),
}


def parse_feed(text: str) -> List[Dict[str, Any]]:
    """The feed wraps a JSON array in script text; take the first [...] block."""
    start = text.find("[")
    end = text.find("]", start + 1) if start != -1 else -1
    if start == -1 or end == -1:
        raise UpstreamFailureError("Price feed response did not contain price data")
    try:
        items = json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise UpstreamFailureError("Price feed response could not be parsed") from exc
    if not isinstance(items, list):
        raise UpstreamFailureError("Price feed response could not be parsed")
    return items


def _adjust(value: Any, markup: Decimal, is_percentage: bool) -> Any:
    try:
        price = Decimal(str(value).replace(",", ""))
    except (InvalidOperation, ValueError):
        return value
    if is_percentage:
        adjusted = price * (1 + markup / 100)
    else:
        adjusted = price + markup
    return float(adjusted.quantize(Decimal("0.01")))


def apply_markup(items: List[Dict[str, Any]], markup: Optional[MarkupSettings]) -> List[Dict[str, Any]]:
    """
    Drop unwanted rows and apply the shop's bid/ask adjustments.

    Rows without a configured adjustment pass through unchanged, as does the
    whole list when no markup row exists.
    """
    filtered = [item for item in items if item.get("name") not in UNWANTED_NAMES]
    if markup is None:
        return filtered

    adjusted = []
    for item in filtered:
        fields = MARKUP_FIELDS.get(item.get("name"))
        if fields is None:
            adjusted.append(item)
            continue
        bid_field, ask_field, is_percentage = fields
        row = dict(item)
        if "bid" in row:
            row["bid"] = _adjust(row["bid"], Decimal(str(getattr(markup, bid_field) or 0)), is_percentage)
        if "ask" in row:
            row["ask"] = _adjust(row["ask"], Decimal(str(getattr(markup, ask_field) or 0)), is_percentage)
        adjusted.append(row)
    return adjusted


async def get_markup(db: AsyncSession) -> Optional[MarkupSettings]:
    result = await db.execute(select(MarkupSettings).order_by(MarkupSettings.id).limit(1))
    return result.scalar_one_or_none()


async def save_markup(db: AsyncSession, actor_id: int, values: Dict[str, Decimal]) -> MarkupSettings:
    markup = await get_markup(db)
    if markup is None:
        markup = MarkupSettings()
        db.add(markup)
    for field, value in values.items():
        setattr(markup, field, value)
    markup.updated_by = actor_id
    await db.flush()
    return markup


class GoldPriceService:

    def __init__(self, feed_url: Optional[str] = None, timeout: Optional[float] = None):
        self.feed_url = feed_url or settings.gold_price_feed_url
        self.timeout = timeout or settings.gold_price_feed_timeout

    async def _get(self) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.feed_url)
            response.raise_for_status()
            return response

    async def fetch_raw(self) -> List[Dict[str, Any]]:
        """
        Raises:
            UpstreamFailureError: transport error, non-2xx status or unparsable body
        """
        try:
            response = await price_feed_breaker.call(self._get)
        except CircuitOpenError as exc:
            raise UpstreamFailureError("Gold price feed is temporarily unavailable") from exc
        except httpx.HTTPError as exc:
            logger.error("Gold price feed request failed: %s", exc)
            raise UpstreamFailureError("Failed to fetch gold prices") from exc
        return parse_feed(response.text)

    async def fetch_adjusted(self, db: AsyncSession) -> List[Dict[str, Any]]:
        items = await self.fetch_raw()
        return apply_markup(items, await get_markup(db))
