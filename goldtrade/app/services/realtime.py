"""
Real-time ledger events over Redis pub/sub.

Clients subscribe to the transactions channel to refresh balances and stock.
Publishing is best-effort and happens after the database commit.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError

import goldtrade.app.core.redis_client as redis_client_module
from goldtrade.app.core.config import settings

logger = logging.getLogger(__name__)


class RealtimeEvent:
    TRANSACTION = "transaction"
    EXCHANGE = "exchange"
    ADD_TO_USER = "add-to-user"
    TRANSACTION_UPDATED = "transaction-updated"
    TRANSACTION_CANCELED = "transaction-canceled"
    TRANSACTION_DELETED = "transaction-deleted"
    PRICE_UPDATE = "price-update"


async def publish(event: str, payload: Dict[str, Any], channel: Optional[str] = None) -> bool:
    """
    Publish an event; failures are logged and reported as False.
    """
    message = {
        "event": event,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **jsonable_encoder(payload),
    }
    try:
        await redis_client_module.redis_client.publish(
            channel or settings.realtime_channel, json.dumps(message, ensure_ascii=False)
        )
    except (RedisError, OSError) as exc:
        logger.warning("Realtime publish of '%s' failed: %s", event, exc)
        return False
    return True


async def publish_price_update(prices: Any) -> bool:
    return await publish(RealtimeEvent.PRICE_UPDATE, {"prices": prices}, channel=settings.price_channel)
