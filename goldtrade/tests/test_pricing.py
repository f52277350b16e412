"""
Tests for the gold price feed, shop markup and the trading window.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from goldtrade.app.api.v1.endpoints.pricing import get_price_service
from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import TradingClosedError, UpstreamFailureError
from goldtrade.app.domain.ledger.trading_guard import (
    HOURS_MESSAGE,
    WEEKEND_MESSAGE,
    check_trading_hours,
    ensure_trading_allowed,
)
from goldtrade.app.main import app
from goldtrade.app.services.gold_price import apply_markup, parse_feed

FEED_TEXT = (
    'var gtdata = [{"name":"GoldSpot","bid":"2650.50","ask":"2651.00","diff":"1.2"},'
    '{"name":"99.99%","bid":"41000","ask":"41100","diff":"50"},'
    '{"name":"96.5%","bid":"40000","ask":"40100","diff":"50"},'
    '{"name":"สมาคมฯ","bid":"40500","ask":"40600","diff":"50"},'
    '{"name":"GFG25","bid":"40550","ask":"40560","diff":"0"},'
    '{"name":"Update","bid":"","ask":"","diff":""}];'
)


def markup(**values):
    fields = {
        "gold_spot_bid": 0, "gold_spot_ask": 0,
        "gold_9999_bid": 0, "gold_9999_ask": 0,
        "gold_965_bid": 0, "gold_965_ask": 0,
        "gold_association_bid": 0, "gold_association_ask": 0,
    }
    fields.update(values)
    return SimpleNamespace(**fields)


def test_parse_feed_extracts_array():
    items = parse_feed(FEED_TEXT)
    assert [item["name"] for item in items][:2] == ["GoldSpot", "99.99%"]
    assert len(items) == 6


def test_parse_feed_without_data():
    with pytest.raises(UpstreamFailureError):
        parse_feed("<html>maintenance</html>")


def test_apply_markup_filters_and_adjusts():
    items = parse_feed(FEED_TEXT)
    adjusted = apply_markup(items, markup(gold_965_bid=1, gold_965_ask=2, gold_association_ask=100))
    by_name = {item["name"]: item for item in adjusted}

    assert "GFG25" not in by_name
    assert "Update" not in by_name
    # Percentage rows
    assert by_name["96.5%"]["bid"] == 40400.0
    assert by_name["96.5%"]["ask"] == 40902.0
    # Fixed offset row
    assert by_name["สมาคมฯ"]["bid"] == 40500.0
    assert by_name["สมาคมฯ"]["ask"] == 40700.0
    # Untouched fields pass through
    assert by_name["96.5%"]["diff"] == "50"


def test_apply_markup_without_settings_only_filters():
    adjusted = apply_markup(parse_feed(FEED_TEXT), None)
    assert len(adjusted) == 4
    assert adjusted[0]["bid"] == "2650.50"


class FakePriceService:
    async def fetch_adjusted(self, db):
        return [{"name": "96.5%", "bid": 40000.0, "ask": 40100.0}]


@pytest.mark.asyncio
async def test_gold_endpoint_publishes_prices(client, redis_client_session):
    app.dependency_overrides[get_price_service] = FakePriceService
    try:
        response = await client.get("/v1/gold")
    finally:
        app.dependency_overrides.pop(get_price_service, None)

    assert response.status_code == 200
    assert response.json()[0]["name"] == "96.5%"
    channel, message = redis_client_session.published[-1]
    assert channel == settings.price_channel
    assert message["event"] == "price-update"


@pytest.mark.asyncio
async def test_markup_roundtrip_requires_admin(client, admin, member):
    _, admin_headers = admin
    _, headers = member

    response = await client.get("/v1/markup")
    assert response.status_code == 200
    assert response.json()["gold965Bid"] == "0"

    body = {"gold965Bid": "0.5", "goldAssociationAsk": "150"}
    assert (await client.post("/v1/markup", json=body, headers=headers)).status_code == 403

    response = await client.post("/v1/markup", json=body, headers=admin_headers)
    assert response.status_code == 200

    current = (await client.get("/v1/markup")).json()
    assert float(current["gold965Bid"]) == 0.5
    assert float(current["goldAssociationAsk"]) == 150


# 2026-10-16 is a Friday; Bangkok is UTC+7
@pytest.mark.parametrize("utc, allowed, reason", [
    (datetime(2026, 10, 16, 2, 30, tzinfo=timezone.utc), True, None),
    (datetime(2026, 10, 16, 2, 29, tzinfo=timezone.utc), False, HOURS_MESSAGE),
    (datetime(2026, 10, 16, 10, 0, tzinfo=timezone.utc), True, None),
    (datetime(2026, 10, 16, 10, 1, tzinfo=timezone.utc), False, HOURS_MESSAGE),
    (datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc), False, WEEKEND_MESSAGE),
])
def test_trading_hours(utc, allowed, reason):
    assert check_trading_hours(utc) == (allowed, reason)


@pytest.mark.asyncio
async def test_ensure_trading_allowed_outside_hours(db_session, monkeypatch):
    monkeypatch.setattr(settings, "enforce_trading_hours", True)

    with pytest.raises(TradingClosedError) as exc_info:
        await ensure_trading_allowed(db_session, datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc))
    assert exc_info.value.message == WEEKEND_MESSAGE

    await ensure_trading_allowed(db_session, datetime(2026, 10, 16, 4, 0, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_trading_status_reports_window(client):
    response = await client.get("/v1/trading-status")
    assert response.status_code == 200
    data = response.json()
    assert data["isOpen"] is True
    assert "withinTradingHours" in data


@pytest.mark.asyncio
async def test_minimum_purchase_defaults_and_admin_update(client, admin, member):
    _, admin_headers = admin
    _, headers = member

    response = await client.get("/v1/minimum-purchase")
    assert response.status_code == 200
    assert float(response.json()["minimumAmount"]) == 0

    body = {"minimumAmount": "1000"}
    assert (await client.post("/v1/minimum-purchase", json=body, headers=headers)).status_code == 403

    response = await client.post("/v1/minimum-purchase", json=body, headers=admin_headers)
    assert response.status_code == 200
    await client.post("/v1/minimum-purchase", json={"minimumAmount": "1500.50"}, headers=admin_headers)

    current = (await client.get("/v1/minimum-purchase")).json()
    assert float(current["minimumAmount"]) == 1500.5

    negative = await client.post("/v1/minimum-purchase", json={"minimumAmount": "-1"}, headers=admin_headers)
    assert negative.status_code == 422
