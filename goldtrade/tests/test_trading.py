"""
Integration tests for customer trading.

Buy and sell through the API, transaction history, the trading switch and
the realtime events that follow a trade.
"""

from decimal import Decimal

import pytest

GOLD = "ทองสมาคม 96.5%"


def trade(amount, price, kind=None):
    body = {
        "goldType": GOLD,
        "amount": str(amount),
        "pricePerUnit": str(price),
        "totalPrice": str(Decimal(str(amount)) * Decimal(str(price))),
    }
    if kind:
        body["type"] = kind
    return body


@pytest.mark.asyncio
async def test_buy_adds_lot_and_debits_cash(client, member):
    user, headers = member

    response = await client.post("/v1/transactions/buy", json=trade("2", "30000"), headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert Decimal(data["balance"]) == Decimal("-60000")
    # Shop stock after the sale: no inventory, 2 promised to the customer
    assert Decimal(data["goldAmount"]) == Decimal("-2")

    assets = await client.get("/v1/gold-assets", headers=headers)
    assert assets.status_code == 200
    lots = assets.json()["lots"]
    assert len(lots) == 1
    assert Decimal(lots[0]["amount"]) == Decimal("2")
    assert Decimal(lots[0]["purchasePrice"]) == Decimal("30000")
    assert lots[0]["reason"] == "PURCHASE"


@pytest.mark.asyncio
async def test_sell_reports_cost_basis_and_profit(client, member):
    _, headers = member
    await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)
    await client.post("/v1/transactions/buy", json=trade("1", "32000"), headers=headers)

    response = await client.post("/v1/transactions/sell", json=trade("1", "31000"), headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["previousAvgCost"]) == Decimal("31000")
    assert Decimal(data["previousTotalCost"]) == Decimal("62000")
    assert Decimal(data["profitLoss"]) == Decimal("0")
    assert Decimal(data["goldAmount"]) == Decimal("1")
    assert Decimal(data["averageCost"]) == Decimal("32000")
    assert Decimal(data["balance"]) == Decimal("-31000")


@pytest.mark.asyncio
async def test_sell_more_than_held_is_rejected(client, member):
    _, headers = member
    await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)

    response = await client.post("/v1/transactions/sell", json=trade("3", "30000"), headers=headers)
    assert response.status_code == 400
    data = response.json()
    assert data["error_code"] == "ERR_LEDGER_001"
    assert data["message"] == "Insufficient gold balance. You have 1 units available."

    # Holdings and cash untouched
    balance = await client.get("/v1/user/balance", headers=headers)
    assert Decimal(balance.json()["balance"]) == Decimal("-30000")


@pytest.mark.asyncio
async def test_combined_endpoint_defaults_to_buy(client, member):
    _, headers = member
    response = await client.post("/v1/transactions", json=trade("1", "30000"), headers=headers)
    assert response.status_code == 200
    assert "profitLoss" not in response.json()

    response = await client.post("/v1/transactions", json=trade("1", "31000", kind="sell"), headers=headers)
    assert response.status_code == 200
    assert Decimal(response.json()["profitLoss"]) == Decimal("1000")


@pytest.mark.asyncio
async def test_trade_requires_positive_values(client, member):
    _, headers = member
    response = await client.post("/v1/transactions/buy", json=trade("0", "30000"), headers=headers)
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0.0000001", "1e25"])
async def test_trade_rejects_amounts_outside_stored_precision(client, member, amount):
    _, headers = member
    body = {"goldType": GOLD, "amount": amount, "pricePerUnit": "30000", "totalPrice": "30000"}

    response = await client.post("/v1/transactions/buy", json=body, headers=headers)
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"

    assets = await client.get("/v1/gold-assets", headers=headers)
    assert assets.json()["lots"] == []


@pytest.mark.asyncio
async def test_trade_requires_authentication(client):
    response = await client.post("/v1/transactions/buy", json=trade("1", "30000"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_trading_switched_off_blocks_trades(client, member, admin):
    _, headers = member
    _, admin_headers = admin

    response = await client.post(
        "/v1/trading-status",
        json={"isOpen": False, "message": "Closed for maintenance"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["isOpen"] is False

    response = await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_TRADING_001"
    assert response.json()["message"] == "Closed for maintenance"

    await client.post("/v1/trading-status", json={"isOpen": True}, headers=admin_headers)
    response = await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_only_admin_changes_trading_status(client, member):
    _, headers = member
    response = await client.post("/v1/trading-status", json={"isOpen": False}, headers=headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_trade_publishes_realtime_event(client, member, redis_client_session):
    user, headers = member
    await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)

    events = redis_client_session.events("transaction")
    assert len(events) == 1
    assert events[0]["type"] == "buy"
    assert events[0]["userId"] == user.id
    assert events[0]["goldType"] == GOLD


@pytest.mark.asyncio
async def test_history_is_scoped_to_caller(client, member, other_member, admin):
    user, headers = member
    other, other_headers = other_member
    _, admin_headers = admin

    await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)
    await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)
    await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=other_headers)

    mine = (await client.get("/v1/transactions/history", headers=headers)).json()
    assert mine["total"] == 2
    assert all(item["userId"] == user.id for item in mine["items"])
    assert mine["items"][0]["type"] == "buy"

    # user_id is ignored for customers
    mine_again = (await client.get(
        "/v1/transactions/history", params={"user_id": other.id}, headers=headers
    )).json()
    assert mine_again["total"] == 2

    theirs = (await client.get(
        "/v1/transactions/history", params={"user_id": other.id}, headers=admin_headers
    )).json()
    assert theirs["total"] == 1

    everyone = (await client.get("/v1/transactions/history", headers=admin_headers)).json()
    assert everyone["total"] == 3


@pytest.mark.asyncio
async def test_history_pagination(client, member):
    _, headers = member
    for _ in range(3):
        await client.post("/v1/transactions/buy", json=trade("1", "30000"), headers=headers)

    page = (await client.get(
        "/v1/transactions/history", params={"page": 2, "page_size": 2}, headers=headers
    )).json()
    assert page["total"] == 3
    assert len(page["items"]) == 1
    assert page["pageSize"] == 2
