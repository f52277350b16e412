"""
Integration tests for gold delivery and cash payout requests.
"""

from decimal import Decimal

import pytest

from goldtrade.app.domain.ledger import balances

GOLD = "ทองสมาคม 96.5%"

DELIVERY = {"name": "Somchai Jaidee", "tel": "0812345678", "address": "99 Sukhumvit Rd, Bangkok"}


async def buy(client, headers, amount, price):
    await client.post(
        "/v1/transactions/buy",
        json={
            "goldType": GOLD,
            "amount": str(amount),
            "pricePerUnit": str(price),
            "totalPrice": str(Decimal(str(amount)) * Decimal(str(price))),
        },
        headers=headers,
    )


async def holdings(client, headers):
    lots = (await client.get("/v1/gold-assets", headers=headers)).json()["lots"]
    return sum((Decimal(lot["amount"]) for lot in lots), Decimal("0"))


@pytest.mark.asyncio
async def test_gold_withdrawal_takes_gold_on_request(client, member):
    _, headers = member
    await buy(client, headers, "2", "30000")

    response = await client.post(
        "/v1/withdraw-requests", json={"goldType": GOLD, "amount": "1.5", **DELIVERY}, headers=headers
    )
    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    assert await holdings(client, headers) == Decimal("0.5")


@pytest.mark.asyncio
async def test_gold_withdrawal_beyond_holdings(client, member):
    _, headers = member
    await buy(client, headers, "1", "30000")

    response = await client.post(
        "/v1/withdraw-requests", json={"goldType": GOLD, "amount": "2", **DELIVERY}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_LEDGER_001"


@pytest.mark.asyncio
async def test_rejected_gold_withdrawal_returns_gold(client, member, admin):
    _, headers = member
    _, admin_headers = admin
    await buy(client, headers, "1", "30000")
    await buy(client, headers, "1", "32000")

    request = (await client.post(
        "/v1/withdraw-requests", json={"goldType": GOLD, "amount": "2", **DELIVERY}, headers=headers
    )).json()

    response = await client.post(
        f"/v1/withdraw-requests/{request['id']}/decision", json={"action": "reject"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"

    assets = (await client.get("/v1/gold-assets", headers=headers)).json()
    assert len(assets["lots"]) == 1
    assert Decimal(assets["lots"][0]["amount"]) == Decimal("2")
    # Returned at the average cost of what was taken
    assert Decimal(assets["summaries"][0]["averageCost"]) == Decimal("31000")

    again = await client.post(
        f"/v1/withdraw-requests/{request['id']}/decision", json={"action": "approve"}, headers=admin_headers
    )
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_withdrawal_lists_are_scoped(client, member, other_member, admin):
    _, headers = member
    _, other_headers = other_member
    _, admin_headers = admin
    await buy(client, headers, "1", "30000")
    await buy(client, other_headers, "1", "30000")
    for h in (headers, other_headers):
        await client.post("/v1/withdraw-requests", json={"goldType": GOLD, "amount": "1", **DELIVERY}, headers=h)

    assert len((await client.get("/v1/withdraw-requests", headers=headers)).json()) == 1
    assert len((await client.get("/v1/withdraw-requests", headers=admin_headers)).json()) == 2


@pytest.mark.asyncio
async def test_cash_withdrawal_cannot_overdraw(client, member):
    _, headers = member
    response = await client.post(
        "/v1/withdraw-money/request",
        json={"amount": "100", "bank": "kbank", "accountNumber": "1234567890", "accountName": "Somchai Jaidee"},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Insufficient balance. You have ฿0 available."


@pytest.mark.asyncio
async def test_cash_withdrawal_reject_refunds(client, member, admin, db_session):
    user, headers = member
    _, admin_headers = admin
    await balances.credit(db_session, user.id, Decimal("1000"))
    await db_session.commit()

    request = await client.post(
        "/v1/withdraw-money/request",
        json={"amount": "400", "bank": "kbank", "accountNumber": "1234567890", "accountName": "Somchai Jaidee"},
        headers=headers,
    )
    assert request.status_code == 201
    assert Decimal((await client.get("/v1/user/balance", headers=headers)).json()["balance"]) == Decimal("600")

    response = await client.post(
        f"/v1/withdraw-money/{request.json()['id']}/decision", json={"action": "reject"}, headers=admin_headers
    )
    assert response.json()["status"] == "rejected"
    assert Decimal((await client.get("/v1/user/balance", headers=headers)).json()["balance"]) == Decimal("1000")


@pytest.mark.asyncio
async def test_cash_withdrawal_approve_keeps_debit(client, member, admin, db_session):
    user, headers = member
    _, admin_headers = admin
    await balances.credit(db_session, user.id, Decimal("1000"))
    await db_session.commit()

    request = (await client.post(
        "/v1/withdraw-money/request",
        json={"amount": "1000", "bank": "scb", "accountNumber": "1234567890", "accountName": "Somchai Jaidee"},
        headers=headers,
    )).json()

    response = await client.post(
        f"/v1/withdraw-money/{request['id']}/decision", json={"action": "approve"}, headers=admin_headers
    )
    assert response.json()["status"] == "approved"
    assert Decimal((await client.get("/v1/user/balance", headers=headers)).json()["balance"]) == Decimal("0")


@pytest.mark.asyncio
async def test_decisions_are_admin_only(client, member):
    _, headers = member
    response = await client.post("/v1/withdraw-money/1/decision", json={"action": "approve"}, headers=headers)
    assert response.status_code == 403
