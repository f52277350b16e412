"""
Integration tests for deposits.

Slip verification runs against a fake verifier client; the EasySlip HTTP
call itself is covered in test_slip_verifier.py.
"""

from decimal import Decimal

import pytest

from goldtrade.app.api.v1.endpoints.deposits import get_slip_client
from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import UpstreamFailureError
from goldtrade.app.domain.deposit.slip_verifier import SlipData
from goldtrade.app.main import app
from goldtrade.app.models.deposit_limit import DepositLimit

SHOP_RECEIVER = {
    "name": {"th": "นาย บรรณศาสตร์ ว", "en": "MR. BANNASART W"},
    "bank": {"type": "BANKAC", "account": "xxx-x-x5245-x"},
}


class FakeSlipClient:
    """Returns queued results in order; exceptions are raised."""

    def __init__(self):
        self.results = []
        self.calls = 0

    def queue(self, result):
        self.results.append(result)

    async def verify(self, image: bytes):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def slip(trans_ref, amount, receiver=None):
    return SlipData(trans_ref=trans_ref, amount=Decimal(amount), receiver=receiver or SHOP_RECEIVER, raw={})


@pytest.fixture
def slip_client():
    fake = FakeSlipClient()
    app.dependency_overrides[get_slip_client] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_slip_client, None)


@pytest.fixture
async def default_tier(db_session):
    tier = DepositLimit(
        name=settings.default_deposit_limit_name,
        daily_limit=Decimal("1000"),
        monthly_limit=Decimal("5000"),
    )
    db_session.add(tier)
    await db_session.commit()
    return tier


async def upload(client, headers, content=b"\xff\xd8\xff\xe0jpeg", content_type="image/jpeg"):
    return await client.post(
        "/v1/verify-slip",
        files={"slip": ("slip.jpg", content, content_type)},
        data={"amount": "500"},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_verified_slip_credits_balance(client, member, slip_client, default_tier):
    _, headers = member
    slip_client.queue(slip("REF-001", "500"))

    response = await upload(client, headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == 200
    assert data["message"] == "success"
    assert Decimal(data["amount"]) == Decimal("500")
    assert Decimal(data["balance"]) == Decimal("500")


@pytest.mark.asyncio
async def test_slip_is_credited_only_once(client, member, other_member, slip_client, default_tier):
    _, headers = member
    _, other_headers = other_member
    slip_client.queue(slip("REF-002", "500"))
    slip_client.queue(slip("REF-002", "500"))
    slip_client.queue(slip("REF-002", "500"))

    assert (await upload(client, headers)).status_code == 200

    again = await upload(client, headers)
    assert again.status_code == 400
    assert again.json()["message"] == "slip_already_used"

    # Another customer cannot claim it either
    stolen = await upload(client, other_headers)
    assert stolen.json()["message"] == "slip_already_used"

    balance = await client.get("/v1/user/balance", headers=headers)
    assert Decimal(balance.json()["balance"]) == Decimal("500")


@pytest.mark.asyncio
async def test_slip_paid_to_another_account(client, member, slip_client, default_tier):
    _, headers = member
    receiver = {
        "name": {"th": "นาย บรรณศาสตร์ ว", "en": "MR. BANNASART W"},
        "bank": {"type": "BANKAC", "account": "xxx-x-x9911-x"},
    }
    slip_client.queue(slip("REF-003", "500", receiver=receiver))

    response = await upload(client, headers)
    assert response.status_code == 400
    assert response.json()["message"] == "invalid_receiver"
    assert response.json()["details"]["reason"] == "account"


@pytest.mark.asyncio
async def test_missing_or_invalid_upload(client, member, slip_client, monkeypatch):
    _, headers = member

    response = await client.post("/v1/verify-slip", data={"amount": "500"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "invalid_payload"

    response = await upload(client, headers, content=b"%PDF-1.4", content_type="application/pdf")
    assert response.json()["message"] == "invalid_image"

    monkeypatch.setattr(settings, "slip_max_bytes", 4)
    response = await upload(client, headers)
    assert response.json()["message"] == "image_size_too_large"

    assert slip_client.calls == 0


@pytest.mark.asyncio
async def test_upstream_errors(client, member, slip_client):
    _, headers = member
    slip_client.queue(UpstreamFailureError("qrcode_not_found", status_code=404))
    slip_client.queue(UpstreamFailureError("Slip verification service unreachable"))

    response = await upload(client, headers)
    assert response.status_code == 404
    assert response.json()["message"] == "qrcode_not_found"

    response = await upload(client, headers)
    assert response.status_code == 502
    assert response.json()["message"] == "server_error"


@pytest.mark.asyncio
async def test_zero_amount_slip_is_invalid_payload(client, member, slip_client, default_tier):
    _, headers = member
    slip_client.queue(slip("REF-005", "0"))

    response = await upload(client, headers)
    assert response.status_code == 400
    data = response.json()
    assert data["status"] == 400
    assert data["message"] == "invalid_payload"

    # The reference was not burned
    slip_client.queue(slip("REF-005", "500"))
    assert (await upload(client, headers)).json()["message"] == "success"


@pytest.mark.asyncio
async def test_unexpected_failure_keeps_slip_response_shape(client, member, slip_client, default_tier):
    _, headers = member
    slip_client.queue(RuntimeError("boom"))

    response = await upload(client, headers)
    assert response.status_code == 500
    assert response.json() == {"status": 500, "message": "server_error"}

    balance = await client.get("/v1/user/balance", headers=headers)
    assert Decimal(balance.json()["balance"]) == Decimal("0")


@pytest.mark.asyncio
async def test_slip_to_another_bank_when_bank_is_configured(client, member, slip_client, default_tier, monkeypatch):
    _, headers = member
    monkeypatch.setattr(settings, "receiver_bank_id", "004")
    slip_client.queue(SlipData(
        trans_ref="REF-006", amount=Decimal("500"), receiver=SHOP_RECEIVER, raw={}, receiver_bank_id="014",
    ))

    response = await upload(client, headers)
    assert response.json()["message"] == "invalid_receiver"
    assert response.json()["details"]["reason"] == "bank"


@pytest.mark.asyncio
async def test_deposit_without_any_tier(client, member, slip_client):
    _, headers = member
    slip_client.queue(slip("REF-004", "100"))

    response = await upload(client, headers)
    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "deposit_limit_exceeded"
    assert data["details"]["message"] == "No deposit limit set for user"


@pytest.mark.asyncio
async def test_daily_limit_is_inclusive(client, member, slip_client, default_tier):
    _, headers = member
    slip_client.queue(slip("REF-010", "600"))
    slip_client.queue(slip("REF-011", "400"))
    slip_client.queue(slip("REF-012", "0.01"))

    assert (await upload(client, headers)).status_code == 200
    # Reaching the limit exactly is allowed
    assert (await upload(client, headers)).status_code == 200

    response = await upload(client, headers)
    assert response.status_code == 400
    data = response.json()
    assert data["details"]["message"] == "Deposit would exceed daily limit of ฿1,000.00"
    assert data["details"]["period"] == "daily"

    balance = await client.get("/v1/user/balance", headers=headers)
    assert Decimal(balance.json()["balance"]) == Decimal("1000")


@pytest.mark.asyncio
async def test_monthly_limit(client, member, slip_client, db_session):
    _, headers = member
    db_session.add(DepositLimit(
        name=settings.default_deposit_limit_name,
        daily_limit=Decimal("100000"),
        monthly_limit=Decimal("2000"),
    ))
    await db_session.commit()
    slip_client.queue(slip("REF-020", "2000.01"))

    response = await upload(client, headers)
    assert response.status_code == 400
    assert response.json()["details"]["message"] == "Deposit would exceed monthly limit of ฿2,000.00"


@pytest.mark.asyncio
async def test_user_deposit_limit_usage(client, member, slip_client, default_tier):
    _, headers = member
    slip_client.queue(slip("REF-030", "250"))
    await upload(client, headers)

    response = await client.get("/v1/user/deposit-limit", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["limit"]["name"] == settings.default_deposit_limit_name
    assert Decimal(data["dailyUsed"]) == Decimal("250")
    assert Decimal(data["monthlyUsed"]) == Decimal("250")


@pytest.mark.asyncio
async def test_deposit_limit_admin_flow(client, admin, member):
    _, admin_headers = admin
    user, headers = member

    response = await client.post(
        "/v1/deposit-limits",
        json={"name": "Level 2", "dailyLimit": "100000", "monthlyLimit": "1000000"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    tier = response.json()

    duplicate = await client.post(
        "/v1/deposit-limits",
        json={"name": "Level 2", "dailyLimit": "1", "monthlyLimit": "1"},
        headers=admin_headers,
    )
    assert duplicate.status_code == 400

    response = await client.put(
        f"/v1/deposit-limits/{tier['id']}", json={"dailyLimit": "150000"}, headers=admin_headers
    )
    assert Decimal(response.json()["dailyLimit"]) == Decimal("150000")

    response = await client.post(
        "/v1/user/deposit-limit", json={"userId": user.id, "limitId": tier["id"]}, headers=admin_headers
    )
    assert response.status_code == 200
    mine = (await client.get("/v1/user/deposit-limit", headers=headers)).json()
    assert mine["limit"]["name"] == "Level 2"

    response = await client.delete(f"/v1/deposit-limits/{tier['id']}", headers=admin_headers)
    assert response.status_code == 200
    mine = (await client.get("/v1/user/deposit-limit", headers=headers)).json()
    assert mine["limit"] is None


@pytest.mark.asyncio
async def test_deposit_limits_are_admin_only(client, member):
    _, headers = member
    response = await client.post(
        "/v1/deposit-limits",
        json={"name": "Level 9", "dailyLimit": "1", "monthlyLimit": "1"},
        headers=headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_recent_deposits_newest_first(client, member, other_member, slip_client, default_tier):
    _, headers = member
    _, other_headers = other_member
    for index in range(6):
        slip_client.queue(slip(f"REF-04{index}", "10"))
        await upload(client, headers)
    slip_client.queue(slip("REF-050", "20"))
    await upload(client, other_headers)

    response = await client.get("/v1/deposits/recent", headers=headers)
    assert response.status_code == 200
    deposits = response.json()
    assert len(deposits) == 5
    assert all(item["status"] == "completed" for item in deposits)
    assert all(Decimal(item["amount"]) == Decimal("10") for item in deposits)
    ids = [item["id"] for item in deposits]
    assert ids == sorted(ids, reverse=True)
