"""
Payment slip verification.

Calls the EasySlip API with the slip image and checks that the transfer was
made to the shop's own account.
"""

import base64
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import InvalidInputError, InvalidReceiverError, UpstreamFailureError
from goldtrade.app.core.reliability import CircuitOpenError, slip_verifier_breaker
from goldtrade.app.domain.ledger.lot_engine import to_decimal

logger = logging.getLogger(__name__)

NAME_TITLES = {"นาย", "นาง", "นางสาว", "น.ส.", "mr", "mrs", "ms", "miss"}


@dataclass
class SlipData:
    trans_ref: str
    amount: Decimal
    receiver: Dict[str, Any]
    raw: Dict[str, Any]
    receiver_bank_id: Optional[str] = None


@dataclass
class ExpectedReceiver:
    name_th: str
    name_en: str
    account: str
    account_type: Optional[str]
    bank_id: Optional[str] = None

    @classmethod
    def from_settings(cls) -> "ExpectedReceiver":
        return cls(
            name_th=settings.receiver_name_th,
            name_en=settings.receiver_name_en,
            account=settings.receiver_account,
            account_type=settings.receiver_account_type,
            bank_id=settings.receiver_bank_id,
        )


def parse_slip_response(payload: Dict[str, Any]) -> SlipData:
    data = payload.get("data") or {}
    trans_ref = data.get("transRef")
    amount = (data.get("amount") or {}).get("amount")
    if not trans_ref or amount is None:
        raise UpstreamFailureError("Slip verification returned an incomplete response")
    try:
        amount = to_decimal(amount)
    except InvalidOperation as exc:
        raise InvalidInputError("Slip amount is not a number", details={"amount": str(amount)}) from exc
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError("Slip amount must be greater than zero", details={"amount": str(amount)})
    receiver = data.get("receiver") or {}
    bank_id = (receiver.get("bank") or {}).get("id")
    return SlipData(
        trans_ref=str(trans_ref),
        amount=amount,
        receiver=receiver.get("account") or {},
        raw=data,
        receiver_bank_id=str(bank_id) if bank_id is not None else None,
    )


class EasySlipClient:
    """Thin async client for the EasySlip verify endpoint."""

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_url = api_url or settings.easyslip_api_url
        self.api_key = api_key if api_key is not None else settings.easyslip_api_key
        self.timeout = timeout or settings.easyslip_timeout

    async def _post(self, image: bytes) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"image": base64.b64encode(image).decode("ascii")},
            )

    async def verify(self, image: bytes) -> SlipData:
        """
        Verify a slip image.

        Raises:
            UpstreamFailureError: transport failure (502) or a non-2xx answer,
                whose message and status are passed through
        """
        try:
            response = await slip_verifier_breaker.call(self._post, image)
        except CircuitOpenError as exc:
            raise UpstreamFailureError("Slip verification is temporarily unavailable") from exc
        except httpx.HTTPError as exc:
            logger.error("EasySlip request failed: %s", exc)
            raise UpstreamFailureError("Slip verification service unreachable") from exc

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or "Slip verification failed"
            except ValueError:
                message = "Slip verification failed"
            logger.warning("EasySlip rejected slip: %s %s", response.status_code, message)
            raise UpstreamFailureError(message, status_code=response.status_code)

        return parse_slip_response(response.json())


def normalize_name(name: Optional[str]) -> str:
    if not name:
        return ""
    name = name.replace(".", " ").lower()
    return " ".join(name.split())


def _name_tokens(name: str) -> List[str]:
    return [token for token in normalize_name(name).split() if token not in NAME_TITLES]


def names_match(actual: Optional[str], expected: str) -> bool:
    """
    Exact match after normalization, else a partial match: one name contains
    the other, or first name and surname initial agree.
    """
    actual_norm = normalize_name(actual)
    expected_norm = normalize_name(expected)
    if not actual_norm or not expected_norm:
        return False
    if actual_norm == expected_norm:
        return True

    actual_tokens = _name_tokens(actual_norm)
    expected_tokens = _name_tokens(expected_norm)
    if len(actual_tokens) < 2 or len(expected_tokens) < 2:
        return False
    if actual_norm in expected_norm or expected_norm in actual_norm:
        return True
    return (
        actual_tokens[0] == expected_tokens[0]
        and actual_tokens[1][0] == expected_tokens[1][0]
    )


def accounts_match(actual: Optional[str], expected: str) -> bool:
    """
    Bank apps mask different digits of the same account number, so a
    visible run of at least three digits shared by both is accepted.
    """
    if not actual:
        return False
    if actual.strip().lower() == expected.strip().lower():
        return True

    actual_digits = re.sub(r"\D", "", actual)
    expected_digits = re.sub(r"\D", "", expected)
    for run in re.findall(r"\d{3,}", expected):
        if run in actual_digits:
            return True
    for run in re.findall(r"\d{3,}", actual):
        if run in expected_digits:
            return True
    return False


def validate_receiver(
    receiver: Dict[str, Any],
    expected: Optional[ExpectedReceiver] = None,
    bank_id: Optional[str] = None,
) -> None:
    """
    The receiving bank is only compared when an expected bank id is configured.

    Raises:
        InvalidReceiverError: the slip was paid to another account
    """
    expected = expected or ExpectedReceiver.from_settings()
    if expected.bank_id and bank_id != expected.bank_id:
        raise InvalidReceiverError(details={"reason": "bank"})
    bank = receiver.get("bank") or {}
    name = receiver.get("name") or {}

    if expected.account_type and bank.get("type") != expected.account_type:
        raise InvalidReceiverError(details={"reason": "account_type"})

    if not accounts_match(bank.get("account"), expected.account):
        raise InvalidReceiverError(details={"reason": "account"})

    if not (names_match(name.get("th"), expected.name_th) or names_match(name.get("en"), expected.name_en)):
        raise InvalidReceiverError(details={"reason": "name"})
