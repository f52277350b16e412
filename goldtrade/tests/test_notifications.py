"""
Tests for notification formatting and delivery.
"""

import smtplib
from decimal import Decimal

import httpx
import pytest

from goldtrade.app.core.config import settings
from goldtrade.app.services.notification_service import (
    NotificationService,
    dispatch,
    format_gold,
    format_number,
)


def test_format_number():
    assert format_number(Decimal("30000")) == "30,000"
    assert format_number(Decimal("1234.5")) == "1,234.5"
    assert format_number(Decimal("0.12345")) == "0.123"


def test_format_gold_shows_grams():
    assert format_gold(Decimal("1.5")) == "1.5000 บาท (22.80 กรัม)"


def test_purchase_message():
    message = NotificationService.purchase_message(
        user_name="Somchai Jaidee",
        gold_type="ทองสมาคม 96.5%",
        amount=Decimal("1"),
        price_per_unit=Decimal("40100"),
        total_price=Decimal("40100"),
        total_user_balance=Decimal("125000.50"),
        remaining_amount=Decimal("9"),
    )
    assert message.startswith("🏆 *Update Stock!*")
    assert "👤 User: Somchai Jaidee" in message
    assert "💵 Price/Unit: ฿40,100" in message
    assert "เงินสดในระบบลูกค้าทั้งหมด: ฿125,000.5" in message
    assert message.endswith("📊 คงเหลือ: 9.0000 บาท (136.80 กรัม)")


def test_sale_message_reports_loss():
    message = NotificationService.sale_message(
        user_name="Somchai Jaidee",
        gold_type="ทองสมาคม 96.5%",
        amount=Decimal("1"),
        price_per_unit=Decimal("39000"),
        total_price=Decimal("39000"),
        profit_loss=Decimal("-1100"),
        total_user_balance=Decimal("0"),
    )
    assert "📉 Loss: ฿1,100" in message
    assert "คงเหลือ" not in message


def test_cash_withdrawal_message_names_bank():
    message = NotificationService.cash_withdrawal_message(
        "Somchai Jaidee", Decimal("5000"), "kbank", "Somchai Jaidee", "1234567890"
    )
    assert "🏦 Bank: ธนาคารกสิกรไทย" in message
    unknown = NotificationService.cash_withdrawal_message(
        "Somchai Jaidee", Decimal("5000"), "uob", "Somchai Jaidee", "1234567890"
    )
    assert "🏦 Bank: uob" in unknown


@pytest.mark.asyncio
async def test_telegram_skipped_when_unconfigured():
    assert await NotificationService.send_telegram("hello") is False


@pytest.mark.asyncio
async def test_telegram_posts_markdown(mocker, monkeypatch):
    monkeypatch.setattr(settings, "telegram_bot_token", "123:abc")
    monkeypatch.setattr(settings, "telegram_chat_id", "-100200")
    request = httpx.Request("POST", "https://api.telegram.org/bot123:abc/sendMessage")
    post = mocker.patch.object(httpx.AsyncClient, "post", return_value=httpx.Response(200, request=request))

    assert await NotificationService.send_telegram("*hi*") is True
    url = post.call_args.args[0]
    assert url == "https://api.telegram.org/bot123:abc/sendMessage"
    assert post.call_args.kwargs["json"]["parse_mode"] == "Markdown"
    assert post.call_args.kwargs["json"]["chat_id"] == "-100200"


@pytest.mark.asyncio
async def test_email_retries_then_raises(mocker, monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "smtp.test")
    monkeypatch.setattr(settings, "notification_email_to", "ops@goldtrade.co")
    monkeypatch.setattr(settings, "notification_max_attempts", 3)
    send = mocker.patch.object(
        NotificationService, "_send_email_blocking", side_effect=smtplib.SMTPServerDisconnected("gone")
    )
    mocker.patch("goldtrade.app.services.notification_service.asyncio.sleep", return_value=None)

    with pytest.raises(smtplib.SMTPServerDisconnected):
        await NotificationService.send_email("subject", "body")
    assert send.call_count == 3


@pytest.mark.asyncio
async def test_email_succeeds_on_second_attempt(mocker, monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "smtp.test")
    monkeypatch.setattr(settings, "notification_email_to", "ops@goldtrade.co")
    send = mocker.patch.object(
        NotificationService, "_send_email_blocking", side_effect=[OSError("timeout"), None]
    )
    mocker.patch("goldtrade.app.services.notification_service.asyncio.sleep", return_value=None)

    assert await NotificationService.send_email("subject", "body") is True
    assert send.call_count == 2


@pytest.mark.asyncio
async def test_dispatch_logs_failures_without_raising(caplog):
    async def ok():
        return True

    async def broken():
        raise httpx.ConnectError("refused")

    results = await dispatch(ok(), broken())
    assert results[0] is True
    assert isinstance(results[1], httpx.ConnectError)
    assert "Notification failed: ConnectError" in caplog.text
