"""
Notification Service.

Formats ledger events for the shop's Telegram chat and optional e-mail, and
sends them after the database commit. A failed notification is logged and
never undoes or fails the ledger operation.
"""

import asyncio
import logging
import smtplib
from decimal import Decimal
from email.message import EmailMessage
from typing import Awaitable, List, Optional

import httpx

from goldtrade.app.core.config import settings
from goldtrade.app.domain.ledger.lot_engine import to_decimal

logger = logging.getLogger(__name__)

BANK_NAMES = {
    "ktb": "ธนาคารกรุงไทย",
    "kbank": "ธนาคารกสิกรไทย",
    "scb": "ธนาคารไทยพาณิชย์",
    "gsb": "ธนาคารออมสิน",
    "kkp": "ธนาคารเกียรตินาคินภัทร",
}


def format_number(value) -> str:
    """Grouped thousands, at most three decimals, no trailing zeros."""
    quantized = to_decimal(value).quantize(Decimal("0.001")).normalize()
    return format(quantized, ",f")


def format_gold(amount) -> str:
    amount = to_decimal(amount)
    grams = (amount * settings.baht_to_gram).quantize(Decimal("0.01"))
    return f"{amount.quantize(Decimal('0.0001'))} บาท ({grams} กรัม)"


class NotificationService:

    @staticmethod
    def purchase_message(
        user_name: str,
        gold_type: str,
        amount: Decimal,
        price_per_unit: Decimal,
        total_price: Decimal,
        total_user_balance: Decimal,
        remaining_amount: Optional[Decimal] = None,
    ) -> str:
        message = (
            "🏆 *Update Stock!*\n\n"
            f"👤 User: {user_name}\n"
            f"📦 Gold Type: {gold_type}\n"
            f"💰 Amount: {format_gold(abs(to_decimal(amount)))}\n"
            f"💵 Price/Unit: ฿{format_number(price_per_unit)}\n"
            f"💎 Total Price: ฿{format_number(abs(to_decimal(total_price)))}\n\n"
            f"💎 เงินสดในระบบลูกค้าทั้งหมด: ฿{format_number(total_user_balance)}"
        )
        if remaining_amount is not None:
            message += f"\n\n📊 คงเหลือ: {format_gold(remaining_amount)}"
        return message

    @staticmethod
    def sale_message(
        user_name: str,
        gold_type: str,
        amount: Decimal,
        price_per_unit: Decimal,
        total_price: Decimal,
        profit_loss: Decimal,
        total_user_balance: Decimal,
        remaining_amount: Optional[Decimal] = None,
    ) -> str:
        profit_loss = to_decimal(profit_loss)
        emoji, label = ("📈", "Profit") if profit_loss >= 0 else ("📉", "Loss")
        message = (
            "💫 *New Gold Sale!*\n\n"
            f"👤 User: {user_name}\n"
            f"📦 Gold Type: {gold_type}\n"
            f"💰 Amount: {format_gold(amount)}\n"
            f"💵 Price/Unit: ฿{format_number(price_per_unit)}\n"
            f"💎 Total Price: ฿{format_number(total_price)}\n"
            f"{emoji} {label}: ฿{format_number(abs(profit_loss))}\n\n"
            f"💎 เงินสดในระบบลูกค้าทั้งหมด: ฿{format_number(total_user_balance)}"
        )
        if remaining_amount is not None:
            message += f"\n\n📊 คงเหลือ: {format_gold(remaining_amount)}"
        return message

    @staticmethod
    def deposit_message(user_name: str, amount: Decimal, trans_ref: str) -> str:
        return (
            "💰 *New Deposit!*\n\n"
            f"👤 User: {user_name}\n"
            f"💵 Amount: ฿{format_number(amount)}\n"
            f"🔖 Transaction Ref: {trans_ref}"
        )

    @staticmethod
    def cash_withdrawal_message(user_name: str, amount: Decimal, bank: str, account_name: str, account_number: str) -> str:
        return (
            "💸 *New Withdrawal Request!*\n\n"
            f"👤 User: {user_name}\n"
            f"💰 Amount: ฿{format_number(amount)}\n"
            f"🏦 Bank: {BANK_NAMES.get(bank, bank)}\n"
            f"📝 Account Name: {account_name}\n"
            f"🔢 Account Number: {account_number}"
        )

    @staticmethod
    def gold_withdrawal_message(user_name: str, gold_type: str, amount: Decimal, name: str, tel: str, address: str) -> str:
        return (
            "🏆 *New Gold Withdrawal Request!*\n\n"
            f"👤 User: {user_name}\n"
            f"📦 Gold Type: {gold_type}\n"
            f"💰 Amount: {format_gold(amount)}\n\n"
            "📝 Delivery Details:\n"
            f"- Name: {name}\n"
            f"- Tel: {tel}\n"
            f"- Address: {address}"
        )

    @staticmethod
    async def send_telegram(text: str) -> bool:
        """Post a Markdown message to the shop chat. Skipped when unconfigured."""
        if not settings.telegram_bot_token or not settings.telegram_chat_id:
            logger.warning("Telegram is not configured, skipping notification")
            return False

        url = f"{settings.telegram_api_base}/bot{settings.telegram_bot_token}/sendMessage"
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(url, json={
                "chat_id": settings.telegram_chat_id,
                "text": text,
                "parse_mode": "Markdown",
                "disable_web_page_preview": True,
            })
        response.raise_for_status()
        return True

    @staticmethod
    def _send_email_blocking(subject: str, body: str) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = settings.smtp_from or settings.smtp_user
        message["To"] = settings.notification_email_to
        message.set_content(body)

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
            smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password or "")
            smtp.send_message(message)

    @staticmethod
    async def send_email(subject: str, body: str) -> bool:
        """Send through SMTP with up to notification_max_attempts tries."""
        if not settings.smtp_host or not settings.notification_email_to:
            return False

        attempts = max(1, settings.notification_max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                await asyncio.to_thread(NotificationService._send_email_blocking, subject, body)
                return True
            except (smtplib.SMTPException, OSError) as exc:
                logger.warning("E-mail attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt == attempts:
                    raise
                await asyncio.sleep(attempt)
        return False

    @staticmethod
    async def notify(text: str, subject: Optional[str] = None) -> None:
        """Fan a message out to Telegram and e-mail."""
        await dispatch(
            NotificationService.send_telegram(text),
            NotificationService.send_email(subject or text.splitlines()[0].strip("*🏆💫💸💰 "), text),
        )


async def dispatch(*coros: Awaitable) -> List:
    """Run sends concurrently; failures are logged, not raised."""
    results = await asyncio.gather(*coros, return_exceptions=True)
    for result in results:
        if isinstance(result, Exception):
            logger.error("Notification failed: %s: %s", type(result).__name__, result)
    return list(results)
