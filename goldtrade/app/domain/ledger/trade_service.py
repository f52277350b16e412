"""
Customer trading (Domain Logic).

Buy and sell against the shop. Each method performs all of its writes in the
caller's session and flushes; the endpoint commits once.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.config import settings
from goldtrade.app.domain.ledger import balances
from goldtrade.app.domain.ledger.lot_engine import (
    HoldingsSummary,
    available_stock,
    consume_lots,
    holdings_summary,
    load_lots,
    profit_loss,
    summarize,
    to_decimal,
    to_gold_amount,
)
from goldtrade.app.models.enums import LotHolder, LotReason, TransactionKind
from goldtrade.app.models.gold_lot import GoldLot
from goldtrade.app.models.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass
class BuyResult:
    transaction: Transaction
    balance: Decimal
    available_stock: Decimal


@dataclass
class SellResult:
    transaction: Transaction
    balance: Decimal
    before: HoldingsSummary
    after: HoldingsSummary
    profit_loss: Decimal


class TradeService:

    @staticmethod
    async def buy(
        db: AsyncSession,
        user_id: int,
        gold_type: str,
        amount: Decimal,
        price_per_unit: Decimal,
        total_price: Decimal,
    ) -> BuyResult:
        """
        Customer buys gold from the shop.

        Flow:
        1. Debit cash by total_price (may go negative when configured)
        2. Record BUY transaction
        3. Add a customer lot at price_per_unit

        Returns:
            BuyResult with the new balance and the shop's available stock
        """
        amount = to_gold_amount(amount)

        new_balance = await balances.debit(
            db, user_id, total_price, allow_negative=settings.allow_negative_cash_balance
        )

        transaction = Transaction(
            user_id=user_id,
            kind=TransactionKind.BUY,
            gold_type=gold_type,
            amount=amount,
            price_per_unit=price_per_unit,
            total_price=total_price,
        )
        db.add(transaction)
        await db.flush()

        db.add(GoldLot(
            holder=LotHolder.CUSTOMER,
            user_id=user_id,
            gold_type=gold_type,
            amount=amount,
            purchase_price=price_per_unit,
            reason=LotReason.PURCHASE,
            source_transaction_id=transaction.id,
        ))
        await db.flush()

        stock = await available_stock(db, gold_type)
        logger.info(
            "BUY user_id=%s gold_type=%s amount=%s total=%s balance=%s",
            user_id, gold_type, amount, total_price, new_balance,
        )
        return BuyResult(transaction=transaction, balance=new_balance, available_stock=stock)

    @staticmethod
    async def sell(
        db: AsyncSession,
        user_id: int,
        gold_type: str,
        amount: Decimal,
        price_per_unit: Decimal,
        total_price: Decimal,
    ) -> SellResult:
        """
        Customer sells gold back to the shop.

        Lots are consumed oldest first; profit/loss is measured against the
        average cost before the sale.

        Raises:
            InsufficientBalanceError: customer holds less than amount
        """
        amount = to_gold_amount(amount)

        # Cost basis is read under the row locks consume_lots relies on
        before = summarize(await load_lots(db, LotHolder.CUSTOMER, user_id, gold_type, for_update=True))
        await consume_lots(db, LotHolder.CUSTOMER, user_id, gold_type, amount)

        new_balance = await balances.credit(db, user_id, total_price)

        transaction = Transaction(
            user_id=user_id,
            kind=TransactionKind.SELL,
            gold_type=gold_type,
            amount=amount,
            price_per_unit=price_per_unit,
            total_price=total_price,
        )
        db.add(transaction)
        await db.flush()

        after = await holdings_summary(db, LotHolder.CUSTOMER, user_id, gold_type)
        pnl = profit_loss(to_decimal(total_price), amount, before.average_cost)

        logger.info(
            "SELL user_id=%s gold_type=%s amount=%s total=%s pnl=%s",
            user_id, gold_type, amount, total_price, pnl,
        )
        return SellResult(
            transaction=transaction,
            balance=new_balance,
            before=before,
            after=after,
            profit_loss=pnl,
        )
