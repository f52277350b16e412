"""
Admin stock management (Domain Logic).

Inventory lots, crediting customers, exchanges between a customer and the
shop inventory, jewelry exchange and its cancellation, and corrections to
recorded transactions. Methods flush; the endpoint commits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import (
    InsufficientGoldStockError,
    InvalidInputError,
    InvalidTransactionStateError,
    ResourceNotFoundError,
)
from goldtrade.app.domain.ledger.lot_engine import (
    GOLD_PLACES,
    MONEY_PLACES,
    PRICE_PLACES,
    HoldingsSummary,
    available_stock,
    consume_lots,
    load_lots,
    sum_lots,
    summarize,
    to_decimal,
    to_gold_amount,
    total_customer_cash,
)
from goldtrade.app.models.enums import LotHolder, LotReason, TransactionKind, UserRole
from goldtrade.app.models.gold_lot import GoldLot
from goldtrade.app.models.transaction import Transaction
from goldtrade.app.models.user import User

logger = logging.getLogger(__name__)

EXCHANGE_SHORTFALL_MESSAGE = (
    "Customer does not have enough gold. Available: {available} บาท, Requested: {requested} บาท"
)
CANCEL_ONLY_JEWELRY_MESSAGE = "Only jewelry exchange transactions can be canceled"


@dataclass
class InventoryGroup:
    gold_type: str
    lots: List[GoldLot]
    summary: HoldingsSummary
    available_stock: Decimal


@dataclass
class SavingsSummary:
    inventory: Dict[str, Decimal]
    customer_holdings: Dict[str, Decimal]
    available_stock: Dict[str, Decimal]
    total_customer_cash: Decimal


async def get_customer(db: AsyncSession, customer_id: int) -> User:
    result = await db.execute(
        select(User).where(User.id == customer_id, User.deleted_at.is_(None))
    )
    customer = result.scalar_one_or_none()
    if customer is None:
        raise ResourceNotFoundError("User", customer_id)
    return customer


async def get_transaction(db: AsyncSession, transaction_id: int, for_update: bool = False) -> Transaction:
    stmt = select(Transaction).where(Transaction.id == transaction_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise ResourceNotFoundError("Transaction", transaction_id)
    return transaction


class StockService:

    @staticmethod
    async def add_stock(
        db: AsyncSession,
        actor_id: int,
        gold_type: str,
        amount: Decimal,
        purchase_price: Decimal,
    ) -> GoldLot:
        """Add a lot to the shop inventory."""
        lot = GoldLot(
            holder=LotHolder.INVENTORY,
            user_id=None,
            gold_type=gold_type,
            amount=to_gold_amount(amount),
            purchase_price=purchase_price,
            reason=LotReason.ADMIN_STOCK,
        )
        db.add(lot)
        await db.flush()
        logger.info("Inventory lot %s added by admin %s: %s %s @ %s", lot.id, actor_id, amount, gold_type, purchase_price)
        return lot

    @staticmethod
    async def update_inventory_lot(
        db: AsyncSession,
        lot_id: int,
        amount: Optional[Decimal] = None,
        purchase_price: Optional[Decimal] = None,
    ) -> Optional[GoldLot]:
        """
        Correct an inventory lot. Setting the amount to zero or less removes it.

        Returns:
            The updated lot, or None when it was removed
        """
        lot = await _get_inventory_lot(db, lot_id)
        if amount is not None and to_decimal(amount) <= 0:
            await db.delete(lot)
            await db.flush()
            return None
        if amount is not None:
            lot.amount = to_gold_amount(amount)
        if purchase_price is not None:
            if to_decimal(purchase_price) < 0:
                raise InvalidInputError("Purchase price cannot be negative")
            lot.purchase_price = purchase_price
        await db.flush()
        return lot

    @staticmethod
    async def delete_inventory_lot(db: AsyncSession, lot_id: int) -> None:
        lot = await _get_inventory_lot(db, lot_id)
        await db.delete(lot)
        await db.flush()

    @staticmethod
    async def update_customer_lot(
        db: AsyncSession,
        lot_id: int,
        gold_type: Optional[str] = None,
        amount: Optional[Decimal] = None,
        purchase_price: Optional[Decimal] = None,
    ) -> GoldLot:
        """Correct a customer's lot in place. No transaction is recorded."""
        lot = await _get_customer_lot(db, lot_id)
        if gold_type is not None:
            lot.gold_type = gold_type
        if amount is not None:
            lot.amount = to_gold_amount(amount)
        if purchase_price is not None:
            if to_decimal(purchase_price) < 0:
                raise InvalidInputError("Purchase price cannot be negative")
            lot.purchase_price = purchase_price
        await db.flush()
        return lot

    @staticmethod
    async def delete_customer_lot(db: AsyncSession, lot_id: int) -> GoldLot:
        lot = await _get_customer_lot(db, lot_id)
        await db.delete(lot)
        await db.flush()
        return lot

    @staticmethod
    async def list_customers(db: AsyncSession) -> List[User]:
        result = await db.execute(
            select(User)
            .where(User.role == UserRole.MEMBER, User.deleted_at.is_(None))
            .order_by(User.name, User.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_inventory(db: AsyncSession) -> List[InventoryGroup]:
        """Inventory lots grouped by gold type, with summary and available stock."""
        result = await db.execute(
            select(GoldLot)
            .where(GoldLot.holder == LotHolder.INVENTORY)
            .order_by(GoldLot.gold_type, GoldLot.created_at, GoldLot.id)
        )
        grouped: Dict[str, List[GoldLot]] = {}
        for lot in result.scalars().all():
            grouped.setdefault(lot.gold_type, []).append(lot)

        groups = []
        for gold_type, lots in grouped.items():
            groups.append(InventoryGroup(
                gold_type=gold_type,
                lots=lots,
                summary=summarize(lots),
                available_stock=await available_stock(db, gold_type),
            ))
        return groups

    @staticmethod
    async def add_to_user(
        db: AsyncSession,
        actor_id: int,
        customer_id: int,
        gold_type: str,
        cash_amount: Decimal,
        gold_price: Decimal,
    ) -> Transaction:
        """
        Credit a customer with gold bought outside the app.

        The gold quantity is cash_amount / gold_price. Neither the customer's
        cash nor the inventory is debited.
        """
        await get_customer(db, customer_id)

        cash_amount = to_decimal(cash_amount)
        gold_price = to_decimal(gold_price)
        gold_amount = to_gold_amount(cash_amount / gold_price)

        transaction = Transaction(
            user_id=customer_id,
            kind=TransactionKind.BUY,
            gold_type=gold_type,
            amount=gold_amount,
            price_per_unit=gold_price,
            total_price=cash_amount.quantize(MONEY_PLACES),
            actor_id=actor_id,
        )
        db.add(transaction)
        await db.flush()

        db.add(GoldLot(
            holder=LotHolder.CUSTOMER,
            user_id=customer_id,
            gold_type=gold_type,
            amount=gold_amount,
            purchase_price=gold_price,
            reason=LotReason.ADMIN_CREDIT,
            source_transaction_id=transaction.id,
        ))
        await db.flush()
        logger.info("Admin %s credited user %s with %s %s", actor_id, customer_id, gold_amount, gold_type)
        return transaction

    @staticmethod
    async def exchange_to_inventory(
        db: AsyncSession,
        actor_id: int,
        customer_id: int,
        gold_type: str,
        amount: Decimal,
    ) -> Transaction:
        """
        Move gold from a customer's lots into the shop inventory.

        The new inventory lot carries the weighted average cost of the
        customer lots consumed.

        Raises:
            InsufficientGoldStockError: inventory holds less than amount
            InsufficientBalanceError: customer holds less than amount
        """
        await get_customer(db, customer_id)
        amount = to_gold_amount(amount)

        inventory_total = await sum_lots(db, LotHolder.INVENTORY, gold_type)
        if inventory_total < amount:
            raise InsufficientGoldStockError(available=inventory_total)

        consumed = await consume_lots(
            db, LotHolder.CUSTOMER, customer_id, gold_type, amount,
            shortfall_message=EXCHANGE_SHORTFALL_MESSAGE,
        )

        purchase_price = consumed.average_cost
        if purchase_price <= 0:
            purchase_price = to_decimal(settings.exchange_default_purchase_price).quantize(PRICE_PLACES)

        transaction = Transaction(
            user_id=customer_id,
            kind=TransactionKind.EXCHANGE,
            gold_type=gold_type,
            amount=amount,
            price_per_unit=Decimal("0"),
            total_price=Decimal("0"),
            actor_id=actor_id,
        )
        db.add(transaction)
        await db.flush()

        db.add(GoldLot(
            holder=LotHolder.INVENTORY,
            user_id=None,
            gold_type=gold_type,
            amount=amount,
            purchase_price=purchase_price,
            reason=LotReason.EXCHANGE_IN,
            source_transaction_id=transaction.id,
        ))
        await db.flush()
        logger.info("Exchanged %s %s from user %s into inventory", amount, gold_type, customer_id)
        return transaction

    @staticmethod
    async def jewelry_exchange(
        db: AsyncSession,
        actor_id: int,
        customer_id: int,
        amount: Decimal,
        jewelry_name: str,
        gold_type: Optional[str] = None,
    ) -> Transaction:
        """
        Trade a customer's bullion for a jewelry item.

        Bullion lots are consumed oldest first and the transaction is priced
        at their average cost. Inventory is not touched.
        """
        gold_type = gold_type or settings.bullion_gold_type
        await get_customer(db, customer_id)
        amount = to_gold_amount(amount)

        consumed = await consume_lots(
            db, LotHolder.CUSTOMER, customer_id, gold_type, amount,
            shortfall_message=EXCHANGE_SHORTFALL_MESSAGE,
        )

        transaction = Transaction(
            user_id=customer_id,
            kind=TransactionKind.JEWELRY_EXCHANGE,
            gold_type=gold_type,
            item_name=jewelry_name,
            amount=amount,
            price_per_unit=consumed.average_cost,
            total_price=(amount * consumed.average_cost).quantize(MONEY_PLACES),
            actor_id=actor_id,
        )
        db.add(transaction)
        await db.flush()
        logger.info("Jewelry exchange %s: user %s traded %s %s for '%s'",
                    transaction.id, customer_id, amount, gold_type, jewelry_name)
        return transaction

    @staticmethod
    async def cancel_jewelry_exchange(db: AsyncSession, actor_id: int, transaction_id: int) -> Transaction:
        """
        Cancel a jewelry exchange and give the bullion back.

        The amount is added to the customer's oldest lot of that gold type,
        or to a new zero-cost lot when they hold none.

        Raises:
            InvalidTransactionStateError: transaction is not a jewelry exchange
        """
        transaction = await get_transaction(db, transaction_id, for_update=True)
        if transaction.kind != TransactionKind.JEWELRY_EXCHANGE:
            raise InvalidTransactionStateError(CANCEL_ONLY_JEWELRY_MESSAGE)

        transaction.original_kind = transaction.kind
        transaction.kind = TransactionKind.CANCELLED
        transaction.cancelled_at = datetime.now(timezone.utc)

        lots = await load_lots(db, LotHolder.CUSTOMER, transaction.user_id, transaction.gold_type, for_update=True)
        if lots:
            lots[0].amount = to_decimal(lots[0].amount) + to_decimal(transaction.amount)
        else:
            db.add(GoldLot(
                holder=LotHolder.CUSTOMER,
                user_id=transaction.user_id,
                gold_type=transaction.gold_type,
                amount=transaction.amount,
                purchase_price=Decimal("0"),
                reason=LotReason.JEWELRY_CANCEL,
                source_transaction_id=transaction.id,
            ))
        await db.flush()
        logger.info("Jewelry exchange %s cancelled by admin %s", transaction.id, actor_id)
        return transaction

    @staticmethod
    async def update_transaction(
        db: AsyncSession,
        transaction_id: int,
        customer_id: Optional[int] = None,
        gold_type: Optional[str] = None,
        amount: Optional[Decimal] = None,
    ) -> Transaction:
        """Correct a recorded transaction. Lots are left as they are."""
        transaction = await get_transaction(db, transaction_id, for_update=True)
        if transaction.kind == TransactionKind.CANCELLED:
            raise InvalidTransactionStateError("Cancelled transactions cannot be edited")

        if customer_id is not None:
            await get_customer(db, customer_id)
            transaction.user_id = customer_id
        if gold_type is not None:
            transaction.gold_type = gold_type
        if amount is not None:
            amount = to_gold_amount(amount)
            if amount <= 0:
                raise InvalidInputError("Amount must be greater than zero")
            transaction.amount = amount
            transaction.total_price = (amount * to_decimal(transaction.price_per_unit)).quantize(MONEY_PLACES)
        await db.flush()
        return transaction

    @staticmethod
    async def delete_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        """Remove a transaction record. Lots it created remain with no source."""
        transaction = await get_transaction(db, transaction_id, for_update=True)
        await db.delete(transaction)
        await db.flush()
        return transaction

    @staticmethod
    async def savings_summary(db: AsyncSession) -> SavingsSummary:
        result = await db.execute(
            select(GoldLot.holder, GoldLot.gold_type, func.sum(GoldLot.amount))
            .group_by(GoldLot.holder, GoldLot.gold_type)
        )
        inventory: Dict[str, Decimal] = {}
        customer: Dict[str, Decimal] = {}
        for holder, gold_type, total in result.all():
            target = inventory if holder == LotHolder.INVENTORY else customer
            target[gold_type] = to_decimal(total).quantize(GOLD_PLACES)

        gold_types = sorted(set(inventory) | set(customer))
        stock = {
            gold_type: (inventory.get(gold_type, Decimal("0")) - customer.get(gold_type, Decimal("0"))).quantize(GOLD_PLACES)
            for gold_type in gold_types
        }
        return SavingsSummary(
            inventory=inventory,
            customer_holdings=customer,
            available_stock=stock,
            total_customer_cash=await total_customer_cash(db),
        )


async def _get_inventory_lot(db: AsyncSession, lot_id: int) -> GoldLot:
    result = await db.execute(
        select(GoldLot)
        .where(GoldLot.id == lot_id, GoldLot.holder == LotHolder.INVENTORY)
        .with_for_update()
    )
    lot = result.scalar_one_or_none()
    if lot is None:
        raise ResourceNotFoundError("Inventory lot", lot_id)
    return lot


async def _get_customer_lot(db: AsyncSession, lot_id: int) -> GoldLot:
    result = await db.execute(
        select(GoldLot)
        .where(GoldLot.id == lot_id, GoldLot.holder == LotHolder.CUSTOMER)
        .with_for_update()
    )
    lot = result.scalar_one_or_none()
    if lot is None:
        raise ResourceNotFoundError("Gold asset", lot_id)
    return lot
