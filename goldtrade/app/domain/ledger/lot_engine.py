"""
Lot accounting primitives.

FIFO consumption of gold lots, holdings summaries (weighted average cost)
and the shop's available stock. All functions flush but never commit;
the caller owns the transaction.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.exceptions import InvalidInputError, InsufficientBalanceError
from goldtrade.app.models.enums import LotHolder, UserRole
from goldtrade.app.models.gold_lot import GoldLot
from goldtrade.app.models.user import User
from goldtrade.app.models.user_balance import UserBalance

logger = logging.getLogger(__name__)

GOLD_PLACES = Decimal("0.000001")
PRICE_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0")
# Numeric(20, 6) leaves 14 integer digits
MAX_GOLD_AMOUNT = Decimal("1e14")

DEFAULT_SHORTFALL_MESSAGE = "Insufficient gold balance. You have {available} units available."


def to_decimal(value) -> Decimal:
    """Normalize a DB/aggregate value (None, float, int, Decimal) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_gold_amount(value) -> Decimal:
    """
    Round a requested gold quantity to stored precision.

    Raises:
        InvalidInputError: the value is out of range or rounds to zero or less
    """
    try:
        amount = to_decimal(value).quantize(GOLD_PLACES)
    except InvalidOperation as exc:
        raise InvalidInputError("Amount is out of range", details={"amount": str(value)}) from exc
    if amount <= 0:
        raise InvalidInputError("Amount must be greater than zero")
    if amount >= MAX_GOLD_AMOUNT:
        raise InvalidInputError("Amount is out of range", details={"amount": str(value)})
    return amount


def format_amount(value: Decimal) -> str:
    """Render a quantity without trailing zeros, e.g. 5.000000 -> '5'."""
    normalized = to_decimal(value).normalize()
    return f"{normalized:f}"


@dataclass
class ConsumedSlice:
    lot_id: int
    amount: Decimal
    purchase_price: Decimal


@dataclass
class ConsumptionResult:
    amount: Decimal
    slices: List[ConsumedSlice] = field(default_factory=list)

    @property
    def total_cost(self) -> Decimal:
        return sum((s.amount * s.purchase_price for s in self.slices), ZERO)

    @property
    def average_cost(self) -> Decimal:
        if self.amount <= 0:
            return ZERO
        return (self.total_cost / self.amount).quantize(PRICE_PLACES)


@dataclass
class HoldingsSummary:
    total_amount: Decimal
    total_cost: Decimal
    average_cost: Decimal


def _lot_filters(holder: LotHolder, user_id: Optional[int], gold_type: str):
    filters = [GoldLot.holder == holder, GoldLot.gold_type == gold_type]
    if holder == LotHolder.CUSTOMER:
        filters.append(GoldLot.user_id == user_id)
    return filters


async def load_lots(
    db: AsyncSession,
    holder: LotHolder,
    user_id: Optional[int],
    gold_type: str,
    for_update: bool = False,
) -> List[GoldLot]:
    """Load a holder's lots of one gold type, oldest first."""
    stmt = (
        select(GoldLot)
        .where(*_lot_filters(holder, user_id, gold_type))
        .order_by(GoldLot.created_at, GoldLot.id)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return list(result.scalars().all())


def summarize(lots: List[GoldLot]) -> HoldingsSummary:
    total_amount = sum((to_decimal(lot.amount) for lot in lots), ZERO)
    total_cost = sum((to_decimal(lot.amount) * to_decimal(lot.purchase_price) for lot in lots), ZERO)
    average_cost = (total_cost / total_amount).quantize(PRICE_PLACES) if total_amount > 0 else ZERO
    return HoldingsSummary(
        total_amount=total_amount.quantize(GOLD_PLACES),
        total_cost=total_cost.quantize(MONEY_PLACES),
        average_cost=average_cost,
    )


async def holdings_summary(
    db: AsyncSession,
    holder: LotHolder,
    user_id: Optional[int],
    gold_type: str,
) -> HoldingsSummary:
    """Total amount, total cost and average cost over a holder's lots."""
    lots = await load_lots(db, holder, user_id, gold_type)
    return summarize(lots)


def profit_loss(proceeds: Decimal, amount: Decimal, average_cost_before: Decimal) -> Decimal:
    """Realized P/L of a sale, measured against the pre-sale average cost."""
    return (proceeds - amount * average_cost_before).quantize(MONEY_PLACES)


async def consume_lots(
    db: AsyncSession,
    holder: LotHolder,
    user_id: Optional[int],
    gold_type: str,
    amount: Decimal,
    shortfall_message: str = DEFAULT_SHORTFALL_MESSAGE,
) -> ConsumptionResult:
    """
    Remove `amount` of gold from a holder's lots, oldest lot first.

    Lots reaching zero are deleted; a partially consumed lot keeps its
    purchase price. Nothing is mutated when the holder owns less than
    `amount`.

    Args:
        shortfall_message: Format string with {available} and {requested}
            placeholders used for the InsufficientBalanceError message.

    Returns:
        The consumed slices and their weighted average cost.

    Raises:
        InvalidInputError: amount is not positive
        InsufficientBalanceError: holdings are smaller than amount
    """
    amount = to_gold_amount(amount)

    lots = await load_lots(db, holder, user_id, gold_type, for_update=True)
    available = sum((to_decimal(lot.amount) for lot in lots), ZERO)

    if available < amount:
        raise InsufficientBalanceError(
            shortfall_message.format(available=format_amount(available), requested=format_amount(amount)),
            available=available,
            requested=amount,
        )

    result = ConsumptionResult(amount=amount)
    remaining = amount
    for lot in lots:
        if remaining <= 0:
            break
        lot_amount = to_decimal(lot.amount)
        take = min(lot_amount, remaining)
        result.slices.append(
            ConsumedSlice(lot_id=lot.id, amount=take, purchase_price=to_decimal(lot.purchase_price))
        )
        remaining -= take
        if lot_amount - take <= 0:
            await db.delete(lot)
        else:
            lot.amount = lot_amount - take

    await db.flush()
    logger.debug(
        "Consumed %s of %s from %s lots (user_id=%s) across %d lot(s)",
        amount, gold_type, holder.value, user_id, len(result.slices),
    )
    return result


async def sum_lots(db: AsyncSession, holder: LotHolder, gold_type: str, user_id: Optional[int] = None) -> Decimal:
    stmt = select(func.coalesce(func.sum(GoldLot.amount), 0)).where(
        GoldLot.holder == holder, GoldLot.gold_type == gold_type
    )
    if user_id is not None:
        stmt = stmt.where(GoldLot.user_id == user_id)
    result = await db.execute(stmt)
    return to_decimal(result.scalar())


async def available_stock(db: AsyncSession, gold_type: str) -> Decimal:
    """
    Shop stock not yet promised to customers.

    Inventory lots minus all customer lots of the same gold type, recomputed
    on every call. Can be negative: purchases and admin credits do not draw
    down inventory.
    """
    inventory_total = await sum_lots(db, LotHolder.INVENTORY, gold_type)
    customer_total = await sum_lots(db, LotHolder.CUSTOMER, gold_type)
    return (inventory_total - customer_total).quantize(GOLD_PLACES)


async def total_customer_cash(db: AsyncSession) -> Decimal:
    """Sum of cash balances held by non-admin users."""
    result = await db.execute(
        select(func.coalesce(func.sum(UserBalance.balance), 0))
        .join(User, User.id == UserBalance.user_id)
        .where(User.role != UserRole.ADMIN)
    )
    return to_decimal(result.scalar()).quantize(MONEY_PLACES)
