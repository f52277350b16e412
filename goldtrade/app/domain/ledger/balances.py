"""
Cash balance operations.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.exceptions import InsufficientBalanceError, InvalidInputError
from goldtrade.app.domain.ledger.lot_engine import MONEY_PLACES, format_amount, to_decimal
from goldtrade.app.models.user_balance import UserBalance


async def get_balance_row(db: AsyncSession, user_id: int, for_update: bool = False) -> UserBalance:
    """Return the user's balance row, creating a zero balance on first access."""
    stmt = select(UserBalance).where(UserBalance.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    row = result.scalar_one_or_none()
    if row is None:
        row = UserBalance(user_id=user_id, balance=Decimal("0"))
        db.add(row)
        await db.flush()
    return row


async def get_balance(db: AsyncSession, user_id: int) -> Decimal:
    result = await db.execute(select(UserBalance.balance).where(UserBalance.user_id == user_id))
    return to_decimal(result.scalar_one_or_none()).quantize(MONEY_PLACES)


async def credit(db: AsyncSession, user_id: int, amount: Decimal) -> Decimal:
    amount = to_decimal(amount)
    if amount <= 0:
        raise InvalidInputError("Amount must be greater than zero")
    row = await get_balance_row(db, user_id, for_update=True)
    row.balance = (to_decimal(row.balance) + amount).quantize(MONEY_PLACES)
    await db.flush()
    return row.balance


async def debit(db: AsyncSession, user_id: int, amount: Decimal, allow_negative: bool = False) -> Decimal:
    """
    Take cash from a user's balance.

    Raises:
        InsufficientBalanceError: balance would go negative and allow_negative is False
    """
    amount = to_decimal(amount)
    if amount <= 0:
        raise InvalidInputError("Amount must be greater than zero")
    row = await get_balance_row(db, user_id, for_update=True)
    current = to_decimal(row.balance)
    if not allow_negative and current < amount:
        raise InsufficientBalanceError(
            f"Insufficient balance. You have ฿{format_amount(current)} available.",
            available=current,
            requested=amount,
        )
    row.balance = (current - amount).quantize(MONEY_PLACES)
    await db.flush()
    return row.balance
