"""
Gold delivery and cash payout requests.

Both kinds of request take the asset out of the customer's account when
requested; a rejection puts it back.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.exceptions import InvalidTransactionStateError, ResourceNotFoundError
from goldtrade.app.domain.ledger import balances
from goldtrade.app.domain.ledger.lot_engine import consume_lots, to_gold_amount
from goldtrade.app.models.enums import LotHolder, LotReason, RequestStatus
from goldtrade.app.models.gold_lot import GoldLot
from goldtrade.app.models.withdrawal import WithdrawalRequest, WithdrawalMoneyRequest

logger = logging.getLogger(__name__)


class WithdrawalService:

    @staticmethod
    async def request_gold(
        db: AsyncSession,
        user_id: int,
        gold_type: str,
        amount: Decimal,
        name: str,
        tel: str,
        address: str,
    ) -> WithdrawalRequest:
        """Reserve gold for physical delivery by consuming the customer's lots."""
        amount = to_gold_amount(amount)
        consumed = await consume_lots(db, LotHolder.CUSTOMER, user_id, gold_type, amount)

        request = WithdrawalRequest(
            user_id=user_id,
            gold_type=gold_type,
            amount=amount,
            average_cost=consumed.average_cost,
            name=name,
            tel=tel,
            address=address,
            status=RequestStatus.PENDING,
        )
        db.add(request)
        await db.flush()
        logger.info("Gold withdrawal %s requested: user %s, %s %s", request.id, user_id, amount, gold_type)
        return request

    @staticmethod
    async def decide_gold(db: AsyncSession, actor_id: int, request_id: int, approve: bool) -> WithdrawalRequest:
        """
        Approve or reject a pending gold withdrawal.

        Rejection returns the gold to the customer as one lot priced at the
        average cost of what was taken.
        """
        request = await _get_pending(db, WithdrawalRequest, request_id, "Withdrawal request")

        if approve:
            request.status = RequestStatus.APPROVED
        else:
            request.status = RequestStatus.REJECTED
            db.add(GoldLot(
                holder=LotHolder.CUSTOMER,
                user_id=request.user_id,
                gold_type=request.gold_type,
                amount=request.amount,
                purchase_price=request.average_cost,
                reason=LotReason.ADJUSTMENT,
            ))
        request.decided_by = actor_id
        await db.flush()
        logger.info("Gold withdrawal %s %s by admin %s", request.id, request.status.value, actor_id)
        return request

    @staticmethod
    async def request_cash(
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        bank: str,
        account_number: str,
        account_name: str,
    ) -> WithdrawalMoneyRequest:
        """
        Raises:
            InsufficientBalanceError: balance is smaller than amount
        """
        await balances.debit(db, user_id, amount, allow_negative=False)

        request = WithdrawalMoneyRequest(
            user_id=user_id,
            amount=amount,
            bank=bank,
            account_number=account_number,
            account_name=account_name,
            status=RequestStatus.PENDING,
        )
        db.add(request)
        await db.flush()
        logger.info("Cash withdrawal %s requested: user %s, ฿%s", request.id, user_id, amount)
        return request

    @staticmethod
    async def decide_cash(db: AsyncSession, actor_id: int, request_id: int, approve: bool) -> WithdrawalMoneyRequest:
        request = await _get_pending(db, WithdrawalMoneyRequest, request_id, "Withdrawal money request")

        if approve:
            request.status = RequestStatus.APPROVED
        else:
            request.status = RequestStatus.REJECTED
            await balances.credit(db, request.user_id, request.amount)
        request.decided_by = actor_id
        await db.flush()
        logger.info("Cash withdrawal %s %s by admin %s", request.id, request.status.value, actor_id)
        return request

    @staticmethod
    async def list_gold(db: AsyncSession, user_id: Optional[int] = None) -> List[WithdrawalRequest]:
        stmt = select(WithdrawalRequest).order_by(WithdrawalRequest.id.desc())
        if user_id is not None:
            stmt = stmt.where(WithdrawalRequest.user_id == user_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_cash(db: AsyncSession, user_id: Optional[int] = None) -> List[WithdrawalMoneyRequest]:
        stmt = select(WithdrawalMoneyRequest).order_by(WithdrawalMoneyRequest.id.desc())
        if user_id is not None:
            stmt = stmt.where(WithdrawalMoneyRequest.user_id == user_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())


async def _get_pending(db: AsyncSession, model, request_id: int, resource: str):
    result = await db.execute(select(model).where(model.id == request_id).with_for_update())
    request = result.scalar_one_or_none()
    if request is None:
        raise ResourceNotFoundError(resource, request_id)
    if request.status != RequestStatus.PENDING:
        raise InvalidTransactionStateError(f"{resource} is already {request.status.value}")
    return request
