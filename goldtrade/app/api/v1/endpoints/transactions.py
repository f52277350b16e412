"""
Trading and transaction API endpoints.

Customers buy and sell gold here; admins correct, cancel and delete recorded
transactions.
"""

from typing import Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.dependencies import get_current_user
from goldtrade.app.core.guards import require_admin, is_admin
from goldtrade.app.db.session import get_db, atomic
from goldtrade.app.domain.ledger.lot_engine import total_customer_cash
from goldtrade.app.domain.ledger.stock_service import StockService
from goldtrade.app.domain.ledger.trade_service import TradeService
from goldtrade.app.domain.ledger.trading_guard import ensure_trading_allowed
from goldtrade.app.models.transaction import Transaction
from goldtrade.app.models.user import User
from goldtrade.app.schemas.common import MessageResponse
from goldtrade.app.schemas.ledger import (
    BuyResponse,
    CombinedTradeRequest,
    SellResponse,
    TradeRequest,
    TransactionHistoryResponse,
    TransactionResponse,
)
from goldtrade.app.schemas.management import UpdateTransactionRequest
from goldtrade.app.services import realtime
from goldtrade.app.services.audit import log_event, AuditAction
from goldtrade.app.services.notification_service import NotificationService

router = APIRouter(prefix="/transactions", tags=["Transactions"])


async def _buy(db: AsyncSession, current_user: dict, body: TradeRequest, background_tasks: BackgroundTasks) -> BuyResponse:
    user_id = current_user["user_id"]
    async with atomic(db):
        await ensure_trading_allowed(db)
        result = await TradeService.buy(
            db,
            user_id=user_id,
            gold_type=body.gold_type,
            amount=body.amount,
            price_per_unit=body.price_per_unit,
            total_price=body.total_price,
        )

    await realtime.publish(realtime.RealtimeEvent.TRANSACTION, {
        "type": "buy",
        "userId": user_id,
        "transactionId": result.transaction.id,
        "goldType": body.gold_type,
        "amount": result.transaction.amount,
    })

    user = await db.get(User, user_id)
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.purchase_message(
            user_name=user.name,
            gold_type=body.gold_type,
            amount=result.transaction.amount,
            price_per_unit=body.price_per_unit,
            total_price=body.total_price,
            total_user_balance=await total_customer_cash(db),
            remaining_amount=result.available_stock,
        ),
    )

    return BuyResponse(
        transaction_id=result.transaction.id,
        balance=result.balance,
        gold_amount=result.available_stock,
    )


async def _sell(db: AsyncSession, current_user: dict, body: TradeRequest, background_tasks: BackgroundTasks) -> SellResponse:
    user_id = current_user["user_id"]
    async with atomic(db):
        await ensure_trading_allowed(db)
        result = await TradeService.sell(
            db,
            user_id=user_id,
            gold_type=body.gold_type,
            amount=body.amount,
            price_per_unit=body.price_per_unit,
            total_price=body.total_price,
        )

    await realtime.publish(realtime.RealtimeEvent.TRANSACTION, {
        "type": "sell",
        "userId": user_id,
        "transactionId": result.transaction.id,
        "goldType": body.gold_type,
        "amount": result.transaction.amount,
    })

    user = await db.get(User, user_id)
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.sale_message(
            user_name=user.name,
            gold_type=body.gold_type,
            amount=result.transaction.amount,
            price_per_unit=body.price_per_unit,
            total_price=body.total_price,
            profit_loss=result.profit_loss,
            total_user_balance=await total_customer_cash(db),
            remaining_amount=result.after.total_amount,
        ),
    )

    return SellResponse(
        transaction_id=result.transaction.id,
        balance=result.balance,
        gold_amount=result.after.total_amount,
        average_cost=result.after.average_cost,
        total_cost=result.after.total_cost,
        previous_avg_cost=result.before.average_cost,
        previous_total_cost=result.before.total_cost,
        profit_loss=result.profit_loss,
    )


@router.post("", response_model=Union[SellResponse, BuyResponse])
async def create_transaction(
    body: CombinedTradeRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Buy or sell depending on `type` (defaults to buy)."""
    if body.type == "sell":
        return await _sell(db, current_user, body, background_tasks)
    return await _buy(db, current_user, body, background_tasks)


@router.post("/buy", response_model=BuyResponse)
async def buy_gold(
    body: TradeRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Buy gold at the quoted price.

    Debits the cash balance, records the purchase and adds a lot to the
    customer's holdings. Only allowed during trading hours.
    """
    return await _buy(db, current_user, body, background_tasks)


@router.post("/sell", response_model=SellResponse)
async def sell_gold(
    body: TradeRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Sell gold back to the shop.

    Consumes the customer's oldest lots first and reports profit/loss
    against the average cost before the sale.
    """
    return await _sell(db, current_user, body, background_tasks)


@router.get("/history", response_model=TransactionHistoryResponse)
async def transaction_history(
    user_id: Optional[int] = Query(default=None, description="Admins only: another user's history"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Caller's transactions, newest first. Admins may query any user or all users."""
    query = select(Transaction)
    count_query = select(func.count(Transaction.id))

    if is_admin(current_user):
        if user_id is not None:
            query = query.where(Transaction.user_id == user_id)
            count_query = count_query.where(Transaction.user_id == user_id)
    else:
        query = query.where(Transaction.user_id == current_user["user_id"])
        count_query = count_query.where(Transaction.user_id == current_user["user_id"])

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(desc(Transaction.created_at), desc(Transaction.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return TransactionHistoryResponse(
        items=[TransactionResponse.from_model(t) for t in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: int,
    body: UpdateTransactionRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Correct the customer, gold type or amount of a recorded transaction."""
    async with atomic(db):
        transaction = await StockService.update_transaction(
            db,
            transaction_id,
            customer_id=body.customer_id,
            gold_type=body.gold_type,
            amount=body.amount,
        )
        await log_event(
            db=db,
            action=AuditAction.TRANSACTION_UPDATED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=transaction.user_id,
            metadata={"transaction_id": transaction_id, **body.model_dump(mode="json", exclude_none=True)},
        )

    await realtime.publish(realtime.RealtimeEvent.TRANSACTION_UPDATED, {
        "transactionId": transaction.id,
        "userId": transaction.user_id,
    })
    return TransactionResponse.from_model(transaction)


@router.delete("/{transaction_id}", response_model=MessageResponse)
async def delete_transaction(
    transaction_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a transaction record. Holdings are not changed."""
    async with atomic(db):
        transaction = await StockService.delete_transaction(db, transaction_id)
        await log_event(
            db=db,
            action=AuditAction.TRANSACTION_DELETED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=transaction.user_id,
            metadata={"transaction_id": transaction_id, "kind": transaction.kind.value},
        )

    await realtime.publish(realtime.RealtimeEvent.TRANSACTION_DELETED, {
        "transactionId": transaction_id,
        "userId": transaction.user_id,
    })
    return MessageResponse(message="Transaction deleted successfully")


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
async def cancel_transaction(
    transaction_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Cancel a jewelry exchange and return the bullion to the customer."""
    async with atomic(db):
        transaction = await StockService.cancel_jewelry_exchange(db, admin["user_id"], transaction_id)
        await log_event(
            db=db,
            action=AuditAction.JEWELRY_EXCHANGE_CANCELLED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=transaction.user_id,
            metadata={"transaction_id": transaction_id, "amount": str(transaction.amount)},
        )

    await realtime.publish(realtime.RealtimeEvent.TRANSACTION_CANCELED, {
        "transactionId": transaction.id,
        "userId": transaction.user_id,
    })
    return TransactionResponse.from_model(transaction)
