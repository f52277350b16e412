"""
Admin gold management API endpoints.

Inventory stock, customer lots, crediting customers, exchanges, the savings
dashboard and the audit trail. All endpoints require the admin role.
"""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.guards import require_admin
from goldtrade.app.db.session import get_db, atomic
from goldtrade.app.domain.ledger.lot_engine import available_stock, total_customer_cash
from goldtrade.app.domain.ledger.stock_service import StockService
from goldtrade.app.models.user import User
from goldtrade.app.schemas.common import MessageResponse
from goldtrade.app.schemas.ledger import GoldLotResponse, HoldingsSummaryResponse, TransactionResponse
from goldtrade.app.schemas.management import (
    AddStockRequest,
    AddToUserRequest,
    CustomerResponse,
    ExchangeRequest,
    InventoryGroupResponse,
    JewelryExchangeRequest,
    SavingsSummaryResponse,
    UpdateCustomerLotRequest,
    UpdateLotRequest,
)
from goldtrade.app.services import realtime
from goldtrade.app.services.audit import log_event, get_audit_trail, AuditAction
from goldtrade.app.services.notification_service import NotificationService

router = APIRouter(prefix="/management", tags=["Admin - Gold Management"])


@router.post("/stock", response_model=GoldLotResponse, status_code=status.HTTP_201_CREATED)
async def add_stock(
    body: AddStockRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Add a lot of gold to the shop inventory."""
    async with atomic(db):
        lot = await StockService.add_stock(
            db, admin["user_id"], body.gold_type, body.amount, body.purchase_price
        )
        await log_event(
            db=db,
            action=AuditAction.STOCK_ADDED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata={"lot_id": lot.id, **body.model_dump(mode="json")},
        )
    return GoldLotResponse.from_model(lot)


@router.get("/stock", response_model=List[InventoryGroupResponse])
async def list_stock(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Inventory lots per gold type with cost summary and available stock."""
    groups = await StockService.list_inventory(db)
    return [
        InventoryGroupResponse(
            gold_type=group.gold_type,
            lots=[GoldLotResponse.from_model(lot) for lot in group.lots],
            summary=HoldingsSummaryResponse(
                gold_type=group.gold_type,
                total_amount=group.summary.total_amount,
                total_cost=group.summary.total_cost,
                average_cost=group.summary.average_cost,
            ),
            available_stock=group.available_stock,
        )
        for group in groups
    ]


@router.put("/stock/{lot_id}", response_model=Optional[GoldLotResponse])
async def update_stock_lot(
    lot_id: int,
    body: UpdateLotRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Correct an inventory lot; an amount of zero or less removes it (returns null)."""
    async with atomic(db):
        lot = await StockService.update_inventory_lot(db, lot_id, body.amount, body.purchase_price)
        await log_event(
            db=db,
            action=AuditAction.INVENTORY_LOT_UPDATED if lot else AuditAction.INVENTORY_LOT_DELETED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata={"lot_id": lot_id, **body.model_dump(mode="json", exclude_none=True)},
        )
    return GoldLotResponse.from_model(lot) if lot else None


@router.delete("/stock/{lot_id}", response_model=MessageResponse)
async def delete_stock_lot(
    lot_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    async with atomic(db):
        await StockService.delete_inventory_lot(db, lot_id)
        await log_event(
            db=db,
            action=AuditAction.INVENTORY_LOT_DELETED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata={"lot_id": lot_id},
        )
    return MessageResponse(message="Inventory lot deleted")


@router.get("/customers", response_model=List[CustomerResponse])
async def list_customers(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Active customer accounts, for picking a customerId."""
    customers = await StockService.list_customers(db)
    return [CustomerResponse.model_validate(customer) for customer in customers]


@router.put("/gold-assets/{lot_id}", response_model=GoldLotResponse)
async def update_customer_lot(
    lot_id: int,
    body: UpdateCustomerLotRequest,
    background_tasks: BackgroundTasks,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Correct a customer's gold lot."""
    async with atomic(db):
        lot = await StockService.update_customer_lot(
            db, lot_id, body.gold_type, body.amount, body.purchase_price
        )
        await log_event(
            db=db,
            action=AuditAction.CUSTOMER_LOT_UPDATED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=lot.user_id,
            metadata={"lot_id": lot_id, **body.model_dump(mode="json", exclude_none=True)},
        )

    actor = await db.get(User, admin["user_id"])
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.purchase_message(
            user_name=actor.name,
            gold_type=lot.gold_type,
            amount=lot.amount,
            price_per_unit=lot.purchase_price,
            total_price=lot.amount * lot.purchase_price,
            total_user_balance=await total_customer_cash(db),
            remaining_amount=await available_stock(db, lot.gold_type),
        ),
    )
    return GoldLotResponse.from_model(lot)


@router.delete("/gold-assets/{lot_id}", response_model=MessageResponse)
async def delete_customer_lot(
    lot_id: int,
    background_tasks: BackgroundTasks,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    async with atomic(db):
        lot = await StockService.delete_customer_lot(db, lot_id)
        await log_event(
            db=db,
            action=AuditAction.CUSTOMER_LOT_DELETED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=lot.user_id,
            metadata={"lot_id": lot_id, "gold_type": lot.gold_type, "amount": str(lot.amount)},
        )

    actor = await db.get(User, admin["user_id"])
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.purchase_message(
            user_name=f"{actor.name} (ลบรายการ)",
            gold_type=lot.gold_type,
            amount=lot.amount,
            price_per_unit=lot.purchase_price,
            total_price=lot.amount * lot.purchase_price,
            total_user_balance=await total_customer_cash(db),
            remaining_amount=await available_stock(db, lot.gold_type),
        ),
    )
    return MessageResponse(message="Gold asset deleted")


@router.post("/add-to-user", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def add_gold_to_user(
    body: AddToUserRequest,
    background_tasks: BackgroundTasks,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Credit a customer with gold worth `amount` baht at `goldPrice` per unit.

    Does not debit the customer's cash or the shop inventory.
    """
    async with atomic(db):
        transaction = await StockService.add_to_user(
            db, admin["user_id"], body.customer_id, body.gold_type, body.amount, body.gold_price
        )
        await log_event(
            db=db,
            action=AuditAction.GOLD_ADDED_TO_USER,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=body.customer_id,
            metadata={"transaction_id": transaction.id, "gold_amount": str(transaction.amount)},
        )

    await realtime.publish(realtime.RealtimeEvent.ADD_TO_USER, {
        "userId": body.customer_id,
        "transactionId": transaction.id,
        "goldType": body.gold_type,
        "amount": transaction.amount,
    })

    customer = await db.get(User, body.customer_id)
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.purchase_message(
            user_name=customer.name,
            gold_type=transaction.gold_type,
            amount=transaction.amount,
            price_per_unit=transaction.price_per_unit,
            total_price=transaction.total_price,
            total_user_balance=await total_customer_cash(db),
            remaining_amount=await available_stock(db, transaction.gold_type),
        ),
    )
    return TransactionResponse.from_model(transaction)


@router.post("/exchange", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def exchange_gold(
    body: ExchangeRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Move gold from a customer's holdings into the shop inventory."""
    async with atomic(db):
        transaction = await StockService.exchange_to_inventory(
            db, admin["user_id"], body.customer_id, body.gold_type, body.amount
        )
        await log_event(
            db=db,
            action=AuditAction.GOLD_EXCHANGED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=body.customer_id,
            metadata={"transaction_id": transaction.id, "amount": str(transaction.amount)},
        )

    await realtime.publish(realtime.RealtimeEvent.EXCHANGE, {
        "type": transaction.legacy_code,
        "userId": body.customer_id,
        "transactionId": transaction.id,
        "goldType": body.gold_type,
        "amount": transaction.amount,
    })
    return TransactionResponse.from_model(transaction)


@router.post("/exchange-jewelry", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def exchange_jewelry(
    body: JewelryExchangeRequest,
    background_tasks: BackgroundTasks,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Trade a customer's bullion for a jewelry item."""
    async with atomic(db):
        transaction = await StockService.jewelry_exchange(
            db, admin["user_id"], body.customer_id, body.amount, body.jewelry_name, body.gold_type
        )
        await log_event(
            db=db,
            action=AuditAction.JEWELRY_EXCHANGED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=body.customer_id,
            metadata={"transaction_id": transaction.id, "jewelry_name": body.jewelry_name},
        )

    await realtime.publish(realtime.RealtimeEvent.EXCHANGE, {
        "type": transaction.legacy_code,
        "userId": body.customer_id,
        "transactionId": transaction.id,
        "goldType": transaction.gold_type,
        "amount": transaction.amount,
    })

    customer = await db.get(User, body.customer_id)
    actor = await db.get(User, admin["user_id"])
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.purchase_message(
            user_name=f"{actor.name} (แลกทองรูปพรรณ {body.jewelry_name} จาก {customer.name})",
            gold_type=transaction.gold_type,
            amount=transaction.amount,
            price_per_unit=transaction.price_per_unit,
            total_price=transaction.total_price,
            total_user_balance=await total_customer_cash(db),
            remaining_amount=await available_stock(db, transaction.gold_type),
        ),
    )
    return TransactionResponse.from_model(transaction)


@router.get("/savings-summary", response_model=SavingsSummaryResponse)
async def savings_summary(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    summary = await StockService.savings_summary(db)
    return SavingsSummaryResponse(
        inventory=summary.inventory,
        customer_holdings=summary.customer_holdings,
        available_stock=summary.available_stock,
        total_customer_cash=summary.total_customer_cash,
    )


@router.get("/audit-logs")
async def audit_logs(
    user_id: Optional[int] = Query(default=None),
    action: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    logs = await get_audit_trail(db, target_user_id=user_id, action=action, limit=limit)
    return [
        {
            "id": entry.id,
            "action": entry.action,
            "actorId": entry.actor_id,
            "actorEmail": entry.actor_email,
            "targetUserId": entry.target_user_id,
            "metadata": entry.meta_data,
            "timestamp": entry.timestamp,
        }
        for entry in logs
    ]
