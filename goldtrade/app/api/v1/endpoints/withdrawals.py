"""
Gold and cash withdrawal request endpoints.
"""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.dependencies import get_current_user
from goldtrade.app.core.guards import require_admin, is_admin
from goldtrade.app.db.session import get_db, atomic
from goldtrade.app.domain.ledger.withdrawal_service import WithdrawalService
from goldtrade.app.models.user import User
from goldtrade.app.schemas.withdrawal import (
    CashWithdrawalCreate,
    CashWithdrawalResponse,
    GoldWithdrawalCreate,
    GoldWithdrawalResponse,
    WithdrawalDecision,
)
from goldtrade.app.services.audit import log_event, AuditAction
from goldtrade.app.services.notification_service import NotificationService

router = APIRouter(tags=["Withdrawals"])


@router.post("/withdraw-requests", response_model=GoldWithdrawalResponse, status_code=status.HTTP_201_CREATED)
async def request_gold_withdrawal(
    body: GoldWithdrawalCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ask for physical delivery of gold. The gold leaves the caller's holdings now."""
    async with atomic(db):
        request = await WithdrawalService.request_gold(
            db,
            user_id=current_user["user_id"],
            gold_type=body.gold_type,
            amount=body.amount,
            name=body.name,
            tel=body.tel,
            address=body.address,
        )

    user = await db.get(User, current_user["user_id"])
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.gold_withdrawal_message(
            user.name, body.gold_type, request.amount, body.name, body.tel, body.address
        ),
    )
    return GoldWithdrawalResponse.model_validate(request)


@router.get("/withdraw-requests", response_model=List[GoldWithdrawalResponse])
async def list_gold_withdrawals(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Admins see every request, customers their own."""
    user_id = None if is_admin(current_user) else current_user["user_id"]
    return [GoldWithdrawalResponse.model_validate(r) for r in await WithdrawalService.list_gold(db, user_id)]


@router.post("/withdraw-requests/{request_id}/decision", response_model=GoldWithdrawalResponse)
async def decide_gold_withdrawal(
    request_id: int,
    body: WithdrawalDecision,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    approve = body.action == "approve"
    async with atomic(db):
        request = await WithdrawalService.decide_gold(db, admin["user_id"], request_id, approve)
        await log_event(
            db=db,
            action=AuditAction.GOLD_WITHDRAWAL_APPROVED if approve else AuditAction.GOLD_WITHDRAWAL_REJECTED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=request.user_id,
            metadata={"request_id": request_id, "amount": str(request.amount)},
        )
    return GoldWithdrawalResponse.model_validate(request)


@router.post("/withdraw-money/request", response_model=CashWithdrawalResponse, status_code=status.HTTP_201_CREATED)
async def request_cash_withdrawal(
    body: CashWithdrawalCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ask for a payout to a bank account. The balance is debited now."""
    async with atomic(db):
        request = await WithdrawalService.request_cash(
            db,
            user_id=current_user["user_id"],
            amount=body.amount,
            bank=body.bank,
            account_number=body.account_number,
            account_name=body.account_name,
        )

    user = await db.get(User, current_user["user_id"])
    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.cash_withdrawal_message(
            user.name, body.amount, body.bank, body.account_name, body.account_number
        ),
    )
    return CashWithdrawalResponse.model_validate(request)


@router.get("/withdraw-money", response_model=List[CashWithdrawalResponse])
async def list_cash_withdrawals(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user_id = None if is_admin(current_user) else current_user["user_id"]
    return [CashWithdrawalResponse.model_validate(r) for r in await WithdrawalService.list_cash(db, user_id)]


@router.post("/withdraw-money/{request_id}/decision", response_model=CashWithdrawalResponse)
async def decide_cash_withdrawal(
    request_id: int,
    body: WithdrawalDecision,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Approve a payout, or reject it and refund the balance."""
    approve = body.action == "approve"
    async with atomic(db):
        request = await WithdrawalService.decide_cash(db, admin["user_id"], request_id, approve)
        await log_event(
            db=db,
            action=AuditAction.CASH_WITHDRAWAL_APPROVED if approve else AuditAction.CASH_WITHDRAWAL_REJECTED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=request.user_id,
            metadata={"request_id": request_id, "amount": str(request.amount)},
        )
    return CashWithdrawalResponse.model_validate(request)
