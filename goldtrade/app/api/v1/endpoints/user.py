"""
Customer holdings, balance and deposit limit endpoints.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.dependencies import get_current_user
from goldtrade.app.core.guards import require_admin
from goldtrade.app.db.session import get_db, atomic
from goldtrade.app.domain.deposit.deposit_service import DepositLimitService, deposit_usage
from goldtrade.app.domain.ledger import balances
from goldtrade.app.domain.ledger.lot_engine import summarize
from goldtrade.app.models.enums import LotHolder
from goldtrade.app.models.gold_lot import GoldLot
from goldtrade.app.models.user import User
from goldtrade.app.schemas.deposit import (
    AssignDepositLimitRequest,
    DepositLimitResponse,
    UserDepositLimitResponse,
)
from goldtrade.app.schemas.ledger import (
    BalanceResponse,
    GoldAssetsResponse,
    GoldLotResponse,
    HoldingsSummaryResponse,
)
from goldtrade.app.schemas.common import MessageResponse
from goldtrade.app.services.audit import log_event, AuditAction

router = APIRouter(tags=["Customer"])


@router.get("/gold-assets", response_model=GoldAssetsResponse)
async def get_gold_assets(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's gold lots and a cost summary per gold type."""
    result = await db.execute(
        select(GoldLot)
        .where(GoldLot.holder == LotHolder.CUSTOMER, GoldLot.user_id == current_user["user_id"])
        .order_by(GoldLot.gold_type, GoldLot.created_at, GoldLot.id)
    )
    lots = list(result.scalars().all())

    grouped: Dict[str, List[GoldLot]] = {}
    for lot in lots:
        grouped.setdefault(lot.gold_type, []).append(lot)

    summaries = []
    for gold_type, group in grouped.items():
        summary = summarize(group)
        summaries.append(HoldingsSummaryResponse(
            gold_type=gold_type,
            total_amount=summary.total_amount,
            total_cost=summary.total_cost,
            average_cost=summary.average_cost,
        ))

    return GoldAssetsResponse(
        lots=[GoldLotResponse.from_model(lot) for lot in lots],
        summaries=summaries,
    )


@router.get("/user/balance", response_model=BalanceResponse)
async def get_user_balance(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return BalanceResponse(balance=await balances.get_balance(db, current_user["user_id"]))


@router.get("/user/deposit-limit", response_model=UserDepositLimitResponse)
async def get_user_deposit_limit(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    The caller's deposit tier and what has been used today and this month.

    Users without a tier are assigned the default one.
    """
    user = await db.get(User, current_user["user_id"])
    async with atomic(db):
        limit = await DepositLimitService.resolve_user_limit(db, user)
    usage = await deposit_usage(db, user.id)

    return UserDepositLimitResponse(
        limit=DepositLimitResponse.model_validate(limit) if limit else None,
        daily_used=usage.daily_total,
        monthly_used=usage.monthly_total,
    )


@router.post("/user/deposit-limit", response_model=MessageResponse)
async def assign_user_deposit_limit(
    body: AssignDepositLimitRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Assign a deposit tier to a user (admin only)."""
    async with atomic(db):
        await DepositLimitService.assign_limit(db, body.user_id, body.limit_id)
        await log_event(
            db=db,
            action=AuditAction.DEPOSIT_LIMIT_ASSIGNED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            target_user_id=body.user_id,
            metadata={"limit_id": body.limit_id},
        )
    return MessageResponse(message="Deposit limit assigned")
