"""
Deposit API endpoints.

Slip verification credits a customer's balance from a bank transfer slip;
deposit limit tiers are managed by admins.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.config import settings
from goldtrade.app.core.dependencies import get_current_user
from goldtrade.app.core.exceptions import (
    DepositLimitExceededError,
    InvalidInputError,
    InvalidReceiverError,
    SlipAlreadyUsedError,
    UpstreamFailureError,
)
from goldtrade.app.core.guards import require_admin
from goldtrade.app.db.session import get_db, atomic
from goldtrade.app.domain.deposit.deposit_service import DepositLimitService, recent_deposits, record_verified_deposit
from goldtrade.app.domain.deposit.slip_verifier import EasySlipClient, validate_receiver
from goldtrade.app.models.user import User
from goldtrade.app.schemas.common import MessageResponse
from goldtrade.app.schemas.deposit import (
    DepositLimitCreate,
    DepositLimitResponse,
    DepositLimitUpdate,
    RecentDepositResponse,
    SlipVerificationResponse,
)
from goldtrade.app.services.audit import log_event, AuditAction
from goldtrade.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Deposits"])


def get_slip_client() -> EasySlipClient:
    return EasySlipClient()


def _slip_response(status_code: int, message: str, **extra) -> JSONResponse:
    body = SlipVerificationResponse(status=status_code, message=message, **extra)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post("/verify-slip", response_model=SlipVerificationResponse)
async def verify_slip(
    background_tasks: BackgroundTasks,
    slip: Optional[UploadFile] = File(default=None),
    amount: Optional[str] = Form(default=None, description="Amount the customer expects; informational"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    slip_client: EasySlipClient = Depends(get_slip_client),
):
    """
    Verify a transfer slip and credit the amount to the caller's balance.

    Checks, in order: file present, size, image type, upstream verification,
    receiver account, replay, deposit limits. Every outcome, including an
    unexpected failure, is answered as {status, message}.
    """
    if slip is None:
        return _slip_response(status.HTTP_400_BAD_REQUEST, "invalid_payload")

    content = await slip.read()
    if not content:
        return _slip_response(status.HTTP_400_BAD_REQUEST, "invalid_payload")
    if len(content) > settings.slip_max_bytes:
        return _slip_response(status.HTTP_400_BAD_REQUEST, "image_size_too_large")
    if not (slip.content_type or "").startswith("image/"):
        return _slip_response(status.HTTP_400_BAD_REQUEST, "invalid_image")

    try:
        return await _verify_and_credit(content, current_user["user_id"], db, slip_client, background_tasks)
    except Exception:
        logger.exception("Slip verification failed for user %s", current_user["user_id"])
        return _slip_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "server_error")


async def _verify_and_credit(
    content: bytes,
    user_id: int,
    db: AsyncSession,
    slip_client: EasySlipClient,
    background_tasks: BackgroundTasks,
) -> JSONResponse:
    try:
        slip_data = await slip_client.verify(content)
    except UpstreamFailureError as exc:
        if exc.status_code == status.HTTP_502_BAD_GATEWAY:
            return _slip_response(exc.status_code, "server_error", details={"reason": exc.message})
        return _slip_response(exc.status_code, exc.message)
    except InvalidInputError as exc:
        logger.warning("Slip rejected: %s %s", exc.message, exc.details)
        return _slip_response(status.HTTP_400_BAD_REQUEST, "invalid_payload", details={"reason": exc.message})

    try:
        validate_receiver(slip_data.receiver, bank_id=slip_data.receiver_bank_id)
    except InvalidReceiverError as exc:
        logger.warning("Slip %s paid to unexpected receiver: %s", slip_data.trans_ref, exc.details)
        return _slip_response(status.HTTP_400_BAD_REQUEST, "invalid_receiver", details=exc.details)

    user = await db.get(User, user_id)
    try:
        async with atomic(db):
            result = await record_verified_deposit(db, user, slip_data.trans_ref, slip_data.amount)
    except SlipAlreadyUsedError:
        return _slip_response(status.HTTP_400_BAD_REQUEST, "slip_already_used")
    except InvalidInputError as exc:
        return _slip_response(status.HTTP_400_BAD_REQUEST, "invalid_payload", details={"reason": exc.message})
    except DepositLimitExceededError as exc:
        return _slip_response(
            status.HTTP_400_BAD_REQUEST,
            "deposit_limit_exceeded",
            details={"message": exc.message, **exc.details},
        )

    background_tasks.add_task(
        NotificationService.notify,
        NotificationService.deposit_message(user.name, slip_data.amount, slip_data.trans_ref),
    )
    return _slip_response(status.HTTP_200_OK, "success", amount=slip_data.amount, balance=result.balance)


@router.get("/deposits/recent", response_model=List[RecentDepositResponse])
async def list_recent_deposits(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's five most recent credited slips."""
    slips = await recent_deposits(db, current_user["user_id"])
    return [RecentDepositResponse.model_validate(slip) for slip in slips]


@router.get("/deposit-limits", response_model=List[DepositLimitResponse])
async def list_deposit_limits(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return [DepositLimitResponse.model_validate(limit) for limit in await DepositLimitService.list_limits(db)]


@router.post("/deposit-limits", response_model=DepositLimitResponse, status_code=status.HTTP_201_CREATED)
async def create_deposit_limit(
    body: DepositLimitCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    async with atomic(db):
        limit = await DepositLimitService.create_limit(
            db, admin["user_id"], body.name, body.daily_limit, body.monthly_limit
        )
        await log_event(
            db=db,
            action=AuditAction.DEPOSIT_LIMIT_CREATED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata={"limit_id": limit.id, **body.model_dump(mode="json")},
        )
    return DepositLimitResponse.model_validate(limit)


@router.put("/deposit-limits/{limit_id}", response_model=DepositLimitResponse)
async def update_deposit_limit(
    limit_id: int,
    body: DepositLimitUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    async with atomic(db):
        limit = await DepositLimitService.update_limit(
            db, limit_id, body.name, body.daily_limit, body.monthly_limit
        )
        await log_event(
            db=db,
            action=AuditAction.DEPOSIT_LIMIT_UPDATED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata={"limit_id": limit_id, **body.model_dump(mode="json", exclude_none=True)},
        )
    return DepositLimitResponse.model_validate(limit)


@router.delete("/deposit-limits/{limit_id}", response_model=MessageResponse)
async def delete_deposit_limit(
    limit_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a tier; users on it fall back to the default tier."""
    async with atomic(db):
        await DepositLimitService.delete_limit(db, limit_id)
        await log_event(
            db=db,
            action=AuditAction.DEPOSIT_LIMIT_DELETED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata={"limit_id": limit_id},
        )
    return MessageResponse(message="Deposit limit deleted")
