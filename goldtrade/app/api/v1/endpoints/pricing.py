"""
Gold prices, markup settings, trading status and minimum purchase endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from goldtrade.app.core.guards import require_admin
from goldtrade.app.db.session import get_db, atomic
from goldtrade.app.domain.ledger.trading_guard import (
    check_trading_hours,
    get_minimum_purchase,
    get_trading_status,
    save_minimum_purchase,
)
from goldtrade.app.schemas.pricing import (
    MarkupSettingsSchema,
    MinimumPurchaseSchema,
    TradingStatusResponse,
    TradingStatusUpdate,
)
from goldtrade.app.services import realtime
from goldtrade.app.services.audit import log_event, AuditAction
from goldtrade.app.services.gold_price import GoldPriceService, get_markup, save_markup

router = APIRouter(tags=["Pricing"])


def get_price_service() -> GoldPriceService:
    return GoldPriceService()


@router.get("/gold")
async def get_gold_prices(
    db: AsyncSession = Depends(get_db),
    price_service: GoldPriceService = Depends(get_price_service),
):
    """Current feed prices with the shop's markup applied."""
    prices = await price_service.fetch_adjusted(db)
    await realtime.publish_price_update(prices)
    return prices


@router.get("/markup", response_model=MarkupSettingsSchema)
async def read_markup(db: AsyncSession = Depends(get_db)):
    markup = await get_markup(db)
    if markup is None:
        return MarkupSettingsSchema()
    return MarkupSettingsSchema.model_validate(markup)


@router.post("/markup", response_model=MarkupSettingsSchema)
async def update_markup(
    body: MarkupSettingsSchema,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    async with atomic(db):
        markup = await save_markup(db, admin["user_id"], body.model_dump())
        await log_event(
            db=db,
            action=AuditAction.MARKUP_UPDATED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata=body.model_dump(mode="json"),
        )
    return MarkupSettingsSchema.model_validate(markup)


def _status_response(status_row) -> TradingStatusResponse:
    within_hours, hours_message = check_trading_hours()
    return TradingStatusResponse(
        is_open=status_row.is_open,
        message=status_row.message,
        within_trading_hours=within_hours,
        hours_message=hours_message,
        updated_at=status_row.updated_at,
    )


@router.get("/trading-status", response_model=TradingStatusResponse)
async def read_trading_status(db: AsyncSession = Depends(get_db)):
    async with atomic(db):
        status_row = await get_trading_status(db)
    return _status_response(status_row)


@router.post("/trading-status", response_model=TradingStatusResponse)
async def update_trading_status(
    body: TradingStatusUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Open or close trading for everyone."""
    async with atomic(db):
        status_row = await get_trading_status(db)
        status_row.is_open = body.is_open
        status_row.message = body.message
        status_row.updated_by = admin["user_id"]
        await log_event(
            db=db,
            action=AuditAction.TRADING_STATUS_CHANGED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata={"is_open": body.is_open, "message": body.message},
        )
    return _status_response(status_row)


@router.get("/minimum-purchase", response_model=MinimumPurchaseSchema)
async def read_minimum_purchase(db: AsyncSession = Depends(get_db)):
    setting = await get_minimum_purchase(db)
    if setting is None:
        return MinimumPurchaseSchema()
    return MinimumPurchaseSchema.model_validate(setting)


@router.post("/minimum-purchase", response_model=MinimumPurchaseSchema)
async def update_minimum_purchase(
    body: MinimumPurchaseSchema,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    async with atomic(db):
        setting = await save_minimum_purchase(db, admin["user_id"], body.minimum_amount)
        await log_event(
            db=db,
            action=AuditAction.MINIMUM_PURCHASE_UPDATED,
            actor_id=admin["user_id"],
            actor_email=admin["sub"],
            metadata=body.model_dump(mode="json"),
        )
    return MinimumPurchaseSchema.model_validate(setting)
