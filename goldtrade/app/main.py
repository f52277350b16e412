"""
FastAPI Application Entry Point.

This is the main application file for the Gold Trading Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from goldtrade.app.core.config import settings
from goldtrade.app.core.logging_config import setup_logging
from goldtrade.app.core.observability import ObservabilityMiddleware
from goldtrade.app.core.redis_client import ping_redis
from goldtrade.app.api.v1.router import router as api_v1_router
from goldtrade.app.db.session import engine, Base
from goldtrade.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from goldtrade.app.models.deposit_limit import DepositLimit
from goldtrade.app.models.user import User
from goldtrade.app.models.user_balance import UserBalance
from goldtrade.app.models.transaction import Transaction
from goldtrade.app.models.gold_lot import GoldLot
from goldtrade.app.models.verified_slip import VerifiedSlip
from goldtrade.app.models.markup_settings import MarkupSettings
from goldtrade.app.models.minimum_purchase import MinimumPurchaseSettings
from goldtrade.app.models.trading_status import TradingStatus
from goldtrade.app.models.withdrawal import WithdrawalRequest, WithdrawalMoneyRequest
from goldtrade.app.models.audit_log import AuditLog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Configures logging and creates database tables on startup.
    """
    setup_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Gold trading ledger: customer holdings, shop inventory and deposits",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": await ping_redis(),
    }


app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to the Gold Trading Backend API",
        "docs": "/docs",
        "health": "/health",
    }
