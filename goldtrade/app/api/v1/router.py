"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from goldtrade.app.api.v1.endpoints import (
    admin, auth, transactions, user, management, deposits, pricing, withdrawals
)

router = APIRouter()

router.include_router(auth.router)

# Customer trading and holdings
router.include_router(transactions.router)
router.include_router(user.router)
router.include_router(withdrawals.router)

# Deposits and slip verification
router.include_router(deposits.router)

# Prices, markup, trading status
router.include_router(pricing.router)

# Admin stock management
router.include_router(management.router)

# Admin accounts
router.include_router(admin.router)
