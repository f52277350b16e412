"""
Database seeding script for a fresh install.

Creates the first admin account, the default deposit limit tier and the
trading status row. Run this after the database is set up but before first use:

    python -m goldtrade.seed_data
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select

from goldtrade.app.core.config import settings
from goldtrade.app.core.security import get_password_hash
from goldtrade.app.db.session import AsyncSessionLocal, Base, engine
from goldtrade.app.models.deposit_limit import DepositLimit
from goldtrade.app.models.enums import UserRole
from goldtrade.app.models.trading_status import TradingStatus
from goldtrade.app.models.user import User
import goldtrade.app.main  # noqa: F401  registers every model with Base

DEFAULT_DAILY_LIMIT = Decimal("50000.00")
DEFAULT_MONTHLY_LIMIT = Decimal("500000.00")


async def seed():
    """
    Seed the rows the API expects to exist.

    Creates:
    - 1 ADMIN user (admin@goldtrade.co / admin123)
    - the default deposit limit tier
    - an open trading status
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")

        result = await db.execute(select(User).where(User.email == "admin@goldtrade.co"))
        if result.scalar_one_or_none():
            print("ℹ️  ADMIN user already exists, skipping")
        else:
            db.add(User(
                name="Administrator",
                email="admin@goldtrade.co",
                hashed_password=get_password_hash("admin123"),
                role=UserRole.ADMIN,
                is_active=True,
            ))
            print("✅ Created ADMIN user (email: admin@goldtrade.co, password: admin123)")

        result = await db.execute(
            select(DepositLimit).where(DepositLimit.name == settings.default_deposit_limit_name)
        )
        if result.scalar_one_or_none():
            print(f"ℹ️  Deposit limit '{settings.default_deposit_limit_name}' already exists, skipping")
        else:
            db.add(DepositLimit(
                name=settings.default_deposit_limit_name,
                daily_limit=DEFAULT_DAILY_LIMIT,
                monthly_limit=DEFAULT_MONTHLY_LIMIT,
            ))
            print(f"✅ Created deposit limit '{settings.default_deposit_limit_name}' "
                  f"(daily ฿{DEFAULT_DAILY_LIMIT:,.2f}, monthly ฿{DEFAULT_MONTHLY_LIMIT:,.2f})")

        result = await db.execute(select(TradingStatus).limit(1))
        if result.scalar_one_or_none() is None:
            db.add(TradingStatus(is_open=True))
            print("✅ Created trading status (open)")

        await db.commit()
        print("\n🎉 Seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed())
