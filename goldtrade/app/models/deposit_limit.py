"""
Deposit limit tiers.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime
from sqlalchemy.sql import func
from goldtrade.app.db.session import Base, utc_now


class DepositLimit(Base):
    __tablename__ = "deposit_limits"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    daily_limit = Column(Numeric(20, 2), nullable=False)
    monthly_limit = Column(Numeric(20, 2), nullable=False)
    created_by = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<DepositLimit(id={self.id}, name='{self.name}', daily={self.daily_limit}, monthly={self.monthly_limit})>"
