"""
Minimum purchase setting (singleton row).
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func
from goldtrade.app.db.session import Base, utc_now


class MinimumPurchaseSettings(Base):
    """Smallest purchase, in baht, the customer apps offer."""
    __tablename__ = "minimum_purchase_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    minimum_amount = Column(Numeric(20, 2), nullable=False, default=Decimal("0"))
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)
