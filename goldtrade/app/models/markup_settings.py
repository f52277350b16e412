"""
Price markup settings (singleton row).
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func
from goldtrade.app.db.session import Base, utc_now


class MarkupSettings(Base):
    """
    Bid/ask adjustments applied to the upstream price feed.

    Spot, 99.99% and 96.5% rows are adjusted by a percentage; the
    association (สมาคมฯ) row by a fixed THB offset.
    """
    __tablename__ = "markup_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gold_spot_bid = Column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    gold_spot_ask = Column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    gold_9999_bid = Column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    gold_9999_ask = Column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    gold_965_bid = Column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    gold_965_ask = Column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    gold_association_bid = Column(Numeric(20, 2), nullable=False, default=Decimal("0"))
    gold_association_ask = Column(Numeric(20, 2), nullable=False, default=Decimal("0"))
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)
