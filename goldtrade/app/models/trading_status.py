"""
Global trading switch (singleton row).
"""

from sqlalchemy import Column, Integer, Boolean, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from goldtrade.app.db.session import Base, utc_now


class TradingStatus(Base):
    __tablename__ = "trading_status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_open = Column(Boolean, nullable=False, default=True)
    message = Column(String(500), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)
