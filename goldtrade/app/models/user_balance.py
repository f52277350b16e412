"""
Cash balance model.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func
from goldtrade.app.db.session import Base, utc_now


class UserBalance(Base):
    """
    One cash balance row per user.

    The version column is the ORM version counter: a writer holding a stale
    copy of the row fails with StaleDataError instead of overwriting.
    """
    __tablename__ = "user_balances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    balance = Column(Numeric(20, 2), nullable=False, default=Decimal("0"))
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<UserBalance(user_id={self.user_id}, balance={self.balance}, version={self.version})>"
