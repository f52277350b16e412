"""
Gold and cash withdrawal requests.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from goldtrade.app.db.session import Base, utc_now
from goldtrade.app.models.enums import RequestStatus


class WithdrawalRequest(Base):
    """Request to take physical delivery of gold."""
    __tablename__ = "withdrawal_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    gold_type = Column(String(100), nullable=False)
    amount = Column(Numeric(20, 6), nullable=False)
    # Average cost of the lots taken, used to restore them on rejection
    average_cost = Column(Numeric(20, 4), nullable=False)
    name = Column(String(255), nullable=False)
    tel = Column(String(50), nullable=False)
    address = Column(String(1000), nullable=False)
    status = Column(Enum(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True)
    decided_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<WithdrawalRequest(id={self.id}, user_id={self.user_id}, amount={self.amount}, status={self.status.value})>"


class WithdrawalMoneyRequest(Base):
    """Request to transfer cash balance to a bank account."""
    __tablename__ = "withdrawal_money_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(20, 2), nullable=False)
    bank = Column(String(50), nullable=False)
    account_number = Column(String(50), nullable=False)
    account_name = Column(String(255), nullable=False)
    status = Column(Enum(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True)
    decided_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<WithdrawalMoneyRequest(id={self.id}, user_id={self.user_id}, amount={self.amount}, status={self.status.value})>"
