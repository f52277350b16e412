"""
Verified payment slips.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from goldtrade.app.db.session import Base, utc_now


class VerifiedSlip(Base):
    """A bank transfer already credited; trans_ref is globally unique."""
    __tablename__ = "verified_slips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trans_ref = Column(String(100), unique=True, nullable=False, index=True)
    amount = Column(Numeric(20, 2), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    verified_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)

    def __repr__(self):
        return f"<VerifiedSlip(trans_ref='{self.trans_ref}', amount={self.amount}, user_id={self.user_id})>"
