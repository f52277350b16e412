"""
Gold lot model.

A lot is a quantity of one gold type acquired at one unit price. Customer
holdings and the shop inventory are both sets of lots.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from goldtrade.app.db.session import Base, utc_now
from goldtrade.app.models.enums import LotHolder, LotReason


class GoldLot(Base):
    __tablename__ = "gold_lots"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    holder = Column(Enum(LotHolder), nullable=False, index=True)
    # Null for inventory lots
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    gold_type = Column(String(100), nullable=False, index=True)
    amount = Column(Numeric(20, 6), nullable=False)
    purchase_price = Column(Numeric(20, 4), nullable=False)
    reason = Column(Enum(LotReason), nullable=False)
    source_transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Python-side default keeps sub-second ordering for FIFO
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_gold_lots_amount_positive"),
    )

    def __repr__(self):
        return (
            f"<GoldLot(id={self.id}, holder={self.holder.value}, user_id={self.user_id}, "
            f"gold_type='{self.gold_type}', amount={self.amount}, price={self.purchase_price})>"
        )
