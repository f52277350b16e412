"""
Ledger transaction model.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey
from goldtrade.app.db.session import Base, utc_now
from goldtrade.app.models.enums import TransactionKind, LEGACY_TRANSACTION_CODES


class Transaction(Base):
    """
    Immutable record of a ledger event.

    The only permitted state change is JEWELRY_EXCHANGE -> CANCELLED.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(Enum(TransactionKind), nullable=False, index=True)
    gold_type = Column(String(100), nullable=False)
    item_name = Column(String(255), nullable=True)
    original_kind = Column(Enum(TransactionKind), nullable=True)
    amount = Column(Numeric(20, 6), nullable=False)
    price_per_unit = Column(Numeric(20, 4), nullable=False)
    total_price = Column(Numeric(20, 2), nullable=False)
    # Admin who performed the operation (null for self-service trades)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def legacy_code(self) -> str:
        return LEGACY_TRANSACTION_CODES[self.kind]

    def __repr__(self):
        return f"<Transaction(id={self.id}, kind={self.kind.value}, user_id={self.user_id}, amount={self.amount})>"
