"""
Trading and holdings schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field

from goldtrade.app.schemas.common import CamelModel


class TradeRequest(CamelModel):
    """Body of buy and sell requests."""
    gold_type: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)
    price_per_unit: Decimal = Field(..., gt=0, max_digits=20, decimal_places=4)
    total_price: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2)


class CombinedTradeRequest(TradeRequest):
    type: Literal["buy", "sell"] = "buy"


class BuyResponse(CamelModel):
    success: bool = True
    transaction_id: int
    balance: Decimal
    gold_amount: Decimal = Field(..., description="Shop stock still available for this gold type")


class SellResponse(CamelModel):
    success: bool = True
    transaction_id: int
    balance: Decimal
    gold_amount: Decimal = Field(..., description="Gold the customer still holds of this type")
    average_cost: Decimal
    total_cost: Decimal
    previous_avg_cost: Decimal
    previous_total_cost: Decimal
    profit_loss: Decimal


class TransactionResponse(CamelModel):
    id: int
    user_id: int
    kind: str
    type: str = Field(..., description="Legacy transaction code")
    gold_type: str
    item_name: Optional[str] = None
    original_kind: Optional[str] = None
    amount: Decimal
    price_per_unit: Decimal
    total_price: Decimal
    actor_id: Optional[int] = None
    created_at: datetime
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, transaction) -> "TransactionResponse":
        return cls(
            id=transaction.id,
            user_id=transaction.user_id,
            kind=transaction.kind.value,
            type=transaction.legacy_code,
            gold_type=transaction.gold_type,
            item_name=transaction.item_name,
            original_kind=transaction.original_kind.value if transaction.original_kind else None,
            amount=transaction.amount,
            price_per_unit=transaction.price_per_unit,
            total_price=transaction.total_price,
            actor_id=transaction.actor_id,
            created_at=transaction.created_at,
            cancelled_at=transaction.cancelled_at,
        )


class TransactionHistoryResponse(CamelModel):
    items: List[TransactionResponse]
    total: int
    page: int
    page_size: int


class GoldLotResponse(CamelModel):
    id: int
    gold_type: str
    amount: Decimal
    purchase_price: Decimal
    reason: str
    created_at: datetime

    @classmethod
    def from_model(cls, lot) -> "GoldLotResponse":
        return cls(
            id=lot.id,
            gold_type=lot.gold_type,
            amount=lot.amount,
            purchase_price=lot.purchase_price,
            reason=lot.reason.value,
            created_at=lot.created_at,
        )


class HoldingsSummaryResponse(CamelModel):
    gold_type: str
    total_amount: Decimal
    total_cost: Decimal
    average_cost: Decimal


class GoldAssetsResponse(CamelModel):
    lots: List[GoldLotResponse]
    summaries: List[HoldingsSummaryResponse]


class BalanceResponse(CamelModel):
    balance: Decimal
