"""
Admin stock management schemas.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field

from goldtrade.app.schemas.common import CamelModel
from goldtrade.app.schemas.ledger import GoldLotResponse, HoldingsSummaryResponse


class AddStockRequest(CamelModel):
    gold_type: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)
    purchase_price: Decimal = Field(..., ge=0, max_digits=20, decimal_places=4)


class UpdateLotRequest(CamelModel):
    amount: Optional[Decimal] = Field(default=None, max_digits=20, decimal_places=6)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=20, decimal_places=4)


class UpdateCustomerLotRequest(CamelModel):
    gold_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=20, decimal_places=6)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=20, decimal_places=4)


class CustomerResponse(CamelModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None


class InventoryGroupResponse(CamelModel):
    gold_type: str
    lots: List[GoldLotResponse]
    summary: HoldingsSummaryResponse
    available_stock: Decimal


class AddToUserRequest(CamelModel):
    customer_id: int
    gold_type: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=2, description="Cash value to convert into gold")
    gold_price: Decimal = Field(..., gt=0, max_digits=20, decimal_places=4)


class ExchangeRequest(CamelModel):
    customer_id: int
    gold_type: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)


class JewelryExchangeRequest(CamelModel):
    customer_id: int
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)
    jewelry_name: str = Field(..., min_length=1, max_length=255)
    gold_type: Optional[str] = Field(default=None, max_length=100)


class UpdateTransactionRequest(CamelModel):
    customer_id: Optional[int] = None
    gold_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=20, decimal_places=6)


class SavingsSummaryResponse(CamelModel):
    inventory: Dict[str, Decimal]
    customer_holdings: Dict[str, Decimal]
    available_stock: Dict[str, Decimal]
    total_customer_cash: Decimal
