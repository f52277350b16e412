"""
Enumerations shared by the ledger models.
"""

import enum


class UserRole(str, enum.Enum):
    MEMBER = "member"
    ADMIN = "admin"


class LotHolder(str, enum.Enum):
    """Who a gold lot belongs to: the shop inventory or a customer."""
    INVENTORY = "INVENTORY"
    CUSTOMER = "CUSTOMER"


class LotReason(str, enum.Enum):
    """Why a lot was created."""
    PURCHASE = "PURCHASE"
    ADMIN_STOCK = "ADMIN_STOCK"
    ADMIN_CREDIT = "ADMIN_CREDIT"
    EXCHANGE_IN = "EXCHANGE_IN"
    JEWELRY_CANCEL = "JEWELRY_CANCEL"
    ADJUSTMENT = "ADJUSTMENT"


class TransactionKind(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    EXCHANGE = "EXCHANGE"
    JEWELRY_EXCHANGE = "JEWELRY_EXCHANGE"
    CANCELLED = "CANCELLED"


# Codes used by the existing mobile and web clients
LEGACY_TRANSACTION_CODES = {
    TransactionKind.BUY: "buy",
    TransactionKind.SELL: "sell",
    TransactionKind.EXCHANGE: "EXCHANGE",
    TransactionKind.JEWELRY_EXCHANGE: "EX_JEWELRY",
    TransactionKind.CANCELLED: "CANCEL_EX",
}


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
