"""
Audit logging service for admin actions on the ledger.

Entries are written in the same transaction as the change they describe.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from goldtrade.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    USER_REGISTERED = "USER_REGISTERED"

    STOCK_ADDED = "STOCK_ADDED"
    INVENTORY_LOT_UPDATED = "INVENTORY_LOT_UPDATED"
    INVENTORY_LOT_DELETED = "INVENTORY_LOT_DELETED"
    CUSTOMER_LOT_UPDATED = "CUSTOMER_LOT_UPDATED"
    CUSTOMER_LOT_DELETED = "CUSTOMER_LOT_DELETED"
    GOLD_ADDED_TO_USER = "GOLD_ADDED_TO_USER"
    GOLD_EXCHANGED = "GOLD_EXCHANGED"
    JEWELRY_EXCHANGED = "JEWELRY_EXCHANGED"
    JEWELRY_EXCHANGE_CANCELLED = "JEWELRY_EXCHANGE_CANCELLED"
    TRANSACTION_UPDATED = "TRANSACTION_UPDATED"
    TRANSACTION_DELETED = "TRANSACTION_DELETED"

    MARKUP_UPDATED = "MARKUP_UPDATED"
    TRADING_STATUS_CHANGED = "TRADING_STATUS_CHANGED"
    MINIMUM_PURCHASE_UPDATED = "MINIMUM_PURCHASE_UPDATED"

    ADMIN_CREATED = "ADMIN_CREATED"
    PASSWORD_RESET = "PASSWORD_RESET"

    DEPOSIT_LIMIT_CREATED = "DEPOSIT_LIMIT_CREATED"
    DEPOSIT_LIMIT_UPDATED = "DEPOSIT_LIMIT_UPDATED"
    DEPOSIT_LIMIT_DELETED = "DEPOSIT_LIMIT_DELETED"
    DEPOSIT_LIMIT_ASSIGNED = "DEPOSIT_LIMIT_ASSIGNED"

    GOLD_WITHDRAWAL_APPROVED = "GOLD_WITHDRAWAL_APPROVED"
    GOLD_WITHDRAWAL_REJECTED = "GOLD_WITHDRAWAL_REJECTED"
    CASH_WITHDRAWAL_APPROVED = "CASH_WITHDRAWAL_APPROVED"
    CASH_WITHDRAWAL_REJECTED = "CASH_WITHDRAWAL_REJECTED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    target_user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Record an audit entry.

    Args:
        db: Database session (caller commits)
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_email: Email of actor
        target_user_id: ID of the customer affected (if applicable)
        metadata: Additional JSON context; Decimal values must be stringified
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        target_user_id=target_user_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.flush()
    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> List[AuditLog]:
    """Most recent audit entries, optionally filtered by customer or action."""
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_user_id:
        query = query.where(AuditLog.target_user_id == target_user_id)

    if action:
        query = query.where(AuditLog.action == action)

    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())
