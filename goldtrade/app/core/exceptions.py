"""
Custom exceptions and error handlers for consistent error responses.

Every ledger failure carries a stable error code so clients never have to
match on message text.
"""

import logging
from decimal import Decimal
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures; answered with a Bearer challenge."""

    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class InvalidInputError(AppException):
    """Raised when a request is well-formed but semantically invalid."""

    def __init__(self, message: str = "Invalid input", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_INPUT_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InsufficientBalanceError(AppException):
    """Raised when a holder owns less gold (or cash) than an operation needs."""

    def __init__(self, message: str, available: Optional[Decimal] = None, requested: Optional[Decimal] = None):
        details = {}
        if available is not None:
            details["available"] = str(available)
        if requested is not None:
            details["requested"] = str(requested)
        super().__init__(
            message=message,
            error_code="ERR_LEDGER_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InsufficientGoldStockError(AppException):
    """Raised when the shop inventory cannot cover an exchange."""

    def __init__(self, message: str = "Insufficient gold stock", available: Optional[Decimal] = None):
        super().__init__(
            message=message,
            error_code="ERR_LEDGER_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"available": str(available)} if available is not None else None
        )


class InvalidTransactionStateError(AppException):
    """Raised when a transaction cannot move to the requested state."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="ERR_LEDGER_003",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class ConcurrencyConflictError(AppException):
    """Raised when a concurrent writer updated the same ledger rows first."""

    def __init__(self, message: str = "The ledger was modified concurrently, please retry"):
        super().__init__(
            message=message,
            error_code="ERR_LEDGER_004",
            status_code=status.HTTP_409_CONFLICT
        )


class TradingClosedError(AppException):
    """Raised when trading is attempted outside hours or while disabled."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="ERR_TRADING_001",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class SlipAlreadyUsedError(AppException):
    """Raised when a payment slip reference was already credited."""

    def __init__(self, trans_ref: str):
        super().__init__(
            message="This slip has already been used",
            error_code="ERR_DEPOSIT_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"trans_ref": trans_ref}
        )


class DepositLimitExceededError(AppException):
    """Raised when a deposit would break the user's daily or monthly limit."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_DEPOSIT_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InvalidReceiverError(AppException):
    """Raised when a slip was paid to an account other than the shop's."""

    def __init__(self, message: str = "Invalid receiver account", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_DEPOSIT_003",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class UpstreamFailureError(AppException):
    """Raised when the price feed or slip verifier fails."""

    def __init__(self, message: str, status_code: int = status.HTTP_502_BAD_GATEWAY, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_UPSTREAM_001",
            status_code=status_code,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        },
        headers=exc.headers
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception on %s %s (correlation_id=%s)",
        request.method, request.url.path, getattr(request.state, "correlation_id", None),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
