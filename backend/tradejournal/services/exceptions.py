# backend/tradejournal/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO transport
knowledge. Whatever surface sits on top (web routes, CLI) maps them to its own
responses.

Exception Hierarchy:
    ServiceError (base)
    ├── InvalidArgumentError
    │   └── BoardLotError
    ├── InconsistentStateError
    │   ├── TradeAlreadyClosedError
    │   ├── InsufficientCashError
    │   └── ConcurrentModificationError
    └── NotFoundError
        ├── PortfolioNotFoundError
        ├── TradeNotFoundError
        └── TransactionNotFoundError

A missing market price is NOT an error: valuation falls back to the last
known or entry price and flags the result as estimated.
"""

from decimal import Decimal


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# INVALID ARGUMENTS
# =============================================================================


class InvalidArgumentError(ServiceError):
    """
    Raised when a numeric or structural input is rejected before any
    computation happens (non-positive price or quantity, oversized close...).

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class BoardLotError(InvalidArgumentError):
    """
    Raised when a quantity is not a whole multiple of the board lot.

    Attributes:
        quantity: The rejected quantity
        lot_size: Board lot in force for the price
    """

    def __init__(self, quantity: Decimal, lot_size: int, message: str | None = None) -> None:
        self.quantity = quantity
        self.lot_size = lot_size
        super().__init__(
            message or f"Quantity {quantity} must be a multiple of the board lot size ({lot_size})",
            field="quantity",
        )


# =============================================================================
# INCONSISTENT STATE
# =============================================================================


class InconsistentStateError(ServiceError):
    """
    Raised when an operation contradicts the current state of a record or
    ledger (closing a closed trade, driving cash negative...). Never clamped.
    """
    pass


class TradeAlreadyClosedError(InconsistentStateError):
    """Raised when a closed trade is asked to transition again."""

    def __init__(self, trade_id: int | None) -> None:
        self.trade_id = trade_id
        label = f"Trade {trade_id}" if trade_id is not None else "Trade"
        super().__init__(f"{label} is already closed")


class InsufficientCashError(InconsistentStateError):
    """
    Raised when a debit would leave the cash ledger negative.

    Attributes:
        available: Cash on the ledger when the debit was attempted (if known)
        requested: Amount of the rejected debit
    """

    def __init__(self, requested: Decimal, available: Decimal | None = None) -> None:
        self.requested = requested
        self.available = available
        message = f"Insufficient cash: requested {requested}"
        if available is not None:
            message += f", available {available}"
        super().__init__(message)


class ConcurrentModificationError(InconsistentStateError):
    """
    Raised when a conditional update matched no row because another writer
    changed the record first.
    """

    def __init__(self, resource_type: str, resource_id: int) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} {resource_id} was modified concurrently; reload and retry"
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio", "Trade")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    """Raised when a portfolio cannot be found."""

    def __init__(self, portfolio_id: int) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


class TradeNotFoundError(NotFoundError):
    """Raised when a trade cannot be found."""

    def __init__(self, trade_id: int) -> None:
        self.trade_id = trade_id
        super().__init__(
            f"Trade {trade_id} not found",
            resource_type="Trade",
            resource_id=trade_id,
        )


class TransactionNotFoundError(NotFoundError):
    """Raised when a cash transaction cannot be found."""

    def __init__(self, transaction_id: int) -> None:
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} not found",
            resource_type="Transaction",
            resource_id=transaction_id,
        )


__all__ = [
    "ServiceError",
    "InvalidArgumentError",
    "BoardLotError",
    "InconsistentStateError",
    "TradeAlreadyClosedError",
    "InsufficientCashError",
    "ConcurrentModificationError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "TradeNotFoundError",
    "TransactionNotFoundError",
]
