"""Service layer exception classes for the ASA donation panel.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application. Every exception is
recoverable: callers surface the message to the operator and carry on.

Exception Hierarchy:
    ServiceError (base)
    ├── NotFound
    │   ├── StockItemNotFound
    │   ├── BeneficiaryNotFound
    │   └── DeliveryEventNotFound
    ├── ValidationError
    ├── InvalidQuantityError
    ├── InsufficientStockError
    │   └── EmptyRecipeError
    ├── DuplicateLineError
    ├── LineNotFoundError
    ├── StaleConfigurationError
    └── DatabaseError
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions inherit from this class. The
    http_status_code lets an outer surface map errors without a lookup table.
    """

    http_status_code = 500


class NotFound(ServiceError):
    """Raised when a referenced record does not exist."""

    http_status_code = 404

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} with ID {identifier} not found")


class StockItemNotFound(NotFound):
    """Raised when a stock item cannot be found by ID.

    Example:
        >>> raise StockItemNotFound(12)
        StockItemNotFound: Stock item with ID 12 not found
    """

    def __init__(self, stock_item_id: Any):
        self.stock_item_id = stock_item_id
        super().__init__("Stock item", stock_item_id)


class BeneficiaryNotFound(NotFound):
    """Raised when a beneficiary cannot be found by ID."""

    def __init__(self, beneficiary_id: Any):
        self.beneficiary_id = beneficiary_id
        super().__init__("Beneficiary", beneficiary_id)


class DeliveryEventNotFound(NotFound):
    """Raised when a delivery event cannot be found by ID."""

    def __init__(self, event_id: Any):
        self.event_id = event_id
        super().__init__("Delivery event", event_id)


class ValidationError(ServiceError):
    """Raised when record data validation fails."""

    http_status_code = 400

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class InvalidQuantityError(ServiceError):
    """Raised when a quantity is negative, non-numeric or otherwise unusable.

    Args:
        field: What the quantity is for (e.g., "quantity_required", "baskets")
        value: The rejected value as supplied
        reason: Short explanation
    """

    http_status_code = 400

    def __init__(self, field: str, value: Any, reason: str = "must be a non-negative number"):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


@dataclass(frozen=True)
class StockShortfall:
    """One item that lacks enough stock for an operation."""

    stock_item_id: Any
    item_name: Optional[str]
    required: Decimal
    available: Decimal

    @property
    def missing(self) -> Decimal:
        return self.required - self.available

    def describe(self) -> str:
        name = self.item_name or f"stock item {self.stock_item_id} (missing)"
        return f"{name}: need {self.required}, have {self.available}"


class InsufficientStockError(ServiceError):
    """Raised when one or more items lack enough quantity.

    Carries every failing item, not just the first, so the operator can
    restock everything in one pass.

    Example:
        >>> raise InsufficientStockError([StockShortfall(2, "Feijão", Decimal("1"), Decimal("0"))])
        InsufficientStockError: Insufficient stock: Feijão: need 1, have 0
    """

    http_status_code = 409

    def __init__(self, shortfalls: List[StockShortfall], message: Optional[str] = None):
        self.shortfalls = list(shortfalls)
        if message is None:
            message = "Insufficient stock: " + "; ".join(s.describe() for s in self.shortfalls)
        super().__init__(message)

    @property
    def stock_item_ids(self) -> List[Any]:
        return [s.stock_item_id for s in self.shortfalls]


class EmptyRecipeError(InsufficientStockError):
    """Raised when assembling from a recipe with no consuming lines."""

    def __init__(self, basket_name: str):
        self.basket_name = basket_name
        super().__init__([], f"Basket '{basket_name}' has no items that consume stock")


class DuplicateLineError(ServiceError):
    """Raised when a recipe already has a line for the stock item."""

    http_status_code = 409

    def __init__(self, stock_item_id: Any):
        self.stock_item_id = stock_item_id
        super().__init__(f"Basket recipe already contains stock item {stock_item_id}")


class LineNotFoundError(ServiceError):
    """Raised when a recipe has no line for the stock item."""

    http_status_code = 404

    def __init__(self, stock_item_id: Any):
        self.stock_item_id = stock_item_id
        super().__init__(f"Basket recipe has no line for stock item {stock_item_id}")


class StaleConfigurationError(ServiceError):
    """Raised when saving a recipe that someone else saved in the meantime."""

    http_status_code = 409

    def __init__(self, expected_version: int, current_version: int):
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Basket configuration changed since it was loaded "
            f"(expected version {expected_version}, found {current_version})"
        )


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
