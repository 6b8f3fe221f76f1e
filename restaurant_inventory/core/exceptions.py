from typing import Any, Dict, List, Optional


class InventoryError(Exception):
    """
    Base class for every error raised by the inventory engine.
    Carries the machine-readable code and HTTP status used by the exception handlers.
    """
    code = "inventory_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(InventoryError):
    """Malformed input fields. Detected before any write is attempted."""
    code = "validation_error"
    status_code = 422

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        self.errors = errors
        super().__init__(message, details=errors)


class InsufficientInventoryError(InventoryError):
    """The requested change would drive stock below zero without an override."""
    code = "insufficient_inventory"
    status_code = 400

    def __init__(self, message: str, shortages: Optional[List[Dict[str, Any]]] = None):
        self.shortages = shortages or []
        super().__init__(message, details=self.shortages)


class OrderNotFoundError(InventoryError):
    """Order is missing or has no line items."""
    code = "order_not_found"
    status_code = 404

    def __init__(self, order_id: int, message: Optional[str] = None):
        self.order_id = order_id
        super().__init__(message or f"Order #{order_id} not found or has no items")


class ProductNotFoundError(InventoryError):
    code = "product_not_found"
    status_code = 404

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class LinkNotFoundError(InventoryError):
    """A link, or an entity a link refers to (recipe ingredient / product), does not exist."""
    code = "link_not_found"
    status_code = 404


class ConflictError(InventoryError):
    code = "conflict"
    status_code = 409


class DuplicateProductError(ConflictError):
    pass


class DuplicateLinkError(ConflictError):
    pass


class ProductInUseError(ConflictError):
    """Product still referenced by ledger rows or recipe links."""


class InvalidStatusTransitionError(InventoryError):
    code = "invalid_status_transition"
    status_code = 400


class StoreError(InventoryError):
    """Underlying persistence failure (connectivity, constraint violation)."""
    code = "store_error"
    status_code = 500


class ReconciliationFailedError(InventoryError):
    """Reconciliation refused or rolled back for a reason other than a stock shortage."""
    code = "reconciliation_failed"
    status_code = 400

    def __init__(self, message: str, issues: Optional[List[Dict[str, Any]]] = None):
        self.issues = issues or []
        super().__init__(message, details=self.issues)
