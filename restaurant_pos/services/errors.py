"""
Domain exceptions raised by the point-of-sale services.

The HTTP layer decides how much of each reaches the client: checkout
failures collapse to one opaque 500, lookups map to 404.
"""

from typing import Any, Optional


class POSError(Exception):
    """Base class for all point-of-sale domain errors."""


class CheckoutError(POSError):
    """A checkout could not be completed; the transaction was rolled back."""


class UnknownItemTypeError(CheckoutError):
    """A cart entry carried a type that is not Meal, Drink or Appetizer."""

    def __init__(self, item_type: Any, position: Optional[int] = None):
        self.item_type = item_type
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Unknown item type {item_type!r}{where}")


class MalformedCartEntryError(CheckoutError):
    """A cart entry is missing a field its type requires."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"Cart entry {position}: {message}"
        super().__init__(message)


class InsufficientInventoryError(CheckoutError):
    """The reject floor policy refused a decrement below zero."""

    def __init__(self, inventory_id: int, required: float):
        self.inventory_id = inventory_id
        self.required = required
        super().__init__(
            f"Inventory item #{inventory_id} cannot cover {required:g} units"
        )


class ReceiptNotFoundError(POSError):
    """No receipt exists with the requested identifier."""

    def __init__(self, receipt_id: int):
        self.receipt_id = receipt_id
        super().__init__(f"Receipt #{receipt_id} not found")
