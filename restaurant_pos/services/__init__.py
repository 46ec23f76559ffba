"""
                        Services Module

Business logic behind the HTTP layer. Each service takes an explicit
AsyncSession so the caller owns the unit of work.

Services:
    - checkout: Atomic order checkout with inventory decrement
    - inventory: Ingredient usage, floor policies, restock severity
    - receipts: Receipt reads, replacement, deletion and kitchen queue
    - notifications: Mock (development) and SendGrid (production) email
"""

from restaurant_pos.services.checkout import process_order, parse_cart_entry
from restaurant_pos.services.errors import (
    POSError,
    CheckoutError,
    ReceiptNotFoundError,
)

__all__ = [
    "process_order",
    "parse_cart_entry",
    "POSError",
    "CheckoutError",
    "ReceiptNotFoundError",
]
