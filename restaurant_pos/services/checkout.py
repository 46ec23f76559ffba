"""
Order Checkout Transaction

Records a sale and reduces on-hand inventory as one all-or-nothing unit:

    1. Open a transaction on the caller's session.
    2. Insert the receipt and capture its identifier.
    3. For each cart entry, insert one line item plus one variant row per
       unit of quantity, in cart order.
    4. For each cart entry, resolve the menu names it sells, accumulate
       recipe quantity x units per inventory item, and decrement stock.
    5. Commit and return the receipt identifier.

Any failure rolls the whole transaction back; no partial receipt is ever
visible. There is no idempotency key, so resubmitting the same cart
creates a second receipt.

Cart entries arrive as loose mappings and are converted into a tagged
union of frozen dataclasses before anything is written. Unknown types are
an error rather than an orphan line item.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import Settings, TotalPricePolicy, get_settings
from restaurant_pos.models import (
    AppetizerLineItem,
    DrinkLineItem,
    LineItem,
    MealLineItem,
    Receipt,
    ReceiptStatus,
)
from restaurant_pos.services.errors import (
    CheckoutError,
    MalformedCartEntryError,
    UnknownItemTypeError,
)
from restaurant_pos.services.inventory import apply_inventory_usage, collect_ingredient_usage

logger = logging.getLogger(__name__)

MAX_ENTREES = 3
DEFAULT_MEAL_SIZE = "Bowl"
DEFAULT_DRINK_SIZE = "Regular"

# Totals closer than half a cent are considered equal
TOTAL_TOLERANCE = 0.005


# =============================================================================
# CART ITEM VARIANTS
# =============================================================================

@dataclass(frozen=True)
class MealCartItem:
    """A meal: up to three entree slots (absent slots are None) and a side."""
    entrees: tuple[Optional[str], Optional[str], Optional[str]]
    side: str
    size: str
    price: float
    quantity: int = 1
    type: str = field(default="Meal", init=False)

    @property
    def menu_names(self) -> tuple[Optional[str], ...]:
        return (*self.entrees, self.side)


@dataclass(frozen=True)
class DrinkCartItem:
    name: str
    size: str
    price: float
    quantity: int = 1
    type: str = field(default="Drink", init=False)

    @property
    def menu_names(self) -> tuple[str, ...]:
        return (self.name,)


@dataclass(frozen=True)
class AppetizerCartItem:
    name: str
    price: float
    quantity: int = 1
    type: str = field(default="Appetizer", init=False)

    @property
    def menu_names(self) -> tuple[str, ...]:
        return (self.name,)


CartItem = Union[MealCartItem, DrinkCartItem, AppetizerCartItem]


def _required_name(entry: Mapping[str, Any], key: str, position: Optional[int]) -> str:
    value = entry.get(key)
    if not value:
        raise MalformedCartEntryError(f"missing '{key}'", position)
    return value


def _as_price(value: Any, position: Optional[int]) -> float:
    if value is None:
        raise MalformedCartEntryError("missing 'price'", position)
    if isinstance(value, bool):
        raise MalformedCartEntryError(f"invalid price {value!r}", position)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MalformedCartEntryError(f"invalid price {value!r}", position) from None


def parse_cart_entry(entry: Mapping[str, Any], position: Optional[int] = None) -> CartItem:
    """
    Convert one loose cart entry into its typed variant.

    Meal entrees may be given as `entrees` (checkout payloads) or `meats`
    (receipt edit payloads); empty slots become None.

    Raises:
        UnknownItemTypeError: type is not Meal, Drink or Appetizer
        MalformedCartEntryError: a field required by the type is missing
    """
    item_type = entry.get("type")

    price = _as_price(entry.get("price"), position)

    quantity = entry.get("quantity")
    if quantity is None:
        quantity = 1
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise MalformedCartEntryError(f"invalid quantity {quantity!r}", position)

    match item_type:
        case "Meal" | "meal":
            raw = entry.get("entrees")
            if raw is None:
                raw = entry.get("meats")
            slots = list(raw or [])
            if len(slots) > MAX_ENTREES:
                raise MalformedCartEntryError(
                    f"a meal holds at most {MAX_ENTREES} entrees", position
                )
            slots += [None] * (MAX_ENTREES - len(slots))
            return MealCartItem(
                entrees=tuple(slot or None for slot in slots),
                side=_required_name(entry, "side", position),
                size=entry.get("size") or DEFAULT_MEAL_SIZE,
                price=price,
                quantity=quantity,
            )
        case "Drink" | "drink":
            return DrinkCartItem(
                name=_required_name(entry, "name", position),
                size=entry.get("size") or DEFAULT_DRINK_SIZE,
                price=price,
                quantity=quantity,
            )
        case "Appetizer" | "appetizer":
            return AppetizerCartItem(
                name=_required_name(entry, "name", position),
                price=price,
                quantity=quantity,
            )
        case _:
            raise UnknownItemTypeError(item_type, position)


def build_line_item(receipt_id: int, item: CartItem) -> LineItem:
    """One line item row with exactly one variant row attached."""
    match item:
        case MealCartItem(entrees=(first, second, third)):
            variant = {"meal": MealLineItem(
                size=item.size,
                price=item.price,
                entree1=first,
                entree2=second,
                entree3=third,
                side=item.side,
            )}
        case DrinkCartItem():
            variant = {"drink": DrinkLineItem(name=item.name, size=item.size, price=item.price)}
        case AppetizerCartItem():
            variant = {"appetizer": AppetizerLineItem(name=item.name, price=item.price)}
        case _:
            raise UnknownItemTypeError(type(item).__name__)

    return LineItem(receipt_id=receipt_id, price=item.price, **variant)


# =============================================================================
# CHECKOUT
# =============================================================================

@dataclass
class CheckoutResult:
    """
    Outcome of a committed checkout.

    Attributes:
        receipt_id: Identifier of the new receipt
        total_amount: Total stored on the receipt
        computed_total: Sum of price x quantity over the cart
        total_mismatch: Caller's total differed from computed_total
        negative_inventory: Items left below zero (warn policy only)
    """
    receipt_id: int
    total_amount: float
    computed_total: float
    total_mismatch: bool = False
    negative_inventory: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "result": self.receipt_id,
            "success": True,
            "total_amount": self.total_amount,
            "computed_total": self.computed_total,
            "total_mismatch": self.total_mismatch,
            "negative_inventory": self.negative_inventory,
        }


def compute_total(items: Sequence[CartItem]) -> float:
    return round(sum(item.price * item.quantity for item in items), 2)


async def process_order(
    session: AsyncSession,
    entries: Sequence[Mapping[str, Any]],
    total_price: Optional[float],
    settings: Optional[Settings] = None,
) -> CheckoutResult:
    """
    Run the checkout transaction on an explicitly passed session.

    Args:
        session: Unit of work for this request; must not have a transaction open
        entries: Cart entries in display order
        total_price: Caller-supplied total for the receipt
        settings: Policies to apply (defaults to application settings)

    Returns:
        CheckoutResult for the committed receipt

    Raises:
        CheckoutError: Any failure; nothing was committed
    """
    settings = settings or get_settings()

    try:
        async with session.begin():
            items = [parse_cart_entry(entry, position) for position, entry in enumerate(entries)]
            if total_price is not None:
                try:
                    total_price = float(total_price)
                except (TypeError, ValueError):
                    raise CheckoutError(f"Invalid total price {total_price!r}") from None

            computed = compute_total(items)
            mismatch = total_price is None or abs(computed - total_price) > TOTAL_TOLERANCE
            if mismatch:
                logger.warning(
                    f"Checkout total mismatch: client={total_price} computed={computed}"
                )

            if settings.total_price_policy == TotalPricePolicy.RECOMPUTE or total_price is None:
                stored_total = computed
            else:
                stored_total = total_price

            receipt = Receipt(total_amount=stored_total, status=ReceiptStatus.PENDING)
            session.add(receipt)
            await session.flush()
            receipt_id = receipt.receipt_id

            negative: set[str] = set()
            for item in items:
                session.add_all(
                    [build_line_item(receipt_id, item) for _ in range(item.quantity)]
                )
                usage = await collect_ingredient_usage(session, item.menu_names, item.quantity)
                negative.update(
                    await apply_inventory_usage(session, usage, settings.inventory_floor_policy)
                )
            await session.flush()

    except CheckoutError:
        raise
    except SQLAlchemyError as e:
        raise CheckoutError("Database error during checkout") from e

    logger.info(
        f"Receipt #{receipt_id} created: {sum(i.quantity for i in items)} line items, "
        f"total {stored_total:.2f}"
    )

    return CheckoutResult(
        receipt_id=receipt_id,
        total_amount=stored_total,
        computed_total=computed,
        total_mismatch=mismatch,
        negative_inventory=sorted(negative),
    )
