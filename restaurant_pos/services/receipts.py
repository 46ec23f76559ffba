"""
Receipt Retrieval & Mutation

Reads reconstruct each line item's variant by checking the meal,
appetizer and drink rows in that order; the first match wins. A line item
with no variant row is reported as `Unknown`.

Replace and delete run in their own transaction on the caller's session.
Inventory is never touched here: only checkout consumes stock.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from restaurant_pos.models import (
    AppetizerLineItem,
    DrinkLineItem,
    LineItem,
    MealLineItem,
    OrderEmail,
    Receipt,
    ReceiptStatus,
)
from restaurant_pos.services.checkout import build_line_item, parse_cart_entry
from restaurant_pos.services.errors import CheckoutError, ReceiptNotFoundError

logger = logging.getLogger(__name__)

VARIANT_MODELS = (MealLineItem, DrinkLineItem, AppetizerLineItem)

_LINE_ITEM_OPTIONS = (
    selectinload(LineItem.meal),
    selectinload(LineItem.appetizer),
    selectinload(LineItem.drink),
)


def describe_line_item(line_item: LineItem) -> dict[str, Any]:
    """Flatten a line item and its variant into the API shape."""
    base = {"line_item_id": line_item.line_item_id, "price": line_item.price}

    if line_item.meal is not None:
        meal = line_item.meal
        return {
            **base,
            "type": "Meal",
            "size": meal.size,
            "meats": meal.entrees,
            "side": meal.side,
        }
    if line_item.appetizer is not None:
        return {**base, "type": "Appetizer", "name": line_item.appetizer.name}
    if line_item.drink is not None:
        drink = line_item.drink
        return {**base, "type": "Drink", "name": drink.name, "size": drink.size}

    return {**base, "type": "Unknown"}


def summarize_receipt(receipt: Receipt) -> dict[str, Any]:
    return {
        "receipt_id": receipt.receipt_id,
        "date": receipt.date,
        "totalamount": receipt.total_amount,
        "status": receipt.status.value,
    }


# =============================================================================
# READS
# =============================================================================

async def get_receipt(session: AsyncSession, receipt_id: int) -> dict[str, Any]:
    """
    Fetch one receipt with its line items in insertion order.

    Raises:
        ReceiptNotFoundError: No such receipt
    """
    receipt = await session.get(Receipt, receipt_id)
    if receipt is None:
        raise ReceiptNotFoundError(receipt_id)

    result = await session.execute(
        select(LineItem)
        .where(LineItem.receipt_id == receipt_id)
        .order_by(LineItem.line_item_id)
        .options(*_LINE_ITEM_OPTIONS)
    )
    line_items = result.scalars().all()

    return {
        **summarize_receipt(receipt),
        "line_items": [describe_line_item(li) for li in line_items],
    }


async def list_receipts(session: AsyncSession, page: int = 1, limit: int = 50) -> list[dict[str, Any]]:
    """Page through receipts, newest first."""
    offset = (page - 1) * limit
    result = await session.execute(
        select(Receipt)
        .order_by(Receipt.date.desc(), Receipt.receipt_id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [summarize_receipt(r) for r in result.scalars().all()]


# =============================================================================
# MUTATIONS
# =============================================================================

async def _delete_line_items(session: AsyncSession, receipt_id: int) -> None:
    line_item_ids = select(LineItem.line_item_id).where(LineItem.receipt_id == receipt_id)

    for model in VARIANT_MODELS:
        await session.execute(
            delete(model)
            .where(model.line_item_id.in_(line_item_ids))
            .execution_options(synchronize_session=False)
        )
    await session.execute(
        delete(LineItem)
        .where(LineItem.receipt_id == receipt_id)
        .execution_options(synchronize_session=False)
    )


async def replace_receipt(
    session: AsyncSession,
    receipt_id: int,
    status: Optional[ReceiptStatus],
    line_items: Optional[Sequence[Mapping[str, Any]]] = None,
) -> None:
    """
    Replace a receipt's status and, when given, all of its line items.

    Line item payloads use the same shape as cart entries; meal entrees may
    be sent as `meats`. The stored total is left as it was.

    Raises:
        ReceiptNotFoundError: No such receipt
        CheckoutError: A line item was malformed or the database refused it
    """
    try:
        async with session.begin():
            receipt = await session.get(Receipt, receipt_id)
            if receipt is None:
                raise ReceiptNotFoundError(receipt_id)

            if line_items is not None:
                items = [parse_cart_entry(entry, position) for position, entry in enumerate(line_items)]
                await _delete_line_items(session, receipt_id)
                for item in items:
                    session.add_all(
                        [build_line_item(receipt_id, item) for _ in range(item.quantity)]
                    )

            if status is not None:
                receipt.status = status

    except SQLAlchemyError as e:
        raise CheckoutError(f"Could not update receipt #{receipt_id}") from e

    logger.info(f"Receipt #{receipt_id} updated")


async def delete_receipt(session: AsyncSession, receipt_id: int) -> None:
    """
    Delete a receipt, its line items, variant rows and attached emails.

    Raises:
        ReceiptNotFoundError: No such receipt
    """
    async with session.begin():
        receipt = await session.get(Receipt, receipt_id)
        if receipt is None:
            raise ReceiptNotFoundError(receipt_id)

        await _delete_line_items(session, receipt_id)
        for model in (OrderEmail, Receipt):
            await session.execute(
                delete(model)
                .where(model.receipt_id == receipt_id)
                .execution_options(synchronize_session=False)
            )
        session.expunge(receipt)

    logger.info(f"Receipt #{receipt_id} deleted")


# =============================================================================
# KITCHEN QUEUE & EMAIL
# =============================================================================

async def list_pending_orders(session: AsyncSession, limit: int = 6) -> list[dict[str, Any]]:
    """Oldest pending receipts with their items and attached email."""
    result = await session.execute(
        select(Receipt)
        .where(Receipt.status == ReceiptStatus.PENDING)
        .order_by(Receipt.date.asc(), Receipt.receipt_id.asc())
        .limit(limit)
        .options(
            selectinload(Receipt.line_items).selectinload(LineItem.meal),
            selectinload(Receipt.line_items).selectinload(LineItem.appetizer),
            selectinload(Receipt.line_items).selectinload(LineItem.drink),
        )
    )
    receipts = result.scalars().all()
    if not receipts:
        return []

    emails = await _emails_for(session, [r.receipt_id for r in receipts])

    return [
        {
            "receipt_id": r.receipt_id,
            "date": r.date,
            "order_time": r.order_time,
            "email": emails.get(r.receipt_id),
            "totalamount": r.total_amount,
            "items": [describe_line_item(li) for li in r.line_items],
        }
        for r in receipts
    ]


async def _emails_for(session: AsyncSession, receipt_ids: list[int]) -> dict[int, str]:
    result = await session.execute(
        select(OrderEmail.receipt_id, OrderEmail.email)
        .where(OrderEmail.receipt_id.in_(receipt_ids))
        .order_by(OrderEmail.id)
    )
    emails: dict[int, str] = {}
    for receipt_id, email in result.all():
        emails.setdefault(receipt_id, email)
    return emails


async def complete_order(
    session: AsyncSession,
    receipt_id: int,
    email: Optional[str] = None,
) -> Optional[str]:
    """
    Mark a receipt fulfilled.

    Returns:
        The address to notify: the one given, else the first attached, else None

    Raises:
        ReceiptNotFoundError: No such receipt
    """
    async with session.begin():
        receipt = await session.get(Receipt, receipt_id)
        if receipt is None:
            raise ReceiptNotFoundError(receipt_id)

        receipt.status = ReceiptStatus.FULFILLED

        if not email:
            email = (await _emails_for(session, [receipt_id])).get(receipt_id)

    logger.info(f"Receipt #{receipt_id} fulfilled")
    return email


async def attach_email(session: AsyncSession, receipt_id: int, email: str) -> OrderEmail:
    """
    Store a customer email against a receipt.

    Raises:
        ReceiptNotFoundError: No such receipt
    """
    async with session.begin():
        if await session.get(Receipt, receipt_id) is None:
            raise ReceiptNotFoundError(receipt_id)

        order_email = OrderEmail(receipt_id=receipt_id, email=email)
        session.add(order_email)

    return order_email
