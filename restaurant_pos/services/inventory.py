"""
Inventory Ledger Helpers

Translates sold menu items into raw-ingredient consumption and applies it
to on-hand stock. Used inside the checkout transaction; never commits.

Each decrement is a single `UPDATE inventory SET quantity = quantity - :x`
statement, so concurrent checkouts touching the same row rely on the
database's row locking rather than a read-modify-write in Python.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import InventoryFloorPolicy, Settings, get_settings
from restaurant_pos.models import InventoryItem, MenuItem, RecipeIngredient
from restaurant_pos.services.errors import InsufficientInventoryError

logger = logging.getLogger(__name__)


class RestockSeverity:
    CRITICAL = "critical"
    MEDIUM = "medium"
    LOW = "low"
    OK = "ok"


async def collect_ingredient_usage(
    session: AsyncSession,
    names: Iterable[Optional[str]],
    units: int,
) -> dict[int, float]:
    """
    Resolve menu names to the inventory they consume for `units` sales.

    Null or empty names are skipped without a query. Each distinct name is
    looked up once; rows from different menu items that share an inventory
    item are summed.

    Returns:
        Mapping of inventory_id to the total amount to subtract
    """
    wanted = sorted({name for name in names if name})
    if not wanted:
        return {}

    stmt = (
        select(RecipeIngredient.inventory_id, RecipeIngredient.quantity)
        .join(MenuItem, MenuItem.menu_id == RecipeIngredient.menu_id)
        .where(MenuItem.name.in_(wanted))
    )
    rows = (await session.execute(stmt)).all()

    usage: dict[int, float] = defaultdict(float)
    for inventory_id, quantity in rows:
        usage[inventory_id] += quantity * units

    logger.debug(f"Ingredient usage for {wanted} x{units}: {dict(usage)}")
    return dict(usage)


async def apply_inventory_usage(
    session: AsyncSession,
    usage: dict[int, float],
    policy: InventoryFloorPolicy = InventoryFloorPolicy.ALLOW,
) -> list[str]:
    """
    Subtract accumulated usage from on-hand quantities.

    Args:
        session: Session with an open transaction
        usage: inventory_id -> amount, as built by collect_ingredient_usage
        policy: Floor behavior (allow, warn, reject, clamp)

    Returns:
        Names of touched items now below zero (only reported under WARN)

    Raises:
        InsufficientInventoryError: Under REJECT, when stock cannot cover a decrement
    """
    if not usage:
        return []

    # Stable lock order across concurrent checkouts
    for inventory_id in sorted(usage):
        amount = usage[inventory_id]
        stmt = update(InventoryItem).where(InventoryItem.inventory_id == inventory_id)

        if policy == InventoryFloorPolicy.REJECT:
            stmt = stmt.where(InventoryItem.quantity >= amount).values(
                quantity=InventoryItem.quantity - amount
            )
        elif policy == InventoryFloorPolicy.CLAMP:
            stmt = stmt.values(
                quantity=case(
                    (InventoryItem.quantity < amount, 0.0),
                    else_=InventoryItem.quantity - amount,
                )
            )
        else:
            stmt = stmt.values(quantity=InventoryItem.quantity - amount)

        result = await session.execute(
            stmt.execution_options(synchronize_session=False)
        )

        if policy == InventoryFloorPolicy.REJECT and result.rowcount == 0:
            logger.warning(
                f"Rejected decrement of {amount:g} on inventory #{inventory_id}"
            )
            raise InsufficientInventoryError(inventory_id, amount)

    if policy != InventoryFloorPolicy.WARN:
        return []

    below_zero = (
        await session.execute(
            select(InventoryItem.name)
            .where(InventoryItem.inventory_id.in_(list(usage)))
            .where(InventoryItem.quantity < 0)
            .order_by(InventoryItem.name)
        )
    ).scalars().all()

    if below_zero:
        logger.warning(f"Inventory below zero after sale: {', '.join(below_zero)}")

    return list(below_zero)


# =============================================================================
# RESTOCK SEVERITY
# =============================================================================

def restock_severity(quantity: float, settings: Optional[Settings] = None) -> str:
    """Derive the restock tier for an on-hand quantity."""
    settings = settings or get_settings()

    if quantity <= settings.restock_critical_threshold:
        return RestockSeverity.CRITICAL
    if quantity <= settings.restock_medium_threshold:
        return RestockSeverity.MEDIUM
    if quantity <= settings.restock_low_threshold:
        return RestockSeverity.LOW
    return RestockSeverity.OK


def serialize_inventory_item(item: InventoryItem, settings: Optional[Settings] = None) -> dict:
    return {
        "inventory_id": item.inventory_id,
        "name": item.name,
        "quantity": item.quantity,
        "quantity_type": item.quantity_type,
        "restock_severity": restock_severity(item.quantity, settings),
    }


async def restock_report(session: AsyncSession, settings: Optional[Settings] = None) -> list[dict]:
    """Items at or below the low threshold, most urgent first."""
    settings = settings or get_settings()

    result = await session.execute(
        select(InventoryItem)
        .where(InventoryItem.quantity <= settings.restock_low_threshold)
        .order_by(InventoryItem.quantity.asc(), InventoryItem.name)
    )
    return [serialize_inventory_item(item, settings) for item in result.scalars().all()]
