"""
SQLAlchemy Database Models

Point-of-sale schema:
- Menu catalog and the recipe mapping from menu items to inventory
- Inventory ledger (raw materials, on-hand quantity)
- Receipts with polymorphic line items (meal / drink / appetizer)
- Emails attached to receipts for notifications

Variant item names reference menu.name so a sale of an unknown menu
entry fails at the database, inside the checkout transaction.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Time,
    Enum,
    ForeignKey,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restaurant_pos.database import Base
import enum


class MenuCategory(str, enum.Enum):
    """Catalog category of a menu entry."""
    MEAL = "meal"
    DRINK = "drink"
    ENTREE = "entree"
    SIDE = "side"
    APPETIZER = "appetizer"


class ReceiptStatus(str, enum.Enum):
    """Receipt lifecycle. Kitchen completion moves Pending to Fulfilled."""
    PENDING = "Pending"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"


# =============================================================================
# CATALOG & INVENTORY
# =============================================================================

class MenuItem(Base):
    """Canonical catalog row. Read-only from checkout's perspective."""
    __tablename__ = "menu"

    menu_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    item_type = Column(Enum(MenuCategory), nullable=False, index=True)
    price = Column(Float, nullable=False, default=0.0)
    calories = Column(Integer, nullable=True)

    ingredients = relationship(
        "RecipeIngredient",
        back_populates="menu_item",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<MenuItem #{self.menu_id} - {self.name} - {self.item_type.value}>"


class InventoryItem(Base):
    """
    Stocked raw material.

    Quantity is decremented by checkout and may go negative unless the
    inventory floor policy says otherwise.
    """
    __tablename__ = "inventory"

    inventory_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    quantity = Column(Float, nullable=False, default=0.0)
    quantity_type = Column(String(30), nullable=False, default="units")

    def __repr__(self):
        return f"<InventoryItem #{self.inventory_id} - {self.name} - {self.quantity}>"


class RecipeIngredient(Base):
    """How much of one inventory item a single unit of a menu item consumes."""
    __tablename__ = "recipe_ingredient"

    recipe_ing_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    menu_id = Column(
        Integer,
        ForeignKey("menu.menu_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    inventory_id = Column(
        Integer,
        ForeignKey("inventory.inventory_id"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    quantity = Column(Float, nullable=False)
    quantity_type = Column(String(30), nullable=False, default="units")

    menu_item = relationship("MenuItem", back_populates="ingredients")
    inventory_item = relationship("InventoryItem")


# =============================================================================
# RECEIPTS
# =============================================================================

class Receipt(Base):
    """
    A completed sale.

    total_amount is the denormalized order total; line items are never
    summed back into it on read.
    """
    __tablename__ = "receipt"

    receipt_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    order_time = Column(Time, server_default=func.current_time(), nullable=True)
    total_amount = Column(Float, nullable=False)
    status = Column(
        Enum(ReceiptStatus),
        default=ReceiptStatus.PENDING,
        nullable=False,
        index=True
    )

    line_items = relationship(
        "LineItem",
        back_populates="receipt",
        order_by="LineItem.line_item_id",
    )

    def __repr__(self):
        return f"<Receipt #{self.receipt_id} - {self.total_amount} - {self.status.value}>"


class LineItem(Base):
    """One priced unit within a receipt. Quantity is expanded into rows."""
    __tablename__ = "line_item"

    line_item_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    receipt_id = Column(
        Integer,
        ForeignKey("receipt.receipt_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    price = Column(Float, nullable=False)

    receipt = relationship("Receipt", back_populates="line_items")
    meal = relationship("MealLineItem", uselist=False)
    drink = relationship("DrinkLineItem", uselist=False)
    appetizer = relationship("AppetizerLineItem", uselist=False)


class MealLineItem(Base):
    """Meal variant: up to three entrees and one side."""
    __tablename__ = "meal_item"

    line_item_id = Column(
        Integer,
        ForeignKey("line_item.line_item_id", ondelete="CASCADE"),
        primary_key=True,
    )
    size = Column(String(30), nullable=False)
    price = Column(Float, nullable=False)
    entree1 = Column(String(100), ForeignKey("menu.name", onupdate="CASCADE"), nullable=True)
    entree2 = Column(String(100), ForeignKey("menu.name", onupdate="CASCADE"), nullable=True)
    entree3 = Column(String(100), ForeignKey("menu.name", onupdate="CASCADE"), nullable=True)
    side = Column(String(100), ForeignKey("menu.name", onupdate="CASCADE"), nullable=False)

    @property
    def entrees(self) -> list[str]:
        return [e for e in (self.entree1, self.entree2, self.entree3) if e]


class DrinkLineItem(Base):
    """Drink variant."""
    __tablename__ = "drink_item"

    line_item_id = Column(
        Integer,
        ForeignKey("line_item.line_item_id", ondelete="CASCADE"),
        primary_key=True,
    )
    name = Column(String(100), ForeignKey("menu.name", onupdate="CASCADE"), nullable=False)
    size = Column(String(30), nullable=False, default="Regular")
    price = Column(Float, nullable=False)


class AppetizerLineItem(Base):
    """Appetizer variant."""
    __tablename__ = "appetizer_item"

    line_item_id = Column(
        Integer,
        ForeignKey("line_item.line_item_id", ondelete="CASCADE"),
        primary_key=True,
    )
    name = Column(String(100), ForeignKey("menu.name", onupdate="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)


class OrderEmail(Base):
    """Customer email attached to a receipt for receipt and ready notifications."""
    __tablename__ = "order_emails"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    receipt_id = Column(
        Integer,
        ForeignKey("receipt.receipt_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
