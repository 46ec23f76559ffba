"""
Pydantic Schemas for Request/Response Validation

Cart entries are accepted loosely (type-specific fields optional) so that
type dispatch and required-field checks happen inside the checkout
transaction, where a failure rolls back as a whole.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime, time
from enum import Enum
import re


# =============================================================================
# ENUMS
# =============================================================================

class ReceiptStatusEnum(str, Enum):
    PENDING = "Pending"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"


class MenuCategoryEnum(str, Enum):
    MEAL = "meal"
    DRINK = "drink"
    ENTREE = "entree"
    SIDE = "side"
    APPETIZER = "appetizer"


EMAIL_PATTERN = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w+$')


# =============================================================================
# CHECKOUT
# =============================================================================

class CartEntry(BaseModel):
    """One cart entry as assembled by the kiosk or cashier."""
    type: Optional[str] = Field(None, examples=["Meal", "Drink", "Appetizer"])
    name: Optional[str] = Field(None, examples=["Medium Drink"])
    entrees: Optional[List[Optional[str]]] = Field(
        None, examples=[["Orange Chicken", "Broccoli Beef", None]]
    )
    side: Optional[str] = Field(None, examples=["Fried Rice"])
    size: Optional[str] = Field(None, examples=["Plate"])
    price: Optional[float] = Field(None, examples=[8.49])
    quantity: Optional[int] = Field(default=1, examples=[1])


class CheckoutRequest(BaseModel):
    """Checkout payload: the whole cart plus the client's total."""
    model_config = ConfigDict(populate_by_name=True)

    order_list: List[CartEntry] = Field(..., alias="orderList", min_length=1)
    total_price: float = Field(..., alias="totalPrice", examples=[12.47])


class CheckoutResponse(BaseModel):
    result: int
    success: bool = True
    total_amount: float
    computed_total: float
    total_mismatch: bool = False
    negative_inventory: List[str] = []


# =============================================================================
# RECEIPTS
# =============================================================================

class LineItemIn(BaseModel):
    """Line item in a receipt replacement payload."""
    type: str
    name: Optional[str] = None
    meats: Optional[List[Optional[str]]] = None
    entrees: Optional[List[Optional[str]]] = None
    side: Optional[str] = None
    size: Optional[str] = None
    price: float
    quantity: Optional[int] = Field(default=1, ge=1)


class ReceiptUpdate(BaseModel):
    status: Optional[ReceiptStatusEnum] = None
    line_items: Optional[List[LineItemIn]] = None


class LineItemOut(BaseModel):
    line_item_id: int
    type: str
    price: float
    name: Optional[str] = None
    size: Optional[str] = None
    meats: Optional[List[str]] = None
    side: Optional[str] = None


class ReceiptSummary(BaseModel):
    receipt_id: int
    date: datetime
    totalamount: float
    status: str


class ReceiptDetail(ReceiptSummary):
    line_items: List[LineItemOut]


class PendingOrder(BaseModel):
    receipt_id: int
    date: datetime
    order_time: Optional[time] = None
    email: Optional[str] = None
    totalamount: float
    items: List[LineItemOut]


class EmailRequest(BaseModel):
    email: str = Field(..., examples=["customer@example.com"])

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Invalid email format')
        return v


class CompleteOrderRequest(BaseModel):
    email: Optional[str] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Invalid email format')
        return v


# =============================================================================
# MENU & RECIPES
# =============================================================================

class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Orange Chicken"])
    item_type: MenuCategoryEnum = Field(..., examples=["entree"])
    price: float = Field(default=0.0, ge=0, examples=[0.0])
    calories: Optional[int] = Field(None, ge=0, examples=[490])


class MenuItemResponse(BaseModel):
    menu_id: int
    name: str
    item_type: MenuCategoryEnum
    price: float
    calories: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class RecipeIngredientCreate(BaseModel):
    inventory_id: int
    name: str = Field(..., min_length=1, max_length=100)
    quantity: float = Field(..., gt=0)
    quantity_type: str = Field(default="units", max_length=30)


class RecipeIngredientResponse(BaseModel):
    recipe_ing_id: int
    menu_id: int
    inventory_id: int
    name: str
    quantity: float
    quantity_type: str

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# INVENTORY
# =============================================================================

class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Chicken"])
    quantity: float = Field(..., examples=[120.0])
    quantity_type: str = Field(default="units", max_length=30, examples=["lbs"])


class InventoryItemResponse(BaseModel):
    inventory_id: int
    name: str
    quantity: float
    quantity_type: str
    restock_severity: str


# =============================================================================
# GENERIC
# =============================================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    notification_service: str
    timestamp: datetime
