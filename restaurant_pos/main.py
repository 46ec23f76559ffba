"""
FastAPI Application Entry Point

Restaurant POS backend: a thin REST layer over the relational store for
the kiosk, cashier, kitchen display and manager back-office.

Endpoints:
    - POST /api/orders/checkout: Atomic checkout (receipt + line items + inventory)
    - GET/PUT/DELETE /api/receipts/{id}: Receipt retrieval and mutation
    - GET /api/kitchen/pending, POST /api/kitchen/{id}/complete: Kitchen display
    - /api/menu, /api/recipe-ingredients, /api/inventory: Back-office CRUD
    - GET /health: System health check
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select, func
import redis

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from restaurant_pos.core.config import get_settings, setup_logging
from restaurant_pos.database import get_db, init_db, engine
from restaurant_pos.models import (
    InventoryItem,
    MenuCategory,
    MenuItem,
    RecipeIngredient,
    ReceiptStatus,
)
from restaurant_pos.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    CompleteOrderRequest,
    EmailRequest,
    ErrorResponse,
    HealthResponse,
    InventoryItemCreate,
    InventoryItemResponse,
    MenuCategoryEnum,
    MenuItemCreate,
    MenuItemResponse,
    MessageResponse,
    PendingOrder,
    ReceiptDetail,
    ReceiptSummary,
    ReceiptUpdate,
    RecipeIngredientCreate,
    RecipeIngredientResponse,
)
from restaurant_pos.services import checkout, inventory, receipts
from restaurant_pos.services.errors import CheckoutError, ReceiptNotFoundError
from restaurant_pos.services.notifications import get_notification_service
from restaurant_pos.tasks import send_order_ready_email, send_receipt_email

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Inventory floor policy: {settings.inventory_floor_policy.value}")
    logger.info(f"   Total price policy: {settings.total_price_policy.value}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    notification_service = get_notification_service()
    logger.info(f"Notification Service: {notification_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Point-of-sale backend: atomic checkout with inventory decrement, "
        "receipts, kitchen queue and back-office catalog management."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

CHECKOUT_PATH = "/api/orders/checkout"


def checkout_failure(error: Exception) -> JSONResponse:
    """The one response every failed checkout gets, whatever the cause."""
    content = {"success": False, "error": "Failed to process order"}
    if settings.debug:
        content["detail"] = str(error)
    return JSONResponse(status_code=500, content=content)


def queue_email(task, receipt_id: int, email: str) -> bool:
    """Queue an email task. Returns False if the broker is unreachable."""
    try:
        task.delay(receipt_id, email)
        return True
    except Exception as e:
        logger.error(f"Could not queue {task.name} for receipt #{receipt_id}: {e}")
        return False


async def commit_or_conflict(db: AsyncSession, detail: str) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail=detail)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(func.count(MenuItem.menu_id)))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    notification_service = get_notification_service()
    notification_status = "healthy" if await notification_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        notification_service=notification_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# CHECKOUT
# =============================================================================

@app.post(
    CHECKOUT_PATH,
    response_model=CheckoutResponse,
    responses={500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Checkout a cart",
)
async def checkout_order(
    order: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Persist a receipt with all of its line items and decrement inventory,
    all in one transaction.

    Any failure, whether a malformed entry, an unknown menu name or a
    database outage, rolls everything back and returns the same opaque
    500. The client is expected to resubmit the whole cart.
    """
    entries = [entry.model_dump() for entry in order.order_list]
    logger.info(f"Checkout: {len(entries)} cart entries, client total {order.total_price}")

    try:
        result = await checkout.process_order(db, entries, order.total_price, settings)
    except Exception as e:
        if isinstance(e, CheckoutError):
            logger.error(f"Checkout failed: {e}", exc_info=e.__cause__ is not None)
        else:
            logger.exception(f"Unexpected checkout failure: {e}")
        return checkout_failure(e)

    return CheckoutResponse(**result.to_dict())


# =============================================================================
# RECEIPTS
# =============================================================================

@app.get(
    "/api/receipts",
    response_model=list[ReceiptSummary],
    tags=["Receipts"],
)
async def list_receipts(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Retrieve a page of receipts, newest first."""
    return await receipts.list_receipts(db, page, limit or settings.receipts_page_size)


@app.get(
    "/api/receipts/{receipt_id}",
    response_model=ReceiptDetail,
    response_model_exclude_none=True,
    tags=["Receipts"],
)
async def get_receipt(
    receipt_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get a receipt with its line items."""
    try:
        return await receipts.get_receipt(db, receipt_id)
    except ReceiptNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.put(
    "/api/receipts/{receipt_id}",
    response_model=MessageResponse,
    tags=["Receipts"],
)
async def update_receipt(
    receipt_id: int,
    update: ReceiptUpdate,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Replace a receipt's status and, when provided, all of its line items.
    """
    status = ReceiptStatus(update.status.value) if update.status else None
    line_items = (
        [item.model_dump() for item in update.line_items]
        if update.line_items is not None else None
    )

    try:
        await receipts.replace_receipt(db, receipt_id, status, line_items)
    except ReceiptNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CheckoutError as e:
        logger.error(f"Receipt update failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    return MessageResponse(message="Receipt updated successfully!")


@app.delete(
    "/api/receipts/{receipt_id}",
    response_model=MessageResponse,
    tags=["Receipts"],
)
async def delete_receipt(
    receipt_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete a receipt and everything attached to it."""
    try:
        await receipts.delete_receipt(db, receipt_id)
    except ReceiptNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return MessageResponse(message="Receipt deleted successfully!")


@app.post(
    "/api/receipts/{receipt_id}/email",
    tags=["Receipts"],
)
async def email_receipt(
    receipt_id: int,
    request: EmailRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Attach a customer email to a receipt and send them the receipt number."""
    try:
        await receipts.attach_email(db, receipt_id, request.email)
    except ReceiptNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    queued = queue_email(send_receipt_email, receipt_id, request.email)
    return {"success": True, "message": "Email queued", "queued": queued}


# =============================================================================
# KITCHEN
# =============================================================================

@app.get(
    "/api/kitchen/pending",
    response_model=list[PendingOrder],
    response_model_exclude_none=True,
    tags=["Kitchen"],
)
async def pending_orders(
    limit: Optional[int] = Query(None, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Oldest pending orders for the kitchen display."""
    return await receipts.list_pending_orders(db, limit or settings.kitchen_queue_size)


@app.post(
    "/api/kitchen/{receipt_id}/complete",
    tags=["Kitchen"],
)
async def complete_order(
    receipt_id: int,
    request: Optional[CompleteOrderRequest] = None,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Mark an order fulfilled and notify the customer if we have their email."""
    email = request.email if request else None

    try:
        notify = await receipts.complete_order(db, receipt_id, email)
    except ReceiptNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    queued = queue_email(send_order_ready_email, receipt_id, notify) if notify else False
    return {"success": True, "notified": queued}


# =============================================================================
# MENU & RECIPES
# =============================================================================

@app.get(
    "/api/menu",
    response_model=list[MenuItemResponse],
    tags=["Menu"],
)
async def list_menu(
    category: Optional[MenuCategoryEnum] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItem]:
    """List menu items, optionally by category."""
    query = select(MenuItem).order_by(MenuItem.menu_id)
    if category:
        query = query.where(MenuItem.item_type == MenuCategory(category.value))

    result = await db.execute(query)
    return result.scalars().all()


@app.post(
    "/api/menu",
    response_model=MenuItemResponse,
    status_code=201,
    tags=["Menu"],
)
async def add_menu_item(
    item: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
) -> MenuItem:
    """Add an item to the menu."""
    menu_item = MenuItem(
        name=item.name,
        item_type=MenuCategory(item.item_type.value),
        price=item.price,
        calories=item.calories,
    )
    db.add(menu_item)
    await commit_or_conflict(db, f"Menu item '{item.name}' already exists")
    await db.refresh(menu_item)

    logger.info(f"Menu item #{menu_item.menu_id} added: {menu_item.name}")
    return menu_item


@app.put(
    "/api/menu/{menu_id}",
    response_model=MenuItemResponse,
    tags=["Menu"],
)
async def edit_menu_item(
    menu_id: int,
    item: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
) -> MenuItem:
    """Edit a menu item. Renames carry over to past line items."""
    menu_item = await db.get(MenuItem, menu_id)
    if not menu_item:
        raise HTTPException(status_code=404, detail=f"Menu item #{menu_id} not found")

    menu_item.name = item.name
    menu_item.item_type = MenuCategory(item.item_type.value)
    menu_item.price = item.price
    menu_item.calories = item.calories

    await commit_or_conflict(db, f"Menu item '{item.name}' already exists")
    await db.refresh(menu_item)
    return menu_item


@app.delete(
    "/api/menu/{menu_id}",
    response_model=MessageResponse,
    tags=["Menu"],
)
async def remove_menu_item(
    menu_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Remove a menu item and its recipe rows."""
    try:
        async with db.begin():
            if not await db.get(MenuItem, menu_id):
                raise HTTPException(status_code=404, detail=f"Menu item #{menu_id} not found")

            await db.execute(delete(RecipeIngredient).where(RecipeIngredient.menu_id == menu_id))
            await db.execute(delete(MenuItem).where(MenuItem.menu_id == menu_id))
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail=f"Menu item #{menu_id} appears on existing receipts",
        )

    return MessageResponse(message="Menu item and associated recipe ingredients removed successfully!")


@app.get(
    "/api/menu/{menu_id}/ingredients",
    response_model=list[RecipeIngredientResponse],
    tags=["Menu"],
)
async def list_recipe_ingredients(
    menu_id: int,
    db: AsyncSession = Depends(get_db),
) -> list[RecipeIngredient]:
    """Inventory consumed by one unit of a menu item."""
    if not await db.get(MenuItem, menu_id):
        raise HTTPException(status_code=404, detail=f"Menu item #{menu_id} not found")

    result = await db.execute(
        select(RecipeIngredient)
        .where(RecipeIngredient.menu_id == menu_id)
        .order_by(RecipeIngredient.recipe_ing_id)
    )
    return result.scalars().all()


@app.post(
    "/api/menu/{menu_id}/ingredients",
    response_model=RecipeIngredientResponse,
    status_code=201,
    tags=["Menu"],
)
async def add_recipe_ingredient(
    menu_id: int,
    ingredient: RecipeIngredientCreate,
    db: AsyncSession = Depends(get_db),
) -> RecipeIngredient:
    """Map an inventory item into a menu item's recipe."""
    if not await db.get(MenuItem, menu_id):
        raise HTTPException(status_code=404, detail=f"Menu item #{menu_id} not found")
    if not await db.get(InventoryItem, ingredient.inventory_id):
        raise HTTPException(
            status_code=404,
            detail=f"Inventory item #{ingredient.inventory_id} not found",
        )

    recipe_ingredient = RecipeIngredient(menu_id=menu_id, **ingredient.model_dump())
    db.add(recipe_ingredient)
    await commit_or_conflict(db, "Recipe ingredient conflicts with existing data")
    await db.refresh(recipe_ingredient)
    return recipe_ingredient


@app.put(
    "/api/recipe-ingredients/{recipe_ing_id}",
    response_model=RecipeIngredientResponse,
    tags=["Menu"],
)
async def edit_recipe_ingredient(
    recipe_ing_id: int,
    ingredient: RecipeIngredientCreate,
    db: AsyncSession = Depends(get_db),
) -> RecipeIngredient:
    recipe_ingredient = await db.get(RecipeIngredient, recipe_ing_id)
    if not recipe_ingredient:
        raise HTTPException(status_code=404, detail=f"Recipe ingredient #{recipe_ing_id} not found")
    if not await db.get(InventoryItem, ingredient.inventory_id):
        raise HTTPException(
            status_code=404,
            detail=f"Inventory item #{ingredient.inventory_id} not found",
        )

    for key, value in ingredient.model_dump().items():
        setattr(recipe_ingredient, key, value)

    await commit_or_conflict(db, "Recipe ingredient conflicts with existing data")
    await db.refresh(recipe_ingredient)
    return recipe_ingredient


@app.delete(
    "/api/recipe-ingredients/{recipe_ing_id}",
    response_model=MessageResponse,
    tags=["Menu"],
)
async def remove_recipe_ingredient(
    recipe_ing_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    result = await db.execute(
        delete(RecipeIngredient).where(RecipeIngredient.recipe_ing_id == recipe_ing_id)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise HTTPException(status_code=404, detail=f"Recipe ingredient #{recipe_ing_id} not found")

    await db.commit()
    return MessageResponse(message="Recipe ingredient removed successfully!")


# =============================================================================
# INVENTORY
# =============================================================================

@app.get(
    "/api/inventory",
    response_model=list[InventoryItemResponse],
    tags=["Inventory"],
)
async def list_inventory(
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """All inventory items with their restock severity."""
    result = await db.execute(select(InventoryItem).order_by(InventoryItem.name))
    return [inventory.serialize_inventory_item(item, settings) for item in result.scalars().all()]


@app.get(
    "/api/inventory/restock",
    response_model=list[InventoryItemResponse],
    tags=["Inventory"],
)
async def restock_report(
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Items at or below the low restock threshold, most urgent first."""
    return await inventory.restock_report(db, settings)


@app.post(
    "/api/inventory",
    response_model=InventoryItemResponse,
    status_code=201,
    tags=["Inventory"],
)
async def add_inventory_item(
    item: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    inventory_item = InventoryItem(**item.model_dump())
    db.add(inventory_item)
    await commit_or_conflict(db, f"Inventory item '{item.name}' already exists")
    await db.refresh(inventory_item)

    logger.info(f"Inventory item #{inventory_item.inventory_id} added: {inventory_item.name}")
    return inventory.serialize_inventory_item(inventory_item, settings)


@app.put(
    "/api/inventory/{inventory_id}",
    response_model=InventoryItemResponse,
    tags=["Inventory"],
)
async def edit_inventory_item(
    inventory_id: int,
    item: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Manual stock correction or rename."""
    inventory_item = await db.get(InventoryItem, inventory_id)
    if not inventory_item:
        raise HTTPException(status_code=404, detail=f"Inventory item #{inventory_id} not found")

    for key, value in item.model_dump().items():
        setattr(inventory_item, key, value)

    await commit_or_conflict(db, f"Inventory item '{item.name}' already exists")
    await db.refresh(inventory_item)
    return inventory.serialize_inventory_item(inventory_item, settings)


@app.delete(
    "/api/inventory/{inventory_id}",
    response_model=MessageResponse,
    tags=["Inventory"],
)
async def remove_inventory_item(
    inventory_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        async with db.begin():
            result = await db.execute(
                delete(InventoryItem).where(InventoryItem.inventory_id == inventory_id)
            )
            if result.rowcount == 0:
                raise HTTPException(status_code=404, detail=f"Inventory item #{inventory_id} not found")
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail=f"Inventory item #{inventory_id} is used by a recipe",
        )

    return MessageResponse(message="Item deleted successfully!")


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Checkout input errors get the same opaque 500 as any other checkout failure."""
    if request.url.path == CHECKOUT_PATH:
        logger.error(f"Checkout rejected, invalid request body: {exc.errors()}")
        return checkout_failure(exc)
    return await request_validation_exception_handler(request, exc)


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "restaurant_pos.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
