import os

# Settings are cached on first import; point them at SQLite before anything loads.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./restaurant_pos_test.db"
os.environ["ENV_MODE"] = "development"
os.environ["INVENTORY_FLOOR_POLICY"] = "warn"
os.environ["TOTAL_PRICE_POLICY"] = "trust"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from restaurant_pos.core.config import Settings
from restaurant_pos.database import Base, build_engine, enable_sqlite_foreign_keys, get_db
from restaurant_pos.models import (
    InventoryItem,
    MenuCategory,
    MenuItem,
    RecipeIngredient,
)

# menu name -> (category, price, [(inventory name, quantity per unit)])
MENU = {
    "Orange Chicken": (MenuCategory.ENTREE, 0.0, [("Chicken", 1.0), ("Orange Sauce", 0.5)]),
    "Broccoli Beef": (MenuCategory.ENTREE, 0.0, [("Beef", 1.0), ("Broccoli", 1.0)]),
    "Fried Rice": (MenuCategory.SIDE, 0.0, [("Rice", 1.0)]),
    "Medium Drink": (MenuCategory.DRINK, 1.99, [("Medium Cup", 2.0)]),
    "Chicken Egg Roll": (MenuCategory.APPETIZER, 1.99, [("Egg Roll Wrapper", 1.0), ("Chicken", 0.25)]),
    "Bowl": (MenuCategory.MEAL, 8.49, []),
}

INVENTORY = {
    "Chicken": 100.0,
    "Orange Sauce": 40.0,
    "Beef": 100.0,
    "Broccoli": 60.0,
    "Rice": 200.0,
    "Medium Cup": 100.0,
    "Egg Roll Wrapper": 30.0,
    "Napkins": 5.0,
}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "pos.db"


@pytest.fixture
def sync_engine(db_path):
    """Schema plus seed data, created synchronously."""
    engine = create_engine(f"sqlite:///{db_path}")
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        stock = {name: InventoryItem(name=name, quantity=qty, quantity_type="units")
                 for name, qty in INVENTORY.items()}
        session.add_all(stock.values())

        for name, (category, price, recipe) in MENU.items():
            menu_item = MenuItem(name=name, item_type=category, price=price)
            menu_item.ingredients = [
                RecipeIngredient(
                    inventory_item=stock[inv_name],
                    name=inv_name,
                    quantity=qty,
                    quantity_type="units",
                )
                for inv_name, qty in recipe
            ]
            session.add(menu_item)
        session.commit()

    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sync_engine, db_path):
    engine = build_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def settings():
    """Default policies: warn on negative stock, trust the client total."""
    return Settings()


@pytest.fixture
def queued_emails(monkeypatch):
    """Replace Celery dispatch with an in-memory record of (task, receipt_id, email)."""
    from restaurant_pos import main

    calls = []

    class FakeTask:
        def __init__(self, name):
            self.name = name

        def delay(self, receipt_id, email):
            calls.append((self.name, receipt_id, email))

    monkeypatch.setattr(main, "send_receipt_email", FakeTask("send_receipt_email"))
    monkeypatch.setattr(main, "send_order_ready_email", FakeTask("send_order_ready_email"))
    return calls


@pytest.fixture
def client(session_factory, queued_emails):
    from restaurant_pos.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def stock_of(engine, name: str) -> float:
    with Session(engine) as session:
        return session.execute(
            select(InventoryItem.quantity).where(InventoryItem.name == name)
        ).scalar_one()


def count_rows(engine, model) -> int:
    with Session(engine) as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


def end_to_end_cart() -> list[dict]:
    return [
        {
            "type": "Meal",
            "price": 8.49,
            "quantity": 1,
            "entrees": ["Orange Chicken", "Broccoli Beef", None],
            "side": "Fried Rice",
        },
        {"type": "Drink", "name": "Medium Drink", "price": 1.99, "quantity": 2},
    ]
