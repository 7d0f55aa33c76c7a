import os
import tempfile

# Settings are read once at import time; point them at throwaway storage first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATA_DIRECTORY"] = tempfile.mkdtemp(prefix="qrdine_test_")
os.environ["ENV_MODE"] = "development"
os.environ["DEBUG"] = "false"

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qrdine.database import Base, get_db
from qrdine.main import app
from qrdine.models import MenuItem, Restaurant, Table


@pytest_asyncio.fixture
async def engine():
    # One shared in-memory database for the whole test
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def export_task(monkeypatch):
    """Stands in for the Celery export task so no broker is needed."""
    task = MagicMock()
    monkeypatch.setattr("qrdine.api.orders.export_order_to_excel", task)
    return task


@pytest_asyncio.fixture
async def client(session_maker, export_task):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def _add(session_maker, *objects):
    async with session_maker() as session:
        session.add_all(objects)
        await session.commit()
    return objects


@pytest_asyncio.fixture
async def restaurant(session_maker):
    (r,) = await _add(session_maker, Restaurant(
        email="owner@trattoria.ie",
        password_hash="x",
        name="Trattoria Roma",
        address="1 Main Street",
        phone="+353 1 234 5678",
        is_published=True,
    ))
    return r


@pytest_asyncio.fixture
async def other_restaurant(session_maker):
    (r,) = await _add(session_maker, Restaurant(
        email="chef@bistro.ie",
        password_hash="x",
        name="Bistro",
        address="2 Side Street",
        phone="+353 1 765 4321",
        is_published=True,
    ))
    return r


@pytest.fixture
def staff(restaurant):
    return {"X-Restaurant-Id": str(restaurant.id)}


@pytest_asyncio.fixture
async def table(session_maker, restaurant):
    (t,) = await _add(session_maker, Table(
        table_number="5",
        qr_code="5b6c1a9e-0000-4000-8000-000000000005",
        restaurant_id=restaurant.id,
    ))
    return t


@pytest_asyncio.fixture
async def menu(session_maker, restaurant):
    """Pizza, salad and a drink on the menu, plus one unavailable dessert."""
    items = await _add(
        session_maker,
        MenuItem(name="Margherita", price=12.5, category="Pizza", restaurant_id=restaurant.id),
        MenuItem(name="Caesar Salad", price=8.0, category="Salads", restaurant_id=restaurant.id),
        MenuItem(name="Cola", price=3.0, category="Drinks", restaurant_id=restaurant.id),
        MenuItem(
            name="Tiramisu",
            price=6.0,
            category="Desserts",
            is_available=False,
            restaurant_id=restaurant.id,
        ),
    )
    return {item.name: item for item in items}


@pytest.fixture
def place_order(client, restaurant, table):
    """POST an order from the fixture table; returns the response."""
    async def _place(items, **extra):
        payload = {
            "restaurant_id": restaurant.id,
            "table_id": table.id,
            "items": [
                {"menu_item_id": item.id, "quantity": qty} for item, qty in items
            ],
            **extra,
        }
        return await client.post("/api/orders", json=payload)

    return _place
