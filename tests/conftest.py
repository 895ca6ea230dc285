"""
Shared fixtures: a throwaway SQLite database per test, deterministic mock
providers and bearer tokens for each role.
"""

import os
import tempfile
from decimal import Decimal

_DATA_DIR = tempfile.mkdtemp(prefix="restaurant-pos-tests-")

# Settings are read once at import time, so configure before importing the app
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DATA_DIR}/bootstrap.db"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["DATA_DIRECTORY"] = os.path.join(_DATA_DIR, "exports")
os.environ["REDIS_URL"] = "redis://localhost:6399/0"

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from restaurant_pos.core.security import create_access_token, hash_password
from restaurant_pos.database import Base, get_db
from restaurant_pos.main import app
from restaurant_pos.models import (
    MenuCategory,
    MenuCombo,
    ComboItem,
    MenuItem,
    Table,
    User,
    UserRole,
)
from restaurant_pos.services.notifications import MockNotificationService, get_notification_service
from restaurant_pos.services.payment import MockPaymentService, get_payment_service

PASSWORD = "password123"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def payments():
    return MockPaymentService(failure_rate=0, min_latency=0, max_latency=0)


@pytest.fixture
def notifier():
    return MockNotificationService(failure_rate=0, latency=0)


@pytest_asyncio.fixture
async def client(session_maker, payments, notifier):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_service] = lambda: payments
    app.dependency_overrides[get_notification_service] = lambda: notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# ACCOUNTS
# =============================================================================

async def make_user(db, name, email, role, created_by=None, phone=None) -> User:
    user = User(
        name=name,
        email=email,
        phone=phone,
        role=role,
        password_hash=hash_password(PASSWORD),
        created_by=created_by,
    )
    db.add(user)
    await db.commit()
    return user


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


@pytest_asyncio.fixture
async def staff(db):
    return await make_user(db, "Front Desk", "staff@test.com", UserRole.STAFF)


@pytest_asyncio.fixture
async def cook(db, staff):
    return await make_user(db, "Line Cook", "cook@test.com", UserRole.KITCHEN, created_by=staff.id)


@pytest_asyncio.fixture
async def customer(db):
    return await make_user(db, "Regular Guest", "guest@test.com", UserRole.CUSTOMER, phone="555-000-1111")


@pytest.fixture
def staff_headers(staff):
    return auth(staff)


# =============================================================================
# MENU & FLOOR
# =============================================================================

@pytest_asyncio.fixture
async def menu(db):
    """Two categories: Burger 10.00 and Fries 4.50 (Mains), Soda 2.00 (Drinks)."""
    mains = MenuCategory(name="Mains", sort_order=0)
    drinks = MenuCategory(name="Drinks", sort_order=1)
    items = {
        "burger": MenuItem(category=mains, name="Burger", price=Decimal("10.00"), preparation_time=12),
        "fries": MenuItem(category=mains, name="Fries", price=Decimal("4.50"), preparation_time=6),
        "soda": MenuItem(category=drinks, name="Soda", price=Decimal("2.00"), preparation_time=1),
    }
    db.add_all([mains, drinks, *items.values()])
    await db.commit()
    return items


@pytest_asyncio.fixture
async def combo(db, menu):
    """Burger + Soda for 11.00."""
    deal = MenuCombo(name="Burger Deal", combo_price=Decimal("11.00"), savings_amount=Decimal("1.00"))
    deal.items = [
        ComboItem(menu_item=menu["burger"], quantity=1),
        ComboItem(menu_item=menu["soda"], quantity=1),
    ]
    db.add(deal)
    await db.commit()
    return deal


@pytest_asyncio.fixture
async def tables(db):
    rows = [
        Table(table_number="T1", name="Window", capacity=2),
        Table(table_number="T2", name="Main hall", capacity=4),
        Table(table_number="T3", name="Booth", capacity=6),
    ]
    db.add_all(rows)
    await db.commit()
    return rows


@pytest.fixture
def table(tables):
    return tables[1]
