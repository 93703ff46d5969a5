from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.security import create_access_token
from app.db.session import get_db

# Ensure Base + models are registered before create_all
from app.db.base import Base  # noqa: F401
import app.models  # noqa: F401
from app.models.client import Client
from app.models.product import Product
from app.models.user import User


# ---------------------------------------------------------
# Engine + schema lifecycle: one throwaway SQLite file per test
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )


# ---------------------------------------------------------
# DB session for assertions / setup
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    Commit setup rows before calling the API, which uses its own sessions.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from app.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------
# Users + auth headers
# ---------------------------------------------------------
async def create_user(db, email: str, role: str = "seller", status: str = "active") -> User:
    user = User(email=email.lower().strip(), name=email.split("@")[0], role=role, status=status)
    db.add(user)
    await db.commit()
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id), role=user.role)}"}


@pytest_asyncio.fixture()
async def admin(db) -> User:
    return await create_user(db, "admin@example.com", role="admin")


@pytest_asyncio.fixture()
async def seller(db) -> User:
    return await create_user(db, "seller@example.com", role="seller")


@pytest_asyncio.fixture()
async def other_seller(db) -> User:
    return await create_user(db, "other@example.com", role="seller")


@pytest.fixture()
def admin_headers(admin) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture()
def seller_headers(seller) -> dict[str, str]:
    return auth_headers(seller)


# ---------------------------------------------------------
# Domain rows
# ---------------------------------------------------------
async def create_product(db, **overrides) -> Product:
    values = dict(
        name=f"Product {uuid.uuid4().hex[:6]}",
        category="Seeds",
        cost=Decimal("60.00"),
        price=Decimal("100.00"),
        pricing_mode="manual",
        stock=50,
        low_stock_threshold=5,
        max_discount_percent=Decimal("10"),
        status="active",
    )
    values.update(overrides)
    product = Product(**values)
    db.add(product)
    await db.commit()
    return product


async def create_client(db, seller: User, **overrides) -> Client:
    values = dict(farm_name="Fazenda Boa Vista", contact_name="Joao", seller_id=seller.id)
    values.update(overrides)
    client = Client(**values)
    db.add(client)
    await db.commit()
    return client
