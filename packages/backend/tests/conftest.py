"""Test fixtures — a fresh in-memory database and app per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite). StaticPool
   keeps a single connection alive, so every session sees the same
   database; the schema is built with Base.metadata.create_all.
2. The app is built with create_app(test settings) and get_db is
   overridden to hand out sessions bound to that engine.
3. Requests go through httpx.AsyncClient + ASGITransport, in-process.

Seed helpers open their own short-lived session and commit before the
test makes any request, so no two sessions ever hold a transaction on
the shared connection at the same time.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace.auth.tokens import TokenIssuer
from marketplace.config import Settings
from marketplace.db.engine import get_db
from marketplace.db.models import Assistant, Base, Order, User
from marketplace.main import create_app

TEST_DB_URL = "sqlite+aiosqlite://"
PASSWORD = "secure_password_123"


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DB_URL,
        environment="test",
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture()
def issuer(test_settings) -> TokenIssuer:
    return TokenIssuer.from_settings(test_settings)


@pytest_asyncio.fixture()
async def session_factory():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for service-level tests (no HTTP requests in between)."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def app(test_settings, session_factory):
    app = create_app(test_settings)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ═══════════════════════════════════════════════════════════
# Seed helpers
# ═══════════════════════════════════════════════════════════


@pytest.fixture()
def make_assistant(session_factory):
    """Insert an assistant. Each call is created one minute after the last."""
    counter = {"n": 0}
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)

    async def _make(**overrides) -> Assistant:
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "name": f"Assistant {n}",
            "slug": f"assistant-{n}",
            "description": "Helps with everyday tasks",
            "category": "productivity",
            "pricing": [{"name": "basic", "price": 29.99, "currency": "USD"}],
            "is_active": True,
            "demo_available": True,
            "created_at": base_time + timedelta(minutes=n),
        }
        fields.update(overrides)
        async with session_factory() as s:
            assistant = Assistant(**fields)
            s.add(assistant)
            await s.commit()
            return assistant

    return _make


@pytest.fixture()
def set_order_status(session_factory):
    async def _set(order_id, status: str) -> None:
        async with session_factory() as s:
            await s.execute(
                update(Order).where(Order.id == uuid.UUID(str(order_id))).values(status=status)
            )
            await s.commit()

    return _set


@pytest.fixture()
def set_tier(session_factory):
    async def _set(user_id, tier: str) -> None:
        async with session_factory() as s:
            await s.execute(
                update(User).where(User.id == uuid.UUID(str(user_id))).values(
                    subscription_tier=tier
                )
            )
            await s.commit()

    return _set


@pytest.fixture()
def insert_order(session_factory):
    """Insert an order directly, bypassing the API (e.g. already completed)."""

    async def _insert(user_id, assistant_id, status="pending", amount="29.99") -> Order:
        async with session_factory() as s:
            order = Order(
                user_id=uuid.UUID(str(user_id)),
                assistant_id=uuid.UUID(str(assistant_id)),
                status=status,
                service_details=[{"serviceType": "setup"}],
                total_amount=Decimal(amount),
                currency="USD",
            )
            s.add(order)
            await s.commit()
            return order

    return _insert


async def register_user(client, email: str | None = None, **extra) -> dict:
    """Register through the API; returns {"user": ..., "tokens": ..., "headers": ...}."""
    email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": PASSWORD, **extra},
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    data["headers"] = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}
    return data


@pytest_asyncio.fixture()
async def user(client) -> dict:
    return await register_user(client, first_name="Ada", last_name="Lovelace")


@pytest.fixture()
def auth_headers(user) -> dict:
    return user["headers"]


@pytest.fixture()
def register(client):
    """Register another user: `data = await register(email=...)`."""

    async def _register(email: str | None = None, **extra) -> dict:
        return await register_user(client, email, **extra)

    return _register
