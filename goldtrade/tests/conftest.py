"""
Centralized Test Configuration.
"""

import json

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from goldtrade.app.main import app
from goldtrade.app.core.config import settings
from goldtrade.app.core.jwt import create_access_token
from goldtrade.app.core.redis_client import get_redis
from goldtrade.app.core.security import get_password_hash
from goldtrade.app.db.session import get_db, Base
from goldtrade.app.models.enums import UserRole
from goldtrade.app.models.user import User
import goldtrade.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


class MockRedis:
    """In-memory stand-in for the pub/sub client; keeps every published message."""

    def __init__(self):
        self.published = []
        self._closed = False

    async def ping(self):
        return not self._closed

    async def publish(self, channel, message):
        if self._closed:
            return 0
        self.published.append((channel, json.loads(message)))
        return 1

    def events(self, name=None):
        return [msg for _, msg in self.published if name is None or msg["event"] == name]

    async def flushdb(self):
        self.published = []

    async def aclose(self):
        self._closed = True
        self.published = []


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
def open_market(monkeypatch):
    """Tests run at any hour; trading-hours tests pass an explicit clock."""
    monkeypatch.setattr(settings, "enforce_trading_hours", False)
    monkeypatch.setattr(settings, "telegram_bot_token", None)
    monkeypatch.setattr(settings, "smtp_host", None)


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """For reading state back after API calls without a stale identity map."""
    return TestingSessionLocal


async def create_user(db_session, name, email, role=UserRole.MEMBER, password="password123"):
    user = User(
        name=name,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


def token_for(user) -> str:
    return create_access_token(data={"sub": user.email, "user_id": user.id, "role": user.role.value})


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def member(db_session):
    """A customer and their bearer headers."""
    user = await create_user(db_session, "Somchai Jaidee", "somchai@goldtrade.co")
    return user, auth(token_for(user))


@pytest.fixture
async def other_member(db_session):
    user = await create_user(db_session, "Malee Srisuk", "malee@goldtrade.co")
    return user, auth(token_for(user))


@pytest.fixture
async def admin(db_session):
    user = await create_user(db_session, "Shop Admin", "admin@goldtrade.co", role=UserRole.ADMIN)
    return user, auth(token_for(user))
