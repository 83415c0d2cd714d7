"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./slotmanager_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("SLOT_TIMEZONE", "Asia/Shanghai")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta
from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from opentelemetry import trace
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from slotmanager.main import app
from slotmanager.api.deps import get_db
from slotmanager.core.security import create_access_token, get_password_hash
from slotmanager.core.window import to_storage, utc_now
from slotmanager.database import configure_sqlite
from slotmanager.middleware.rate_limit import limiter
from slotmanager.models import Allocation, IpAddress, Phone, User

ADMIN_PASSWORD = "admin123"


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file with all tables for each test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'slotmanager.db'}",
        echo=False,
        poolclass=NullPool,
    )
    configure_sqlite(engine.sync_engine)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker:
    """Session factory for tests that need several independent sessions."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker,
) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with a test database session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty rate-limit counters."""
    limiter.reset()
    yield


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """Create the administrator account."""
    user = User(
        username="admin",
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def auth_headers(test_user: User) -> Dict[str, str]:
    """Bearer token headers for the administrator."""
    token = create_access_token(subject=test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def test_phone(db_session: AsyncSession) -> Phone:
    """Create a registered phone."""
    phone = Phone(
        phone_number="+15550101",
        email="demo1@example.com",
        provider="Verizon",
    )
    db_session.add(phone)
    await db_session.commit()
    await db_session.refresh(phone)
    return phone


@pytest_asyncio.fixture(scope="function")
async def test_ip(db_session: AsyncSession) -> IpAddress:
    """Create a registered IP."""
    ip = IpAddress(
        ip_address="192.168.1.101",
        port=8080,
        username="proxyuser",
        password="secret",
        provider="AWS",
    )
    db_session.add(ip)
    await db_session.commit()
    await db_session.refresh(ip)
    return ip


@pytest.fixture(scope="function")
def add_allocation(db_session: AsyncSession) -> Callable:
    """Insert allocation rows directly, bypassing admission."""

    async def _add(
        phone_id: str = None,
        ip_id: str = None,
        count: int = 1,
        used_at: datetime = None,
        days_ago: float = None,
    ) -> Allocation:
        if used_at is None:
            used_at = utc_now() - timedelta(days=days_ago or 0)
        allocation = Allocation(
            phone_id=phone_id,
            ip_id=ip_id,
            count=count,
            used_at=to_storage(used_at),
        )
        db_session.add(allocation)
        await db_session.commit()
        return allocation

    return _add


@pytest.fixture(scope="session", autouse=True)
def shutdown_tracer_provider():
    """Flush and shut down the tracer provider once the session ends."""
    yield

    tracer_provider = trace.get_tracer_provider()
    if hasattr(tracer_provider, "force_flush"):
        tracer_provider.force_flush(timeout_millis=5000)
    if hasattr(tracer_provider, "shutdown"):
        tracer_provider.shutdown()
