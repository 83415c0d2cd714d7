"""Database connection and session management."""

from typing import Any, AsyncGenerator, Dict, Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlmodel import create_engine, Session, SQLModel

from slotmanager.config import settings


def get_async_database_url(database_url: str) -> str:
    """Translate a sync database URL into its asyncio driver URL."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def engine_options(database_url: str) -> Dict[str, Any]:
    """Engine keyword arguments suited to the database backend."""
    options: Dict[str, Any] = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return options


def configure_sqlite(engine: Engine) -> None:
    """Enable foreign keys and take the write lock when a transaction begins.

    SQLite has no row locks, so admission transactions serialise on the
    database write lock instead (``BEGIN IMMEDIATE``).
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # Let the "begin" listener below emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# Create synchronous engine for scripts and table creation
sync_engine = create_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

# Create async engine for FastAPI
async_database_url = get_async_database_url(settings.DATABASE_URL)

async_engine = create_async_engine(
    async_database_url,
    **engine_options(async_database_url),
)

if settings.DATABASE_URL.startswith("sqlite"):
    configure_sqlite(sync_engine)
    configure_sqlite(async_engine.sync_engine)

# Create async session factory
async_session_maker = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def create_db_and_tables() -> None:
    """Create all database tables. Used for testing and initial setup."""
    # Register table metadata before create_all
    import slotmanager.models  # noqa: F401

    SQLModel.metadata.create_all(sync_engine)


def get_session() -> Generator[Session, None, None]:
    """Get a synchronous database session. Used by maintenance scripts."""
    with Session(sync_engine) as session:
        yield session


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session for FastAPI endpoints."""
    async with async_session_maker() as session:
        yield session
