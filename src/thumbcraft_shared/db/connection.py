"""Async SQL Server access: engine, sessions and the FastAPI session dependency."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import retry, stop_after_attempt, wait_exponential

from ..config import DatabaseSettings, get_settings
from ..logging import get_logger
from .models import Base

logger = get_logger(__name__)

POOL_TIMEOUT_SECONDS = 30
POOL_RECYCLE_SECONDS = 1800
ODBC_QUERY = "driver=ODBC+Driver+18+for+SQL+Server&TrustServerCertificate=yes"


def get_database_url(url: str | None = None) -> str:
    """Normalize ``DATABASE_URL`` to the async ``mssql+aioodbc`` dialect.

    Accepts a SQLAlchemy URL with either the sync or async ODBC driver, or a
    bare ``user:pass@host/db`` string.

    Raises:
        ValueError: If no URL is configured.
    """
    url = url if url is not None else get_settings().database.url
    if not url:
        raise ValueError("Database connection string not found. Set DATABASE_URL")

    if "://" not in url:
        return f"mssql+aioodbc://{url}?{ODBC_QUERY}"
    if url.startswith("mssql+pyodbc://"):
        return url.replace("mssql+pyodbc://", "mssql+aioodbc://", 1)
    return url


def create_engine(url: str, settings: DatabaseSettings) -> AsyncEngine:
    return create_async_engine(
        url,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=POOL_TIMEOUT_SECONDS,
        pool_recycle=POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
        echo=settings.echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows stay readable after commit; services commit mid-batch.
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class DatabaseConnection:
    """Owns the engine and session factory, both created on first use."""

    def __init__(self, settings: DatabaseSettings | None = None, url: str | None = None):
        self.settings = settings or get_settings().database
        self._url = url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_engine(get_database_url(self._url), self.settings)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = create_session_factory(self.engine)
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on a clean exit and rolls back on error.

        Usage:
            async with db.session() as session:
                result = await session.execute(query)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Run ``SELECT 1`` once; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def connect(self) -> None:
        """``ping`` with retries, for startup."""
        await self.ping()

    async def create_tables(self) -> None:
        """Create missing tables. Migrations under ``alembic/`` own schema changes."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready", tables=sorted(Base.metadata.tables))

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


_db: DatabaseConnection | None = None


def get_db() -> DatabaseConnection:
    """Process-wide connection, created on first call."""
    global _db
    if _db is None:
        _db = DatabaseConnection()
    return _db


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_db().session() as session:
        yield session
