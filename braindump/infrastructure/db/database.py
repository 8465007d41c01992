"""
Database Configuration for BrainDump

Async SQLAlchemy engine and session management. One DatabaseManager is
built per application in the lifespan and kept on ``app.state.db``.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from urllib.parse import quote_plus

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from braindump.config.settings import Settings
from braindump.infrastructure.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def build_database_url(settings: Settings) -> str:
    """
    Resolve the asyncpg connection URL.

    Uses DATABASE_URL when set, otherwise derives the direct connection
    from SUPABASE_URL + SUPABASE_PASSWORD.
    """
    if settings.database_url:
        database_url = settings.database_url
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
        return database_url

    if not settings.supabase_password:
        raise ConfigurationError(
            "Either DATABASE_URL or (SUPABASE_URL + SUPABASE_PASSWORD) is required",
            missing_keys=["DATABASE_URL", "SUPABASE_PASSWORD"],
        )

    match = re.match(r"https?://([^.]+)\.supabase\.co", settings.supabase_url)
    if not match:
        raise ConfigurationError(f"Invalid SUPABASE_URL format: {settings.supabase_url}")

    project_ref = match.group(1)
    password = quote_plus(settings.supabase_password)
    return (
        f"postgresql+asyncpg://postgres:{password}"
        f"@db.{project_ref}.supabase.co:5432/postgres"
    )


class DatabaseManager:
    """
    Owns the engine and session factory for one application.

    The engine is created lazily so building the manager never touches
    the network.
    """

    def __init__(self, settings: Settings, database_url: Optional[str] = None):
        self._settings = settings
        self._database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._initialize_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._initialize_engine()
        return self._session_factory

    def _initialize_engine(self) -> None:
        database_url = self._database_url or build_database_url(self._settings)

        self._engine = create_async_engine(
            database_url,
            echo=self._settings.database_echo,
            pool_size=self._settings.database_pool_size,
            max_overflow=self._settings.database_max_overflow,
            pool_timeout=self._settings.database_pool_timeout,
            pool_pre_ping=True,
        )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session scope that commits on success and rolls back on error.

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
        """Verify the connection works."""
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """Create all tables from SQLModel metadata (tests and local dev)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop the BrainDump tables; test teardown only."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)

    async def close(self) -> None:
        """Dispose of the pool. The next use builds a new engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


def get_db_manager(request: Request) -> DatabaseManager:
    """The DatabaseManager built by the application lifespan."""
    return request.app.state.db


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request, committed when the handler returns.

    Repositories and services share it, so a submission's rows and its
    quota increment land in the same transaction.
    """
    async with get_db_manager(request).session() as session:
        yield session


async def init_db(db: DatabaseManager) -> None:
    """Check the database is reachable (called on app startup)."""
    await db.ping()
    logger.info("Database connection verified")


async def close_db(db: DatabaseManager) -> None:
    await db.close()
    logger.info("Database connection pool closed")
