"""Database session management using SQLModel async."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

# Import all models so their tables are registered with SQLModel metadata
import keyward.models  # noqa: F401
from keyward.config import DatabaseConfig, get_settings

logger = structlog.get_logger()

# Lazy initialization - engine created on first use
_engine = None
_async_session_factory = None


def _quote_pragma_value(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async engine for the credential store.

    Every new connection gets ``PRAGMA key`` (when an encryption key is
    configured) before any other statement, then foreign key enforcement.
    """
    engine = create_async_engine(
        config.url,
        echo=config.echo,
        future=True,
        # Writers wait on SQLite's file lock instead of failing immediately
        connect_args={"timeout": 30},
    )
    encryption_key = config.encryption_key

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            if encryption_key:
                cursor.execute(f"PRAGMA key = {_quote_pragma_value(encryption_key)}")
            cursor.execute("PRAGMA foreign_keys = ON")
        finally:
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    """Build a session factory bound to ``engine``."""
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def _get_engine(config: DatabaseConfig | None = None) -> AsyncEngine:
    """Get or create the async engine.

    ``config`` only matters for the call that creates the engine.
    """
    global _engine
    if _engine is None:
        _engine = create_engine(config or get_settings().database)
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the async session factory."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = create_session_factory(_get_engine())
    return _async_session_factory


async def create_tables(engine: AsyncEngine) -> None:
    """Create the users, api_keys and activation_codes tables if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def init_db(config: DatabaseConfig | None = None) -> None:
    """Initialize database tables."""
    config = config or get_settings().database
    await create_tables(_get_engine(config))
    logger.info("db.initialized", encrypted=bool(config.encryption_key))


async def close_db() -> None:
    """Close database connection."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session as context manager.

    Usage:
        async with get_async_session() as session:
            store = CredentialStore(session)
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session_dependency() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting database session."""
    async with get_async_session() as session:
        yield session
