"""Async database connection management (SQLAlchemy 2.0)."""

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from taskweave.config import settings

log = structlog.get_logger()

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_pre_ping=True,
        )
        log.info("Database engine created", dialect=_engine.dialect.name)
    return _engine


def async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the shared session factory bound to the process-wide engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    engine = engine or get_engine()
    # Import registers the tables on SQLModel.metadata
    from taskweave.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    log.info("Database schema ready")


async def close_db() -> None:
    """Dispose of the engine and its pool."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        log.info("Database engine disposed")
    _engine = None
    _session_factory = None


async def check_database_health() -> bool:
    """Return True when a trivial query succeeds."""
    try:
        async with async_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        log.warning("Database health check failed", error=str(e))
        return False
    return True
