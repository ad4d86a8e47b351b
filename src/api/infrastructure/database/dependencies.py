"""Core database dependency injection for FastAPI.

Provides the async session used to read and write tenant records.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_core_engine
from infrastructure.observability import DefaultCoreDatabaseProbe
from infrastructure.settings import get_core_database_settings

_probe = DefaultCoreDatabaseProbe()

# Module-level engine and sessionmaker (created on first use)
_core_engine: AsyncEngine | None = None
_core_sessionmaker: async_sessionmaker[AsyncSession] | None = None

_engine_lock = threading.Lock()


def get_core_engine() -> AsyncEngine:
    """Get the core database engine (singleton).

    Uses double-check locking for thread-safe initialization and creates
    the sessionmaker alongside the engine.

    Returns:
        Configured async engine for the core database
    """
    global _core_engine, _core_sessionmaker
    if _core_engine is None:
        with _engine_lock:
            if _core_engine is None:
                settings = get_core_database_settings()
                _core_engine = create_core_engine(settings)
                _core_sessionmaker = async_sessionmaker(
                    _core_engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
                _probe.engine_created(
                    host=settings.host,
                    database=settings.database,
                    pool_size=settings.pool_size,
                )
    return _core_engine


async def get_core_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a core database session (FastAPI dependency).

    The session does NOT auto-commit. Callers manage transactions with
    ``async with session.begin()``.

    Yields:
        AsyncSession bound to the core database
    """
    get_core_engine()
    assert _core_sessionmaker is not None

    async with _core_sessionmaker() as session:
        yield session


async def close_database_connections() -> None:
    """Dispose of the core engine.

    Called on application shutdown. Resets the sessionmaker to allow
    reinitialization.
    """
    global _core_engine, _core_sessionmaker

    if _core_engine is not None:
        await _core_engine.dispose()
        _probe.engine_disposed()
        _core_engine = None
        _core_sessionmaker = None
