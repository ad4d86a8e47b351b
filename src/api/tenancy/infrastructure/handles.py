"""SQLAlchemy-backed tenant database handles."""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from tenancy.infrastructure.urls import to_async_url

PING_QUERY = "SELECT 1"


class SqlAlchemyTenantHandle:
    """TenantDatabaseHandle wrapping one AsyncEngine.

    The engine carries a small pool of its own; the handle is what the
    connection cache stores and hands out.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        """The underlying engine, for ORM sessions and raw queries."""
        return self._engine

    async def ping(self) -> None:
        """Run ``SELECT 1`` on a pooled connection."""
        async with self._engine.connect() as conn:
            await conn.execute(text(PING_QUERY))

    async def close(self) -> None:
        """Dispose of the engine's pool.

        Connections currently checked out keep working and are discarded
        when returned.
        """
        await self._engine.dispose()


class SqlAlchemyHandleOpener:
    """HandleOpener producing SqlAlchemyTenantHandle instances."""

    def __init__(self, pool_size: int = 5, connect_timeout_seconds: float = 10.0):
        """Initialize the opener.

        Args:
            pool_size: Connections kept by each tenant engine
            connect_timeout_seconds: asyncpg connect timeout per connection
        """
        self._pool_size = pool_size
        self._connect_timeout = connect_timeout_seconds

    async def open(self, connection_string: str) -> SqlAlchemyTenantHandle:
        """Create an engine for the connection string.

        No connection is made here; the cache validates with ``ping``.

        Raises:
            ValueError: If the connection string is not a PostgreSQL URL
        """
        url, connect_args = to_async_url(connection_string)
        connect_args["timeout"] = self._connect_timeout

        engine = create_async_engine(
            url,
            pool_size=self._pool_size,
            max_overflow=0,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        return SqlAlchemyTenantHandle(engine)
