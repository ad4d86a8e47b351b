"""CREATE/DROP DATABASE against the tenant database server.

CREATE DATABASE and DROP DATABASE cannot run inside a transaction, so the
administrative engine connects to the maintenance database with AUTOCOMMIT
isolation and no pooling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from tenancy.domain.naming import derive_database_identifier
from tenancy.domain.results import DropResult, ErrorCode
from tenancy.infrastructure.observability import (
    DatabaseAdministratorProbe,
    DefaultDatabaseAdministratorProbe,
)
from tenancy.infrastructure.urls import ASYNC_DRIVERNAME

if TYPE_CHECKING:
    from infrastructure.settings import TenantDatabaseSettings

DATABASE_EXISTS_QUERY = "SELECT 1 FROM pg_database WHERE datname = :name"


class PostgresDatabaseAdministrator:
    """DatabaseAdministrator issuing DDL through an AUTOCOMMIT engine."""

    def __init__(
        self,
        engine: AsyncEngine,
        probe: DatabaseAdministratorProbe | None = None,
    ):
        self._engine = engine
        self._probe = probe or DefaultDatabaseAdministratorProbe()

    @classmethod
    def from_settings(
        cls,
        settings: TenantDatabaseSettings,
        probe: DatabaseAdministratorProbe | None = None,
    ) -> PostgresDatabaseAdministrator:
        """Build an administrator connected to the maintenance database."""
        url = URL.create(
            drivername=ASYNC_DRIVERNAME,
            username=settings.username,
            password=settings.password.get_secret_value(),
            host=settings.host,
            port=settings.port,
            database=settings.maintenance_database,
        )
        connect_args = {"timeout": settings.connect_timeout_seconds}
        if settings.ssl:
            connect_args["ssl"] = "require"
        engine = create_async_engine(
            url,
            isolation_level="AUTOCOMMIT",
            poolclass=NullPool,
            connect_args=connect_args,
        )
        return cls(engine=engine, probe=probe)

    async def create_database(self, database_name: str) -> bool:
        """Create a database unless it already exists.

        Returns:
            True if created, False if it already existed

        Raises:
            ValueError: If the name is empty
            sqlalchemy.exc.DBAPIError: For any failure other than "already exists"
        """
        if not database_name:
            raise ValueError("database_name must not be empty")

        async with self._engine.connect() as conn:
            exists = await conn.scalar(
                text(DATABASE_EXISTS_QUERY), {"name": database_name}
            )
            if exists:
                self._probe.database_already_exists(database_name)
                return False

            quoted = conn.dialect.identifier_preparer.quote_identifier(database_name)
            try:
                await conn.execute(text(f"CREATE DATABASE {quoted}"))
            except ProgrammingError as e:
                # Lost a race with a concurrent create
                if "already exists" not in str(e):
                    raise
                self._probe.database_already_exists(database_name)
                return False

        self._probe.database_created(database_name)
        return True

    async def drop_database(self, database_name: str) -> None:
        """Drop a database if it exists.

        Raises:
            ValueError: If the name is empty
            sqlalchemy.exc.DBAPIError: If the server refuses the drop
        """
        if not database_name:
            raise ValueError("database_name must not be empty")

        async with self._engine.connect() as conn:
            quoted = conn.dialect.identifier_preparer.quote_identifier(database_name)
            await conn.execute(text(f"DROP DATABASE IF EXISTS {quoted}"))

        self._probe.database_dropped(database_name)

    async def drop_tenant_database(self, display_name: str) -> DropResult:
        """Drop the database derived from a tenant display name.

        The caller is responsible for evicting any cached handle first.
        """
        database_name = derive_database_identifier(display_name)
        try:
            await self.drop_database(database_name)
        except Exception as e:
            self._probe.database_drop_failed(database_name, e)
            return DropResult(
                success=False,
                database_name=database_name,
                error=str(e),
                error_code=ErrorCode.DROP_FAILED,
            )
        return DropResult(success=True, database_name=database_name)

    async def dispose(self) -> None:
        await self._engine.dispose()
