"""Protocols for tenant database infrastructure.

These keep the cache and the services independent of the concrete
driver: the cache only needs something it can ping and close, and the
workflow only needs to create, migrate and probe.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from tenancy.domain.results import ConnectionTestResult


@runtime_checkable
class TenantDatabaseHandle(Protocol):
    """An open, usable connection to one tenant's database.

    Owned by the connection cache; callers borrow it and must never close
    it themselves.
    """

    @property
    def engine(self) -> Any:
        """Raw query access (an AsyncEngine for the SQLAlchemy handle)."""
        ...

    async def ping(self) -> None:
        """Run a trivial round-trip query.

        Raises:
            Exception: Any driver error if the database is unreachable
        """
        ...

    async def close(self) -> None:
        """Release every connection held by this handle."""
        ...


class HandleOpener(Protocol):
    """Creates handles from connection strings."""

    async def open(self, connection_string: str) -> TenantDatabaseHandle:
        """Create a handle for the given connection string.

        The handle is not yet validated; callers ping it.
        """
        ...


class DatabaseAdministrator(Protocol):
    """Issues CREATE/DROP DATABASE against the administrative connection."""

    async def create_database(self, database_name: str) -> bool:
        """Create the database.

        Returns:
            True if it was created, False if it already existed

        Raises:
            Exception: Any other driver error
        """
        ...

    async def drop_database(self, database_name: str) -> None:
        """Drop the database if it exists.

        Raises:
            Exception: Any driver error
        """
        ...


class SchemaApplier(Protocol):
    """Applies the tenant schema definition to a tenant database."""

    async def apply(self, handle: TenantDatabaseHandle) -> None:
        """Create every missing tenant table. Must be idempotent."""
        ...


class ConnectionTester(Protocol):
    """Short-lived liveness probe against a connection string."""

    async def test_connection(
        self, connection_string: str, timeout: float | None = None
    ) -> ConnectionTestResult:
        """Open, query and close; never raises for connection failures."""
        ...


class ConnectionCache(Protocol):
    """Process-wide map from tenant id to an open handle."""

    async def acquire(
        self, tenant_id: str, connection_string: str, timeout: float | None = None
    ) -> TenantDatabaseHandle:
        """Return the tenant's handle, opening it on first use.

        Raises:
            TenantDatabaseTimeoutError: If opening timed out
            TenantDatabaseConnectionError: If opening or validation failed
        """
        ...

    async def release(self, tenant_id: str) -> bool:
        """Close and forget a tenant's handle; False if none was cached."""
        ...

    async def release_all(self) -> int:
        """Close every cached handle."""
        ...

    def size(self) -> int:
        ...

    def keys(self) -> list[str]:
        ...
