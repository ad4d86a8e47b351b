"""Request-path access to tenant databases plus admin teardown and config.

Everything that evicts or reuses a cached handle goes through this service,
so a drop or config change can never leave a stale handle behind.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy.application.observability import (
    DefaultTenantDatabaseServiceProbe,
    TenantDatabaseServiceProbe,
)
from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.exceptions import (
    TenantDatabaseConnectionError,
    TenantDatabaseTimeoutError,
    TenantDatabaseUnavailableError,
    TenantNotFoundError,
)
from tenancy.domain.naming import (
    DATABASE_NAME_FORMAT,
    build_connection_string,
    derive_database_identifier,
)
from tenancy.domain.results import (
    DROP_CONFIRMATION_TOKEN,
    CacheSnapshot,
    DatabaseNamePreview,
    DropResult,
    ErrorCode,
)
from tenancy.domain.value_objects import ConnectionDefaults, DatabaseType, TenantId
from tenancy.ports.protocols import (
    ConnectionCache,
    DatabaseAdministrator,
    TenantDatabaseHandle,
)
from tenancy.ports.repositories import ITenantDatabaseRepository


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TenantDatabaseService:
    """Application service for tenant database access and administration."""

    def __init__(
        self,
        repository: ITenantDatabaseRepository,
        session: AsyncSession,
        cache: ConnectionCache,
        administrator: DatabaseAdministrator,
        defaults: ConnectionDefaults,
        probe: TenantDatabaseServiceProbe | None = None,
        clock: Callable[[], datetime] = _utc_now,
        acquire_timeout: float | None = None,
    ):
        """Initialize TenantDatabaseService with dependencies.

        Args:
            repository: Repository for tenant records
            session: Core database session for transaction management
            cache: Process-wide tenant connection cache
            administrator: Issues DROP DATABASE
            defaults: Fallback connection parameters
            probe: Optional domain probe for observability
            clock: Source of timestamps written to the tenant record
            acquire_timeout: Bound on waiting for a handle (None uses the
                cache's connect timeout)
        """
        self._repository = repository
        self._session = session
        self._cache = cache
        self._administrator = administrator
        self._defaults = defaults
        self._probe = probe or DefaultTenantDatabaseServiceProbe()
        self._clock = clock
        self._acquire_timeout = acquire_timeout

    async def acquire_connection(self, tenant_id: TenantId) -> TenantDatabaseHandle:
        """Return the cached handle for a tenant's database.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            TenantDatabaseUnavailableError: If the tenant has no database or
                it cannot be reached. The message never contains the URL.
        """
        async with self._session.begin():
            tenant = await self._repository.get_by_id(tenant_id)

        if tenant is None:
            self._probe.tenant_not_found(tenant_id.value)
            raise TenantNotFoundError(tenant_id.value)

        if not tenant.has_database:
            self._probe.connection_unavailable(
                tenant_id.value, "NoDatabaseConfigured", None
            )
            raise TenantDatabaseUnavailableError(tenant_id.value)

        connection_string = build_connection_string(
            tenant.name, tenant.config, self._defaults
        )
        try:
            return await self._cache.acquire(
                tenant_id.value, connection_string, timeout=self._acquire_timeout
            )
        except TenantDatabaseConnectionError as e:
            self._probe.connection_unavailable(
                tenant_id.value, type(e).__name__, e.driver_message
            )
            raise TenantDatabaseUnavailableError(tenant_id.value) from e
        except TenantDatabaseTimeoutError as e:
            self._probe.connection_unavailable(tenant_id.value, type(e).__name__, str(e))
            raise TenantDatabaseUnavailableError(tenant_id.value) from e

    async def drop_database(self, tenant_id: TenantId, confirmation: str | None) -> DropResult:
        """Drop a tenant's database and reset its record.

        The cached handle is released before the drop so no pooled
        connection keeps the database busy, and again once the record is
        reset so a handle opened mid-drop does not outlive it.
        """
        if confirmation != DROP_CONFIRMATION_TOKEN:
            self._probe.drop_refused(tenant_id.value, ErrorCode.CONFIRMATION_REQUIRED)
            return DropResult(
                success=False,
                tenant_id=tenant_id.value,
                error=f"Confirmation required: send confirm={DROP_CONFIRMATION_TOKEN}",
                error_code=ErrorCode.CONFIRMATION_REQUIRED,
            )

        async with self._session.begin():
            tenant = await self._repository.get_by_id(tenant_id)

        if tenant is None:
            self._probe.tenant_not_found(tenant_id.value)
            return DropResult(
                success=False,
                tenant_id=tenant_id.value,
                error="Tenant not found",
                error_code=ErrorCode.TENANT_NOT_FOUND,
            )

        if not tenant.has_database:
            self._probe.drop_refused(tenant_id.value, ErrorCode.NO_DATABASE)
            return DropResult(
                success=False,
                tenant_id=tenant_id.value,
                tenant_name=tenant.name,
                error="Tenant has no database",
                error_code=ErrorCode.NO_DATABASE,
            )

        database_name = tenant.database_name or derive_database_identifier(tenant.name)

        await self._cache.release(tenant_id.value)
        try:
            await self._administrator.drop_database(database_name)
        except Exception as e:
            self._probe.drop_failed(tenant_id.value, database_name, str(e))
            return DropResult(
                success=False,
                database_name=database_name,
                tenant_id=tenant_id.value,
                tenant_name=tenant.name,
                error=str(e),
                error_code=ErrorCode.DROP_FAILED,
            )

        tenant.reset_database(self._clock())
        async with self._session.begin():
            await self._repository.save_database_state(tenant)
        # Drops any handle opened while the drop was running
        await self._cache.release(tenant_id.value)

        self._probe.database_dropped(tenant_id.value, database_name)
        return DropResult(
            success=True,
            database_name=database_name,
            tenant_id=tenant_id.value,
            tenant_name=tenant.name,
        )

    async def update_database_config(
        self,
        tenant_id: TenantId,
        database_type: DatabaseType | None = None,
        database_name: str | None = None,
        **config_changes: object,
    ) -> TenantDatabase:
        """Apply an administrative change to a tenant's connection config.

        The cached handle is released so the next acquire uses the new
        configuration.

        Raises:
            TenantNotFoundError: If the tenant does not exist
        """
        async with self._session.begin():
            tenant = await self._repository.get_by_id(tenant_id)
            if tenant is None:
                self._probe.tenant_not_found(tenant_id.value)
                raise TenantNotFoundError(tenant_id.value)

            tenant.update_config(
                self._clock(),
                database_type=database_type,
                database_name=database_name,
                **config_changes,
            )
            await self._repository.save_database_state(tenant)

        await self._cache.release(tenant_id.value)

        fields = sorted(config_changes)
        if database_type is not None:
            fields.append("database_type")
        if database_name is not None:
            fields.append("database_name")
        self._probe.database_config_updated(tenant_id.value, fields)
        return tenant

    def preview_database_name(self, display_name: str) -> DatabaseNamePreview:
        """Show the database name a display name would produce."""
        return DatabaseNamePreview(
            tenant_name=display_name,
            database_name=derive_database_identifier(display_name),
            format=DATABASE_NAME_FORMAT,
        )

    async def release_tenant(self, tenant_id: TenantId) -> bool:
        released = await self._cache.release(tenant_id.value)
        self._probe.tenant_released(tenant_id.value, released)
        return released

    async def release_all(self) -> int:
        return await self._cache.release_all()

    def cache_snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(size=self._cache.size(), tenant_ids=sorted(self._cache.keys()))
