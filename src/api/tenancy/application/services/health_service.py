"""Tenant database health checks and status reporting.

Health checks always use a fresh short-lived connection and never touch
the connection cache, so a check cannot disturb request traffic.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy.application.observability import (
    DefaultHealthServiceProbe,
    HealthServiceProbe,
)
from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.naming import build_connection_string
from tenancy.domain.results import DatabaseStatusSummary, ErrorCode, HealthResult
from tenancy.domain.value_objects import ConnectionDefaults, TenantId
from tenancy.ports.protocols import ConnectionTester
from tenancy.ports.repositories import ITenantDatabaseRepository


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TenantHealthService:
    """Application service probing tenant databases and recording the outcome."""

    def __init__(
        self,
        repository: ITenantDatabaseRepository,
        session: AsyncSession,
        tester: ConnectionTester,
        defaults: ConnectionDefaults,
        probe: HealthServiceProbe | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._repository = repository
        self._session = session
        self._tester = tester
        self._defaults = defaults
        self._probe = probe or DefaultHealthServiceProbe()
        self._clock = clock

    async def check_tenant_health(self, tenant_id: TenantId) -> HealthResult:
        """Probe a tenant's database and persist its status.

        Unknown tenants and tenants without a configured database are
        reported unhealthy and nothing is written.
        """
        async with self._session.begin():
            tenant = await self._repository.get_by_id(tenant_id)

        if tenant is None:
            self._probe.health_check_skipped(tenant_id.value, "tenant_not_found")
            return HealthResult(
                tenant_id=tenant_id.value,
                healthy=False,
                error="Tenant not found",
                error_code=ErrorCode.TENANT_NOT_FOUND,
            )

        if not tenant.has_database:
            self._probe.health_check_skipped(tenant_id.value, "no_database")
            return HealthResult(
                tenant_id=tenant_id.value,
                healthy=False,
                error="No database configured",
                status=tenant.database_status,
                error_code=ErrorCode.NO_DATABASE,
            )

        connection_string = build_connection_string(
            tenant.name, tenant.config, self._defaults
        )
        return await self._check(tenant, connection_string)

    async def test_tenant_connection(self, tenant_id: TenantId) -> HealthResult:
        """Probe the tenant's explicitly stored connection URL.

        Unlike ``check_tenant_health`` this never derives a URL; a tenant
        without one is refused with NO_DATABASE_URL.
        """
        async with self._session.begin():
            tenant = await self._repository.get_by_id(tenant_id)

        if tenant is None:
            return HealthResult(
                tenant_id=tenant_id.value,
                healthy=False,
                error="Tenant not found",
                error_code=ErrorCode.TENANT_NOT_FOUND,
            )

        if not tenant.config.connection_url:
            return HealthResult(
                tenant_id=tenant_id.value,
                healthy=False,
                error="No database URL configured",
                status=tenant.database_status,
                error_code=ErrorCode.NO_DATABASE_URL,
            )

        return await self._check(tenant, tenant.config.connection_url)

    async def get_database_statuses(self) -> DatabaseStatusSummary:
        """List every tenant's database fields with counts per status."""
        async with self._session.begin():
            tenants = await self._repository.list_all()
        return DatabaseStatusSummary(tenants=tenants)

    async def _check(
        self, tenant: TenantDatabase, connection_string: str
    ) -> HealthResult:
        result = await self._tester.test_connection(connection_string)
        checked_at = self._clock()

        tenant.record_health(result.success, result.error, checked_at)
        async with self._session.begin():
            await self._repository.save_database_state(tenant)

        self._probe.health_checked(tenant.id.value, result.success, result.latency_ms)
        return HealthResult(
            tenant_id=tenant.id.value,
            healthy=result.success,
            latency_ms=result.latency_ms,
            error=result.error,
            failure_kind=result.failure_kind,
            status=tenant.database_status,
            checked_at=checked_at,
        )
