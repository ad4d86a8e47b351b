"""Provisioning workflow for tenant databases.

create -> migrate -> verify -> record, stopping at the first failure. The
created database is never rolled back: both the create and the schema push
are idempotent, so provisioning a failed tenant again resumes where it
stopped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy.application.observability import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.exceptions import InvalidDatabaseNameError, ProvisioningStepError
from tenancy.domain.naming import (
    DatabaseIdentifier,
    build_connection_string,
    mask_connection_string,
)
from tenancy.domain.results import (
    BulkProvisionResult,
    ErrorCode,
    FailureKind,
    ProvisioningStep,
    ProvisionResult,
)
from tenancy.domain.value_objects import ConnectionConfig, ConnectionDefaults, TenantId
from tenancy.ports.protocols import (
    ConnectionTester,
    DatabaseAdministrator,
    HandleOpener,
    SchemaApplier,
)
from tenancy.ports.repositories import ITenantDatabaseRepository


DEFAULT_STEP_TIMEOUT_SECONDS = 120.0


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TenantProvisioningService:
    """Application service creating and recording tenant databases.

    Databases are always created on the default tenant server under the
    name derived from the tenant's display name.
    """

    def __init__(
        self,
        repository: ITenantDatabaseRepository,
        session: AsyncSession,
        administrator: DatabaseAdministrator,
        opener: HandleOpener,
        schema_applier: SchemaApplier,
        tester: ConnectionTester,
        defaults: ConnectionDefaults,
        probe: ProvisioningProbe | None = None,
        clock: Callable[[], datetime] = _utc_now,
        step_timeout: float = DEFAULT_STEP_TIMEOUT_SECONDS,
    ):
        """Initialize TenantProvisioningService with dependencies.

        Args:
            repository: Repository for tenant records
            session: Core database session for transaction management
            administrator: Issues CREATE DATABASE
            opener: Opens a short-lived handle for the schema push
            schema_applier: Applies the tenant schema
            tester: Verifies the new database accepts connections
            defaults: Server and credentials new databases are created with
            probe: Optional domain probe for observability
            clock: Source of timestamps written to the tenant record
            step_timeout: Upper bound on the create and migrate steps
        """
        self._repository = repository
        self._session = session
        self._administrator = administrator
        self._opener = opener
        self._schema_applier = schema_applier
        self._tester = tester
        self._defaults = defaults
        self._probe = probe or DefaultProvisioningProbe()
        self._clock = clock
        self._step_timeout = step_timeout

    async def provision_database(self, tenant_id: TenantId) -> ProvisionResult:
        """Provision the database of one tenant.

        Returns:
            ProvisionResult. A tenant that is already READY is reported as a
            success with ``already_provisioned`` set and is not modified.
        """
        async with self._session.begin():
            tenant = await self._repository.get_by_id(tenant_id)

        if tenant is None:
            self._probe.tenant_not_found(tenant_id.value)
            return ProvisionResult(
                tenant_id=tenant_id.value,
                success=False,
                error="Tenant not found",
                error_code=ErrorCode.TENANT_NOT_FOUND,
            )

        return await self._provision(tenant)

    async def provision_pending(self) -> BulkProvisionResult:
        """Provision every active tenant that has no database yet.

        Tenants are processed one at a time; a failure, even an unexpected
        exception, only affects that tenant's entry.
        """
        async with self._session.begin():
            pending = await self._repository.list_needing_provisioning()

        results: list[ProvisionResult] = []
        for tenant in pending:
            try:
                results.append(await self._provision(tenant))
            except Exception as e:
                self._probe.provisioning_failed(tenant.id.value, "unexpected", str(e))
                results.append(
                    ProvisionResult(
                        tenant_id=tenant.id.value,
                        success=False,
                        tenant_name=tenant.name,
                        error=str(e),
                        error_code=ErrorCode.PROVISIONING_FAILED,
                    )
                )

        bulk = BulkProvisionResult(results=results)
        self._probe.bulk_provisioning_completed(
            total=len(results), provisioned=bulk.provisioned, failed=bulk.failed
        )
        return bulk

    async def _provision(self, tenant: TenantDatabase) -> ProvisionResult:
        tenant_id = tenant.id.value

        if tenant.is_provisioned:
            self._probe.already_provisioned(tenant_id)
            return ProvisionResult(
                tenant_id=tenant_id,
                success=True,
                tenant_name=tenant.name,
                database_name=tenant.database_name,
                connection_url=mask_connection_string(tenant.config.connection_url or ""),
                already_provisioned=True,
                error_code=ErrorCode.ALREADY_PROVISIONED,
            )

        try:
            identifier = DatabaseIdentifier.from_display_name(tenant.name)
        except InvalidDatabaseNameError as e:
            return await self._fail(tenant, ProvisioningStep.VALIDATE, str(e), None)

        database_name = identifier.value
        connection_url = build_connection_string(
            tenant.name, ConnectionConfig(), self._defaults
        )

        self._probe.provisioning_started(tenant_id, database_name)

        step = ProvisioningStep.RECORD
        try:
            tenant.begin_provisioning()
            await self._save(tenant)

            step = ProvisioningStep.CREATE
            async with asyncio.timeout(self._step_timeout):
                await self._administrator.create_database(database_name)
            self._probe.step_completed(tenant_id, step)

            step = ProvisioningStep.MIGRATE
            async with asyncio.timeout(self._step_timeout):
                await self._apply_schema(connection_url)
            self._probe.step_completed(tenant_id, step)

            step = ProvisioningStep.VERIFY
            check = await self._tester.test_connection(connection_url)
            if not check.success:
                return await self._fail(
                    tenant,
                    step,
                    check.error or "Connection test failed",
                    database_name,
                    kind=check.failure_kind,
                )
            self._probe.step_completed(tenant_id, step)

            step = ProvisioningStep.RECORD
            config = self._defaults.merged_with(
                ConnectionConfig(connection_url=connection_url)
            )
            tenant.mark_ready(database_name, config, self._clock())
            await self._save(tenant)
        except TimeoutError:
            return await self._fail(
                tenant,
                step,
                f"Timed out after {self._step_timeout}s",
                database_name,
                kind=FailureKind.TIMEOUT,
            )
        except ProvisioningStepError as e:
            return await self._fail(tenant, step, e.reason, database_name)
        except Exception as e:
            return await self._fail(tenant, step, str(e), database_name)

        self._probe.provisioning_succeeded(tenant_id, database_name)
        return ProvisionResult(
            tenant_id=tenant_id,
            success=True,
            tenant_name=tenant.name,
            database_name=database_name,
            connection_url=mask_connection_string(connection_url),
        )

    async def _apply_schema(self, connection_url: str) -> None:
        handle = await self._opener.open(connection_url)
        try:
            await self._schema_applier.apply(handle)
        finally:
            await handle.close()

    async def _fail(
        self,
        tenant: TenantDatabase,
        step: ProvisioningStep,
        message: str,
        database_name: str | None,
        kind: FailureKind | None = None,
    ) -> ProvisionResult:
        self._probe.provisioning_failed(tenant.id.value, step, message)
        tenant.mark_failed(f"{step}: {message}", self._clock())
        try:
            await self._save(tenant)
        except Exception as e:
            # The result still reports the step failure; the record keeps its last state
            self._probe.failure_not_recorded(tenant.id.value, step, str(e))
        return ProvisionResult(
            tenant_id=tenant.id.value,
            success=False,
            tenant_name=tenant.name,
            database_name=database_name,
            failed_step=step,
            failure_kind=kind,
            error=message,
            error_code=ErrorCode.PROVISIONING_FAILED,
        )

    async def _save(self, tenant: TenantDatabase) -> None:
        async with self._session.begin():
            await self._repository.save_database_state(tenant)
