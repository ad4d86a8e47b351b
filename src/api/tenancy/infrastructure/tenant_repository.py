"""PostgreSQL implementation of ITenantDatabaseRepository.

Reads tenant records from the core database and writes back only the
database columns. Transactions are managed by the calling service.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.exceptions import TenantNotFoundError
from tenancy.domain.value_objects import (
    ConnectionConfig,
    DatabaseStatus,
    DatabaseType,
    TenantId,
    TenantState,
)
from tenancy.infrastructure.models import TenantModel
from tenancy.infrastructure.observability import (
    DefaultTenantDatabaseRepositoryProbe,
    TenantDatabaseRepositoryProbe,
)
from tenancy.ports.repositories import ITenantDatabaseRepository

_PENDING_STATUSES = (
    DatabaseStatus.NOT_CONFIGURED.value,
    DatabaseStatus.PENDING_SETUP.value,
)


class TenantDatabaseRepository(ITenantDatabaseRepository):
    """Repository mapping TenantModel rows to TenantDatabase aggregates."""

    def __init__(
        self,
        session: AsyncSession,
        probe: TenantDatabaseRepositoryProbe | None = None,
    ) -> None:
        """Initialize repository with database session.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultTenantDatabaseRepositoryProbe()

    async def get_by_id(self, tenant_id: TenantId) -> TenantDatabase | None:
        model = await self._get_model(tenant_id.value)
        if model is None:
            self._probe.tenant_not_found(tenant_id.value)
            return None

        self._probe.tenant_retrieved(tenant_id.value)
        return self._to_domain(model)

    async def list_all(self) -> list[TenantDatabase]:
        stmt = select(TenantModel).order_by(TenantModel.name)
        result = await self._session.execute(stmt)
        tenants = [self._to_domain(model) for model in result.scalars().all()]

        self._probe.tenants_listed(len(tenants))
        return tenants

    async def list_needing_provisioning(self) -> list[TenantDatabase]:
        stmt = (
            select(TenantModel)
            .where(TenantModel.status == TenantState.ACTIVE.value)
            .where(TenantModel.database_status.in_(_PENDING_STATUSES))
            .order_by(TenantModel.name)
        )
        result = await self._session.execute(stmt)
        tenants = [self._to_domain(model) for model in result.scalars().all()]

        self._probe.tenants_listed(len(tenants))
        return tenants

    async def save_database_state(self, tenant: TenantDatabase) -> None:
        """Write the database columns of a tenant record.

        Raises:
            TenantNotFoundError: If the row has been deleted meanwhile
        """
        model = await self._get_model(tenant.id.value)
        if model is None:
            self._probe.tenant_not_found(tenant.id.value)
            raise TenantNotFoundError(tenant.id.value)

        config = tenant.config
        model.database_type = tenant.database_type.value
        model.database_status = tenant.database_status.value
        model.database_name = tenant.database_name
        model.database_host = config.host
        model.database_port = config.port
        model.database_user = config.user
        model.database_password = config.password
        model.database_ssl = config.ssl
        model.database_connection_url = config.connection_url
        model.database_managed_by = tenant.managed_by
        model.database_migration_version = tenant.migration_version
        model.database_last_checked_at = tenant.last_checked_at
        model.database_last_error = tenant.last_error

        await self._session.flush()
        self._probe.database_state_saved(tenant.id.value, tenant.database_status.value)

    async def _get_model(self, tenant_id: str) -> TenantModel | None:
        stmt = select(TenantModel).where(TenantModel.id == tenant_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(model: TenantModel) -> TenantDatabase:
        return TenantDatabase(
            id=TenantId(value=model.id),
            name=model.name,
            slug=model.slug,
            state=TenantState(model.status),
            database_status=DatabaseStatus(model.database_status),
            database_type=DatabaseType(model.database_type),
            database_name=model.database_name,
            config=ConnectionConfig(
                host=model.database_host,
                port=model.database_port,
                user=model.database_user,
                password=model.database_password,
                ssl=model.database_ssl,
                connection_url=model.database_connection_url,
            ),
            managed_by=model.database_managed_by,
            migration_version=model.database_migration_version,
            last_checked_at=model.database_last_checked_at,
            last_error=model.database_last_error,
        )
