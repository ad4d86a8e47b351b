"""Dependency injection for the tenancy bounded context.

Composes the core session with tenancy components (repository, cache,
administrator, services). Process-wide components are singletons created
on first use; the application lifespan releases them at shutdown.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.dependencies import get_core_session
from infrastructure.settings import get_tenant_database_settings
from shared_kernel.middleware.tenant_context import (
    MissingTenantHeaderError,
    resolve_tenant_context,
)
from tenancy.application.services import (
    TenantDatabaseService,
    TenantHealthService,
    TenantProvisioningService,
)
from tenancy.domain.exceptions import (
    TenantDatabaseUnavailableError,
    TenantNotFoundError,
)
from tenancy.domain.value_objects import ConnectionDefaults, TenantId
from tenancy.infrastructure.administrator import PostgresDatabaseAdministrator
from tenancy.infrastructure.connection_cache import TenantConnectionCache
from tenancy.infrastructure.handles import SqlAlchemyHandleOpener
from tenancy.infrastructure.health_checker import HealthChecker
from tenancy.infrastructure.tenant_repository import TenantDatabaseRepository
from tenancy.infrastructure.tenant_schema import MetadataSchemaApplier
from tenancy.ports.protocols import TenantDatabaseHandle


@lru_cache
def get_connection_defaults() -> ConnectionDefaults:
    """Get the process-wide fallback connection parameters."""
    settings = get_tenant_database_settings()
    return ConnectionDefaults(
        host=settings.host,
        port=settings.port,
        user=settings.username,
        password=settings.password.get_secret_value(),
        ssl=settings.ssl,
    )


@lru_cache
def get_handle_opener() -> SqlAlchemyHandleOpener:
    """Get the opener used for cached and provisioning handles."""
    settings = get_tenant_database_settings()
    return SqlAlchemyHandleOpener(
        pool_size=settings.handle_pool_size,
        connect_timeout_seconds=settings.connect_timeout_seconds,
    )


@lru_cache
def get_connection_cache() -> TenantConnectionCache:
    """Get the application-scoped tenant connection cache (singleton).

    Returns:
        TenantConnectionCache sized and timed from TenantDatabaseSettings
    """
    settings = get_tenant_database_settings()
    return TenantConnectionCache(
        opener=get_handle_opener(),
        max_size=settings.cache_max_size,
        ttl_seconds=settings.cache_ttl_seconds,
        connect_timeout_seconds=settings.connect_timeout_seconds,
    )


@lru_cache
def get_database_administrator() -> PostgresDatabaseAdministrator:
    """Get the administrator bound to the maintenance database (singleton)."""
    return PostgresDatabaseAdministrator.from_settings(get_tenant_database_settings())


@lru_cache
def get_health_checker() -> HealthChecker:
    """Get the short-lived connection tester."""
    settings = get_tenant_database_settings()
    return HealthChecker(timeout_seconds=settings.health_check_timeout_seconds)


def get_tenant_database_repository(
    session: Annotated[AsyncSession, Depends(get_core_session)],
) -> TenantDatabaseRepository:
    """Get TenantDatabaseRepository instance.

    Args:
        session: Async core database session

    Returns:
        TenantDatabaseRepository bound to the request's session
    """
    return TenantDatabaseRepository(session=session)


def get_provisioning_service(
    session: Annotated[AsyncSession, Depends(get_core_session)],
    repository: Annotated[
        TenantDatabaseRepository, Depends(get_tenant_database_repository)
    ],
) -> TenantProvisioningService:
    """Get TenantProvisioningService instance."""
    return TenantProvisioningService(
        repository=repository,
        session=session,
        administrator=get_database_administrator(),
        opener=get_handle_opener(),
        schema_applier=MetadataSchemaApplier(),
        tester=get_health_checker(),
        defaults=get_connection_defaults(),
        step_timeout=get_tenant_database_settings().provisioning_step_timeout_seconds,
    )


def get_health_service(
    session: Annotated[AsyncSession, Depends(get_core_session)],
    repository: Annotated[
        TenantDatabaseRepository, Depends(get_tenant_database_repository)
    ],
) -> TenantHealthService:
    """Get TenantHealthService instance."""
    return TenantHealthService(
        repository=repository,
        session=session,
        tester=get_health_checker(),
        defaults=get_connection_defaults(),
    )


def get_tenant_database_service(
    session: Annotated[AsyncSession, Depends(get_core_session)],
    repository: Annotated[
        TenantDatabaseRepository, Depends(get_tenant_database_repository)
    ],
) -> TenantDatabaseService:
    """Get TenantDatabaseService instance."""
    return TenantDatabaseService(
        repository=repository,
        session=session,
        cache=get_connection_cache(),
        administrator=get_database_administrator(),
        defaults=get_connection_defaults(),
    )


async def get_tenant_database(
    service: Annotated[TenantDatabaseService, Depends(get_tenant_database_service)],
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> TenantDatabaseHandle:
    """Resolve the calling tenant's database handle from X-Tenant-ID.

    The handle is owned by the connection cache; route handlers borrow it
    for the request and must not close it.

    Raises:
        HTTPException: 400 if the header is missing
        HTTPException: 404 if the tenant does not exist
        HTTPException: 503 if the tenant's database is unavailable
    """
    try:
        context = resolve_tenant_context(x_tenant_id)
    except MissingTenantHeaderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    try:
        return await service.acquire_connection(TenantId(value=context.tenant_id))
    except TenantNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {context.tenant_id} not found",
        ) from e
    except TenantDatabaseUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e
