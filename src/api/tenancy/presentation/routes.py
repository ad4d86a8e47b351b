"""HTTP routes for tenant database administration."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, status

from tenancy.application.services import (
    TenantDatabaseService,
    TenantHealthService,
    TenantProvisioningService,
)
from tenancy.dependencies import (
    get_health_service,
    get_provisioning_service,
    get_tenant_database,
    get_tenant_database_service,
)
from tenancy.domain.exceptions import TenantNotFoundError
from tenancy.domain.results import ErrorCode
from tenancy.domain.value_objects import TenantId
from tenancy.ports.protocols import TenantDatabaseHandle
from tenancy.presentation.models import (
    BulkProvisionResponse,
    CacheStatusResponse,
    DatabaseNamePreviewResponse,
    DatabaseStatusSummaryResponse,
    DropDatabaseRequest,
    DropDatabaseResponse,
    ErrorDetail,
    HealthResponse,
    ProvisionResponse,
    ReleaseResponse,
    TenantDatabaseResponse,
    UpdateDatabaseConfigRequest,
)

router = APIRouter(
    prefix="/tenant-databases",
    tags=["tenant-databases"],
)

# Routes serving the calling tenant, resolved from X-Tenant-ID
tenant_router = APIRouter(
    prefix="/tenant",
    tags=["tenant"],
)

_STATUS_BY_CODE = {
    ErrorCode.TENANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NO_DATABASE_URL: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CONFIRMATION_REQUIRED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NO_DATABASE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.PROVISIONING_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.DROP_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error(code: ErrorCode, message: str, details: str | None = None) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CODE[code],
        detail=ErrorDetail(code=code.value, message=message, details=details).model_dump(
            exclude_none=True
        ),
    )


def _parse_tenant_id(tenant_id: str) -> TenantId:
    try:
        return TenantId.from_string(tenant_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tenant ID format: {e}",
        ) from e


@router.get("/status")
async def get_database_statuses(
    service: Annotated[TenantHealthService, Depends(get_health_service)],
) -> DatabaseStatusSummaryResponse:
    """List every tenant's database status with counts per status."""
    summary = await service.get_database_statuses()
    return DatabaseStatusSummaryResponse.from_domain(summary)


@router.post("/provision-all")
async def provision_all(
    service: Annotated[TenantProvisioningService, Depends(get_provisioning_service)],
) -> BulkProvisionResponse:
    """Provision every active tenant still waiting for a database.

    Individual failures are reported per tenant; the request itself
    succeeds.
    """
    result = await service.provision_pending()
    return BulkProvisionResponse.from_domain(result)


@router.get("/cache")
async def get_cache_status(
    service: Annotated[TenantDatabaseService, Depends(get_tenant_database_service)],
) -> CacheStatusResponse:
    """Show which tenants currently hold a cached handle."""
    return CacheStatusResponse.from_domain(service.cache_snapshot())


@router.delete("/cache/{tenant_id}")
async def release_cached_connection(
    tenant_id: str,
    service: Annotated[TenantDatabaseService, Depends(get_tenant_database_service)],
) -> ReleaseResponse:
    """Close and forget one tenant's cached handle."""
    tenant_id_obj = _parse_tenant_id(tenant_id)
    released = await service.release_tenant(tenant_id_obj)
    return ReleaseResponse(tenant_id=tenant_id_obj.value, released=released)


@router.get("/preview/{tenant_name}")
async def preview_database_name(
    tenant_name: str,
    service: Annotated[TenantDatabaseService, Depends(get_tenant_database_service)],
) -> DatabaseNamePreviewResponse:
    """Show the database name a tenant display name would produce."""
    return DatabaseNamePreviewResponse.from_domain(
        service.preview_database_name(tenant_name)
    )


@router.post("/{tenant_id}/provision")
async def provision_database(
    tenant_id: str,
    service: Annotated[TenantProvisioningService, Depends(get_provisioning_service)],
) -> ProvisionResponse:
    """Create, migrate, verify and record a tenant's database.

    Raises:
        HTTPException: 404 (E3001) if the tenant does not exist
        HTTPException: 500 (E5010) if a provisioning step failed
    """
    result = await service.provision_database(_parse_tenant_id(tenant_id))

    if not result.success:
        if result.error_code == ErrorCode.TENANT_NOT_FOUND:
            raise _error(ErrorCode.TENANT_NOT_FOUND, "Tenant not found")
        step = result.failed_step.value if result.failed_step else "unknown"
        raise _error(
            ErrorCode.PROVISIONING_FAILED,
            f"Database provisioning failed at step '{step}'",
            details=result.error,
        )

    return ProvisionResponse.from_domain(result)


@router.post("/{tenant_id}/test")
async def test_connection(
    tenant_id: str,
    service: Annotated[TenantHealthService, Depends(get_health_service)],
) -> HealthResponse:
    """Test the tenant's stored connection URL and record the outcome.

    Raises:
        HTTPException: 404 (E3001) if the tenant does not exist
        HTTPException: 400 (E2011) if no connection URL is stored
    """
    result = await service.test_tenant_connection(_parse_tenant_id(tenant_id))

    if result.error_code == ErrorCode.TENANT_NOT_FOUND:
        raise _error(ErrorCode.TENANT_NOT_FOUND, "Tenant not found")
    if result.error_code == ErrorCode.NO_DATABASE_URL:
        raise _error(ErrorCode.NO_DATABASE_URL, "No database URL configured")

    return HealthResponse.from_domain(result)


@router.get("/{tenant_id}/health")
async def check_health(
    tenant_id: str,
    service: Annotated[TenantHealthService, Depends(get_health_service)],
) -> HealthResponse:
    """Probe a tenant's database. Unhealthy outcomes are still 200."""
    result = await service.check_tenant_health(_parse_tenant_id(tenant_id))
    return HealthResponse.from_domain(result)


@router.put("/{tenant_id}/config")
async def update_database_config(
    tenant_id: str,
    request: UpdateDatabaseConfigRequest,
    service: Annotated[TenantDatabaseService, Depends(get_tenant_database_service)],
) -> TenantDatabaseResponse:
    """Change a tenant's connection configuration.

    Setting a connection URL moves the tenant to PENDING_SETUP until it is
    verified again.

    Raises:
        HTTPException: 404 (E3001) if the tenant does not exist
    """
    try:
        tenant = await service.update_database_config(
            _parse_tenant_id(tenant_id),
            database_type=request.database_type,
            database_name=request.database_name,
            **request.config_changes(),
        )
    except TenantNotFoundError as e:
        raise _error(ErrorCode.TENANT_NOT_FOUND, "Tenant not found") from e

    return TenantDatabaseResponse.from_domain(tenant)


@router.delete("/{tenant_id}")
async def drop_database(
    tenant_id: str,
    service: Annotated[TenantDatabaseService, Depends(get_tenant_database_service)],
    request: Annotated[DropDatabaseRequest | None, Body()] = None,
) -> DropDatabaseResponse:
    """Drop a tenant's database. Requires ``{"confirm": "DELETE_DATABASE"}``.

    Raises:
        HTTPException: 400 (E2012) without the confirmation token
        HTTPException: 404 (E3001) if the tenant does not exist
        HTTPException: 400 (E2013) if the tenant has no database
        HTTPException: 500 (E5011) if the server refused the drop
    """
    confirmation = request.confirm if request is not None else None
    result = await service.drop_database(_parse_tenant_id(tenant_id), confirmation)

    if not result.success:
        code = result.error_code or ErrorCode.DROP_FAILED
        if code == ErrorCode.DROP_FAILED:
            raise _error(code, "Failed to drop database", details=result.error)
        raise _error(code, result.error or "Drop refused")

    return DropDatabaseResponse.from_domain(result)


@tenant_router.get("/database/ping")
async def ping_tenant_database(
    handle: Annotated[TenantDatabaseHandle, Depends(get_tenant_database)],
) -> dict:
    """Round-trip to the calling tenant's database through the cached handle."""
    try:
        await handle.ping()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tenant database did not respond",
        ) from e
    return {"status": "ok"}
