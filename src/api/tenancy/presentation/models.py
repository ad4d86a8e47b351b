"""Pydantic models for tenant database API requests and responses.

Responses never carry passwords; connection URLs are masked.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.naming import mask_connection_string
from tenancy.domain.results import (
    BulkProvisionResult,
    CacheSnapshot,
    DatabaseNamePreview,
    DatabaseStatusSummary,
    DropResult,
    HealthResult,
    ProvisionResult,
)
from tenancy.domain.value_objects import DatabaseType


class ErrorDetail(BaseModel):
    """Body of every error response (``HTTPException.detail``)."""

    code: str = Field(..., description="Stable error code, e.g. E3001")
    message: str = Field(..., description="Human readable message")
    details: str | None = Field(default=None, description="Extra diagnostic text")


class TenantDatabaseResponse(BaseModel):
    """Database fields of one tenant record."""

    tenant_id: str
    tenant_name: str
    slug: str
    tenant_status: str
    database_status: str
    database_type: str
    database_name: str | None = None
    database_host: str | None = None
    database_port: int | None = None
    database_ssl: bool | None = None
    connection_url: str | None = Field(default=None, description="Masked URL")
    managed_by: str | None = None
    migration_version: str | None = None
    last_checked_at: datetime | None = None
    last_error: str | None = None

    @classmethod
    def from_domain(cls, tenant: TenantDatabase) -> TenantDatabaseResponse:
        config = tenant.config
        return cls(
            tenant_id=tenant.id.value,
            tenant_name=tenant.name,
            slug=tenant.slug,
            tenant_status=tenant.state.value,
            database_status=tenant.database_status.value,
            database_type=tenant.database_type.value,
            database_name=tenant.database_name,
            database_host=config.host,
            database_port=config.port,
            database_ssl=config.ssl,
            connection_url=(
                mask_connection_string(config.connection_url)
                if config.connection_url
                else None
            ),
            managed_by=tenant.managed_by,
            migration_version=tenant.migration_version,
            last_checked_at=tenant.last_checked_at,
            last_error=tenant.last_error,
        )


class DatabaseStatusSummaryResponse(BaseModel):
    """Every tenant's database status with counts per status."""

    total: int
    counts: dict[str, int]
    tenants: list[TenantDatabaseResponse]

    @classmethod
    def from_domain(cls, summary: DatabaseStatusSummary) -> DatabaseStatusSummaryResponse:
        return cls(
            total=summary.total,
            counts={status.value: count for status, count in summary.counts.items()},
            tenants=[TenantDatabaseResponse.from_domain(t) for t in summary.tenants],
        )


class ProvisionResponse(BaseModel):
    """Outcome of provisioning one tenant."""

    tenant_id: str
    success: bool
    tenant_name: str | None = None
    database_name: str | None = None
    connection_url: str | None = Field(default=None, description="Masked URL")
    already_provisioned: bool = False
    failed_step: str | None = None
    failure_kind: str | None = None
    error: str | None = None
    message: str

    @classmethod
    def from_domain(cls, result: ProvisionResult) -> ProvisionResponse:
        if result.already_provisioned:
            message = "Database already provisioned"
        elif result.success:
            message = "Database provisioned successfully"
        else:
            message = "Database provisioning failed"
        return cls(
            tenant_id=result.tenant_id,
            success=result.success,
            tenant_name=result.tenant_name,
            database_name=result.database_name,
            connection_url=result.connection_url,
            already_provisioned=result.already_provisioned,
            failed_step=result.failed_step.value if result.failed_step else None,
            failure_kind=result.failure_kind.value if result.failure_kind else None,
            error=result.error,
            message=message,
        )


class BulkProvisionResponse(BaseModel):
    """Outcome of provisioning every pending tenant."""

    total: int
    provisioned: int
    failed: int
    results: list[ProvisionResponse]

    @classmethod
    def from_domain(cls, result: BulkProvisionResult) -> BulkProvisionResponse:
        return cls(
            total=len(result.results),
            provisioned=result.provisioned,
            failed=result.failed,
            results=[ProvisionResponse.from_domain(r) for r in result.results],
        )


class HealthResponse(BaseModel):
    """Outcome of a connection test or health check."""

    tenant_id: str
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None
    failure_kind: str | None = None
    database_status: str | None = None
    checked_at: datetime | None = None

    @classmethod
    def from_domain(cls, result: HealthResult) -> HealthResponse:
        return cls(
            tenant_id=result.tenant_id,
            healthy=result.healthy,
            latency_ms=result.latency_ms,
            error=result.error,
            failure_kind=result.failure_kind.value if result.failure_kind else None,
            database_status=result.status.value if result.status else None,
            checked_at=result.checked_at,
        )


class UpdateDatabaseConfigRequest(BaseModel):
    """Request model for an administrative connection config change.

    Only the fields present in the request body are changed.
    """

    database_type: DatabaseType | None = None
    database_name: str | None = Field(default=None, min_length=1, max_length=63)
    host: str | None = Field(default=None, min_length=1, max_length=255)
    port: int | None = Field(default=None, ge=1, le=65535)
    user: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, max_length=255)
    ssl: bool | None = None
    connection_url: str | None = Field(default=None, min_length=1)

    def config_changes(self) -> dict[str, object]:
        """Connection config fields explicitly set in the request."""
        return self.model_dump(
            exclude_unset=True, exclude={"database_type", "database_name"}
        )


class DatabaseNamePreviewResponse(BaseModel):
    """Database name a display name would produce."""

    tenant_name: str
    database_name: str
    format: str

    @classmethod
    def from_domain(cls, preview: DatabaseNamePreview) -> DatabaseNamePreviewResponse:
        return cls(
            tenant_name=preview.tenant_name,
            database_name=preview.database_name,
            format=preview.format,
        )


class DropDatabaseRequest(BaseModel):
    """Request body for dropping a tenant database."""

    confirm: str | None = Field(
        default=None, description="Must be DELETE_DATABASE to proceed"
    )


class DropDatabaseResponse(BaseModel):
    """Outcome of a successful drop."""

    tenant_id: str | None
    tenant_name: str | None
    database_name: str | None
    message: str

    @classmethod
    def from_domain(cls, result: DropResult) -> DropDatabaseResponse:
        return cls(
            tenant_id=result.tenant_id,
            tenant_name=result.tenant_name,
            database_name=result.database_name,
            message=f"Database {result.database_name} dropped",
        )


class CacheStatusResponse(BaseModel):
    """Tenants that currently hold a cached handle."""

    size: int
    tenant_ids: list[str]

    @classmethod
    def from_domain(cls, snapshot: CacheSnapshot) -> CacheStatusResponse:
        return cls(size=snapshot.size, tenant_ids=snapshot.tenant_ids)


class ReleaseResponse(BaseModel):
    """Outcome of releasing one cached handle."""

    tenant_id: str
    released: bool
