"""Result value objects returned by tenant database operations.

Administrative operations report outcomes as values rather than raising
past their boundary, so callers can render a clean response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.value_objects import DatabaseStatus

# Token an operator must send to drop a tenant database
DROP_CONFIRMATION_TOKEN = "DELETE_DATABASE"


class ProvisioningStep(StrEnum):
    """Ordered steps of the provisioning workflow."""

    VALIDATE = "validate"
    CREATE = "create"
    MIGRATE = "migrate"
    VERIFY = "verify"
    RECORD = "record"


class FailureKind(StrEnum):
    """Why a connection attempt failed."""

    CONNECT = "connect"
    TIMEOUT = "timeout"


class ErrorCode(StrEnum):
    """Stable error codes for administrative callers."""

    TENANT_NOT_FOUND = "E3001"
    ALREADY_PROVISIONED = "E2010"
    NO_DATABASE_URL = "E2011"
    CONFIRMATION_REQUIRED = "E2012"
    NO_DATABASE = "E2013"
    PROVISIONING_FAILED = "E5010"
    DROP_FAILED = "E5011"


@dataclass(frozen=True)
class ConnectionTestResult:
    """Outcome of a single liveness probe."""

    success: bool
    latency_ms: float | None = None
    error: str | None = None
    failure_kind: FailureKind | None = None


@dataclass(frozen=True)
class ProvisionResult:
    """Outcome of provisioning one tenant database.

    ``already_provisioned`` marks the idempotent refusal: the tenant was
    READY, nothing was touched, and ``success`` is still True.
    """

    tenant_id: str
    success: bool
    tenant_name: str | None = None
    database_name: str | None = None
    connection_url: str | None = None
    already_provisioned: bool = False
    failed_step: ProvisioningStep | None = None
    failure_kind: FailureKind | None = None
    error: str | None = None
    error_code: ErrorCode | None = None


@dataclass(frozen=True)
class BulkProvisionResult:
    """Outcome of provisioning every pending tenant."""

    results: list[ProvisionResult] = field(default_factory=list)

    @property
    def provisioned(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


@dataclass(frozen=True)
class HealthResult:
    """Outcome of a tenant health check."""

    tenant_id: str
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None
    failure_kind: FailureKind | None = None
    status: DatabaseStatus | None = None
    checked_at: datetime | None = None
    error_code: ErrorCode | None = None


@dataclass(frozen=True)
class DropResult:
    """Outcome of dropping a tenant database."""

    success: bool
    database_name: str | None = None
    tenant_id: str | None = None
    tenant_name: str | None = None
    error: str | None = None
    error_code: ErrorCode | None = None


@dataclass(frozen=True)
class DatabaseStatusSummary:
    """Every tenant's database slice with counts per status."""

    tenants: list[TenantDatabase] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.tenants)

    @property
    def counts(self) -> dict[DatabaseStatus, int]:
        counts = {status: 0 for status in DatabaseStatus}
        for tenant in self.tenants:
            counts[tenant.database_status] += 1
        return counts


@dataclass(frozen=True)
class DatabaseNamePreview:
    """The database name a display name would produce."""

    tenant_name: str
    database_name: str
    format: str


@dataclass(frozen=True)
class CacheSnapshot:
    """Point-in-time view of the connection cache."""

    size: int
    tenant_ids: list[str] = field(default_factory=list)
