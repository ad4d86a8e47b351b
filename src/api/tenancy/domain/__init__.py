"""Domain layer for the tenancy bounded context.

Pure types and rules for tenant databases: identifiers, naming, status,
results and exceptions. No I/O lives here.
"""

from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.exceptions import (
    InvalidDatabaseNameError,
    ProvisioningStepError,
    TenantDatabaseConnectionError,
    TenantDatabaseError,
    TenantDatabaseTimeoutError,
    TenantDatabaseUnavailableError,
    TenantNotFoundError,
)
from tenancy.domain.naming import (
    DATABASE_NAME_FORMAT,
    DATABASE_NAME_PREFIX,
    DatabaseIdentifier,
    build_connection_string,
    derive_database_identifier,
    mask_connection_string,
)
from tenancy.domain.results import (
    DROP_CONFIRMATION_TOKEN,
    BulkProvisionResult,
    CacheSnapshot,
    ConnectionTestResult,
    DatabaseNamePreview,
    DatabaseStatusSummary,
    DropResult,
    ErrorCode,
    FailureKind,
    HealthResult,
    ProvisioningStep,
    ProvisionResult,
)
from tenancy.domain.value_objects import (
    ConnectionConfig,
    ConnectionDefaults,
    DatabaseStatus,
    DatabaseType,
    TenantId,
    TenantState,
)

__all__ = [
    "BulkProvisionResult",
    "CacheSnapshot",
    "ConnectionConfig",
    "ConnectionDefaults",
    "ConnectionTestResult",
    "DATABASE_NAME_FORMAT",
    "DATABASE_NAME_PREFIX",
    "DROP_CONFIRMATION_TOKEN",
    "DatabaseNamePreview",
    "DatabaseStatusSummary",
    "DatabaseIdentifier",
    "DatabaseStatus",
    "DatabaseType",
    "DropResult",
    "ErrorCode",
    "FailureKind",
    "HealthResult",
    "InvalidDatabaseNameError",
    "ProvisionResult",
    "ProvisioningStep",
    "ProvisioningStepError",
    "TenantDatabase",
    "TenantDatabaseConnectionError",
    "TenantDatabaseError",
    "TenantDatabaseTimeoutError",
    "TenantDatabaseUnavailableError",
    "TenantId",
    "TenantNotFoundError",
    "TenantState",
    "build_connection_string",
    "derive_database_identifier",
    "mask_connection_string",
]
