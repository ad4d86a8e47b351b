"""Observability probes for tenancy infrastructure."""

from tenancy.infrastructure.observability.administrator_probe import (
    DatabaseAdministratorProbe,
    DefaultDatabaseAdministratorProbe,
    DefaultHealthCheckProbe,
    HealthCheckProbe,
)
from tenancy.infrastructure.observability.connection_cache_probe import (
    ConnectionCacheProbe,
    DefaultConnectionCacheProbe,
)
from tenancy.infrastructure.observability.repository_probe import (
    DefaultTenantDatabaseRepositoryProbe,
    TenantDatabaseRepositoryProbe,
)

__all__ = [
    "ConnectionCacheProbe",
    "DatabaseAdministratorProbe",
    "DefaultConnectionCacheProbe",
    "DefaultDatabaseAdministratorProbe",
    "DefaultHealthCheckProbe",
    "DefaultTenantDatabaseRepositoryProbe",
    "HealthCheckProbe",
    "TenantDatabaseRepositoryProbe",
]
