"""Domain-Oriented Observability for the tenancy application layer."""

from tenancy.application.observability.database_service_probe import (
    DefaultHealthServiceProbe,
    DefaultTenantDatabaseServiceProbe,
    HealthServiceProbe,
    TenantDatabaseServiceProbe,
)
from tenancy.application.observability.provisioning_probe import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)

__all__ = [
    "DefaultHealthServiceProbe",
    "DefaultProvisioningProbe",
    "DefaultTenantDatabaseServiceProbe",
    "HealthServiceProbe",
    "ProvisioningProbe",
    "TenantDatabaseServiceProbe",
]
