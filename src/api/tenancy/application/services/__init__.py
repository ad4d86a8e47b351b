"""Application services for the tenancy bounded context.

Application services orchestrate the tenant record repository, the
connection cache and database administration to fulfill use cases.
"""

from tenancy.application.services.database_service import TenantDatabaseService
from tenancy.application.services.health_service import TenantHealthService
from tenancy.application.services.provisioning_service import (
    TenantProvisioningService,
)

__all__ = [
    "TenantDatabaseService",
    "TenantHealthService",
    "TenantProvisioningService",
]
