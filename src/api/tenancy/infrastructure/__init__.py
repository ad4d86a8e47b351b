"""Infrastructure layer for the tenancy bounded context."""

from tenancy.infrastructure.administrator import PostgresDatabaseAdministrator
from tenancy.infrastructure.connection_cache import CachedHandle, TenantConnectionCache
from tenancy.infrastructure.handles import SqlAlchemyHandleOpener, SqlAlchemyTenantHandle
from tenancy.infrastructure.health_checker import HealthChecker
from tenancy.infrastructure.models import TenantModel
from tenancy.infrastructure.tenant_repository import TenantDatabaseRepository
from tenancy.infrastructure.tenant_schema import MetadataSchemaApplier, TenantSchemaBase

__all__ = [
    "CachedHandle",
    "HealthChecker",
    "MetadataSchemaApplier",
    "PostgresDatabaseAdministrator",
    "SqlAlchemyHandleOpener",
    "SqlAlchemyTenantHandle",
    "TenantConnectionCache",
    "TenantDatabaseRepository",
    "TenantModel",
    "TenantSchemaBase",
]
