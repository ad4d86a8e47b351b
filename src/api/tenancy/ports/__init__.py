"""Ports for the tenancy bounded context."""

from tenancy.ports.protocols import (
    ConnectionCache,
    ConnectionTester,
    DatabaseAdministrator,
    HandleOpener,
    SchemaApplier,
    TenantDatabaseHandle,
)
from tenancy.ports.repositories import ITenantDatabaseRepository

__all__ = [
    "ConnectionCache",
    "ConnectionTester",
    "DatabaseAdministrator",
    "HandleOpener",
    "ITenantDatabaseRepository",
    "SchemaApplier",
    "TenantDatabaseHandle",
]
