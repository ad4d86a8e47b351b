"""Repository protocols (ports) for the tenancy bounded context.

The tenant record itself is owned by tenant management; this context
reads identity and connection config and writes only the database fields.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tenancy.domain.aggregates import TenantDatabase
from tenancy.domain.value_objects import TenantId


@runtime_checkable
class ITenantDatabaseRepository(Protocol):
    """Repository for the database slice of tenant records."""

    async def get_by_id(self, tenant_id: TenantId) -> TenantDatabase | None:
        """Retrieve a tenant's database record.

        Args:
            tenant_id: The tenant identifier

        Returns:
            The TenantDatabase, or None if the tenant does not exist
        """
        ...

    async def list_all(self) -> list[TenantDatabase]:
        """List every tenant's database record, ordered by name."""
        ...

    async def list_needing_provisioning(self) -> list[TenantDatabase]:
        """List active tenants in NOT_CONFIGURED or PENDING_SETUP."""
        ...

    async def save_database_state(self, tenant: TenantDatabase) -> None:
        """Persist the database fields of a tenant record.

        Identity fields are not written.

        Raises:
            TenantNotFoundError: If the tenant record no longer exists
        """
        ...
