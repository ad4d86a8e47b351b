"""TenantDatabase aggregate for the tenancy context."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from tenancy.domain.value_objects import (
    ConnectionConfig,
    DatabaseStatus,
    DatabaseType,
    TenantId,
    TenantState,
)

MANAGED_BY_SUPER_ADMIN = "super_admin"
LATEST_MIGRATION_VERSION = "latest"


@dataclass
class TenantDatabase:
    """The database-related slice of a tenant's authoritative record.

    Identity fields (id, name, slug, state) belong to tenant management and
    are never changed here. The database fields are written only by the
    provisioning workflow, the health checker and explicit admin updates.

    Business rules:
    - READY implies a connection string has been validated at least once
    - A READY tenant with a stored connection URL counts as provisioned
    """

    id: TenantId
    name: str
    slug: str
    state: TenantState = TenantState.ACTIVE
    database_status: DatabaseStatus = DatabaseStatus.NOT_CONFIGURED
    database_type: DatabaseType = DatabaseType.NONE
    database_name: str | None = None
    config: ConnectionConfig = field(default_factory=ConnectionConfig)
    managed_by: str | None = None
    migration_version: str | None = None
    last_checked_at: datetime | None = None
    last_error: str | None = None

    @property
    def is_provisioned(self) -> bool:
        """True when the tenant already has a validated, recorded database."""
        return (
            self.database_status == DatabaseStatus.READY
            and bool(self.config.connection_url)
        )

    @property
    def has_database(self) -> bool:
        """True when some database location has been configured."""
        return self.database_name is not None or bool(self.config.connection_url)

    @property
    def needs_provisioning(self) -> bool:
        """True for active tenants still waiting for a database."""
        return self.state == TenantState.ACTIVE and self.database_status in (
            DatabaseStatus.NOT_CONFIGURED,
            DatabaseStatus.PENDING_SETUP,
        )

    def begin_provisioning(self) -> None:
        """Enter MIGRATING and clear the previous error."""
        self.database_status = DatabaseStatus.MIGRATING
        self.last_error = None

    def mark_ready(
        self,
        database_name: str,
        config: ConnectionConfig,
        checked_at: datetime,
    ) -> None:
        """Record a successfully provisioned and verified database."""
        self.database_status = DatabaseStatus.READY
        self.database_type = DatabaseType.DEDICATED_MANAGED
        self.database_name = database_name
        self.config = config
        self.managed_by = MANAGED_BY_SUPER_ADMIN
        self.migration_version = LATEST_MIGRATION_VERSION
        self.last_checked_at = checked_at
        self.last_error = None

    def mark_failed(self, error: str, checked_at: datetime) -> None:
        """Record a failed provisioning step or connection check."""
        self.database_status = DatabaseStatus.CONNECTION_FAILED
        self.last_error = error
        self.last_checked_at = checked_at

    def record_health(
        self, healthy: bool, error: str | None, checked_at: datetime
    ) -> None:
        """Persist the outcome of a health check."""
        if healthy:
            self.database_status = DatabaseStatus.READY
            self.last_error = None
            self.last_checked_at = checked_at
        else:
            self.mark_failed(error or "Connection failed", checked_at)

    def update_config(
        self,
        checked_at: datetime,
        database_type: DatabaseType | None = None,
        database_name: str | None = None,
        **changes: object,
    ) -> None:
        """Apply an administrative connection config update.

        Only the keyword arguments given are changed. Supplying a
        connection URL moves the tenant back to PENDING_SETUP until it is
        verified again.

        Args:
            checked_at: Timestamp recorded as the last check
            database_type: New hosting type, if changing
            database_name: New database name, if changing
            **changes: ConnectionConfig fields (host, port, user, password,
                ssl, connection_url)
        """
        if changes:
            self.config = replace(self.config, **changes)
        if database_type is not None:
            self.database_type = database_type
        if database_name is not None:
            self.database_name = database_name
        if changes.get("connection_url"):
            self.database_status = DatabaseStatus.PENDING_SETUP
        self.last_checked_at = checked_at

    def reset_database(self, checked_at: datetime) -> None:
        """Forget the tenant's database after it has been dropped."""
        self.database_status = DatabaseStatus.NOT_CONFIGURED
        self.database_type = DatabaseType.NONE
        self.database_name = None
        self.config = ConnectionConfig(ssl=False)
        self.managed_by = None
        self.migration_version = None
        self.last_checked_at = checked_at
        self.last_error = None
