"""Value objects for the tenancy domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for identifiers and tenant database configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True)
class TenantId:
    """Identifier of a tenant.

    Tenant ids are issued by tenant management and are opaque here; the
    only rule is that they are non-blank.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> TenantId:
        """Create TenantId from a raw string.

        Args:
            value: Raw tenant id (surrounding whitespace is ignored)

        Returns:
            TenantId instance

        Raises:
            ValueError: If the value is blank
        """
        stripped = value.strip()
        if not stripped:
            raise ValueError("Invalid TenantId: value must not be blank")
        return cls(value=stripped)


class DatabaseStatus(StrEnum):
    """Provisioning/connectivity state of a tenant's database.

    Only the provisioning workflow and the health checker move a tenant
    between these states (plus explicit admin config updates, which may
    reset to PENDING_SETUP). READY implies a connection string has been
    validated at least once.
    """

    NOT_CONFIGURED = "NOT_CONFIGURED"
    PENDING_SETUP = "PENDING_SETUP"
    MIGRATING = "MIGRATING"
    READY = "READY"
    CONNECTION_FAILED = "CONNECTION_FAILED"


class DatabaseType(StrEnum):
    """How a tenant's database is hosted."""

    SHARED = "SHARED"
    DEDICATED_MANAGED = "DEDICATED_MANAGED"
    DEDICATED_SELF = "DEDICATED_SELF"
    NONE = "NONE"


class TenantState(StrEnum):
    """Lifecycle state of the tenant itself (owned by tenant management)."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


@dataclass(frozen=True)
class ConnectionConfig:
    """Per-tenant connection parameters.

    Every field is optional; unset fields fall back to the process-wide
    defaults. When ``connection_url`` is set it wins over the other fields.
    """

    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    ssl: bool | None = None
    connection_url: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when no connection detail has been configured."""
        return (
            self.host is None
            and self.port is None
            and self.user is None
            and self.password is None
            and self.connection_url is None
        )


@dataclass(frozen=True)
class ConnectionDefaults:
    """Process-wide fallbacks for tenant connection parameters."""

    host: str
    port: int
    user: str
    password: str
    ssl: bool = False

    def merged_with(self, config: ConnectionConfig) -> ConnectionConfig:
        """Resolve a config against these defaults (config fields win)."""
        return ConnectionConfig(
            host=config.host or self.host,
            port=config.port or self.port,
            user=config.user or self.user,
            password=config.password or self.password,
            ssl=self.ssl if config.ssl is None else config.ssl,
            connection_url=config.connection_url,
        )
