"""Domain exceptions for the tenancy bounded context.

Connection-path errors carry the underlying driver message for operators;
``TenantDatabaseUnavailableError`` is the sanitized form handed to
request handlers and never includes URLs or credentials.
"""


class TenantDatabaseError(Exception):
    """Base exception for tenant database operations."""

    pass


class InvalidDatabaseNameError(TenantDatabaseError, ValueError):
    """Raised when a display name cannot produce a usable database identifier."""

    def __init__(self, message: str, display_name: str):
        super().__init__(message)
        self.display_name = display_name


class TenantNotFoundError(TenantDatabaseError):
    """Raised when no tenant record exists for the requested id."""

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id


class TenantDatabaseConnectionError(TenantDatabaseError):
    """Raised when a tenant database handle cannot be opened or validated.

    Attributes:
        tenant_id: Tenant whose database was being opened (if known)
        driver_message: Message reported by the database driver
    """

    def __init__(
        self,
        message: str,
        tenant_id: str | None = None,
        driver_message: str | None = None,
    ):
        super().__init__(message)
        self.tenant_id = tenant_id
        self.driver_message = driver_message


class TenantDatabaseTimeoutError(TenantDatabaseError):
    """Raised when opening or probing a tenant database exceeds its bound.

    Kept separate from TenantDatabaseConnectionError so "slow" can be told
    apart from "unreachable".
    """

    def __init__(self, message: str, tenant_id: str | None = None, timeout: float | None = None):
        super().__init__(message)
        self.tenant_id = tenant_id
        self.timeout = timeout


class TenantDatabaseUnavailableError(TenantDatabaseError):
    """Generic failure surfaced to request handlers."""

    def __init__(self, tenant_id: str):
        super().__init__(f"Database unavailable for tenant: {tenant_id}")
        self.tenant_id = tenant_id


class ProvisioningStepError(TenantDatabaseError):
    """Raised inside the provisioning workflow when a step fails.

    Attributes:
        step: Name of the failed step (validate, create, migrate, verify, record)
    """

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
        self.reason = message
