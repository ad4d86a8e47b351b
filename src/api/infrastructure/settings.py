"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreDatabaseSettings(BaseSettings):
    """Core (control-plane) database connection settings.

    The core database holds the authoritative tenant records, including
    each tenant's database status and connection configuration.

    Environment variables:
        EC_CORE_DB_HOST: Database host (default: localhost)
        EC_CORE_DB_PORT: Database port (default: 5432)
        EC_CORE_DB_DATABASE: Database name (default: electioncaffe_core)
        EC_CORE_DB_USERNAME: Database user (default: postgres)
        EC_CORE_DB_PASSWORD: Database password (required in production)
        EC_CORE_DB_POOL_SIZE: Connections kept in the engine pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="EC_CORE_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="electioncaffe_core", description="Database name")
    username: str = Field(default="postgres", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_size: int = Field(
        default=10,
        description="Connections kept in the core engine pool",
        ge=1,
        le=100,
    )

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class TenantDatabaseSettings(BaseSettings):
    """Defaults and limits for per-tenant databases.

    The host/port/username/password/ssl values are the fallbacks used when
    a tenant record carries no explicit override.

    Environment variables:
        EC_TENANT_DB_HOST: Default tenant database host (default: localhost)
        EC_TENANT_DB_PORT: Default tenant database port (default: 5432)
        EC_TENANT_DB_USERNAME: Default tenant database user (default: postgres)
        EC_TENANT_DB_PASSWORD: Default tenant database password
        EC_TENANT_DB_SSL: Require SSL for tenant connections (default: false)
        EC_TENANT_DB_MAINTENANCE_DATABASE: Database used for CREATE/DROP DATABASE
        EC_TENANT_DB_CACHE_MAX_SIZE: Maximum cached tenant handles (default: 50)
        EC_TENANT_DB_CACHE_TTL_SECONDS: Idle time before a handle may be evicted
        EC_TENANT_DB_CONNECT_TIMEOUT_SECONDS: Bound on opening a handle
        EC_TENANT_DB_HEALTH_CHECK_TIMEOUT_SECONDS: Bound on a health probe
        EC_TENANT_DB_PROVISIONING_STEP_TIMEOUT_SECONDS: Bound on CREATE DATABASE and
            on the schema push
        EC_TENANT_DB_SWEEP_INTERVAL_SECONDS: Background TTL sweep period, 0 disables
        EC_TENANT_DB_HANDLE_POOL_SIZE: Connections per cached tenant engine
    """

    model_config = SettingsConfigDict(
        env_prefix="EC_TENANT_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Default tenant DB host")
    port: int = Field(default=5432, description="Default tenant DB port")
    username: str = Field(default="postgres", description="Default tenant DB user")
    password: SecretStr = Field(
        default=SecretStr("postgres"),
        description="Default tenant DB password",
    )
    ssl: bool = Field(default=False, description="Require SSL by default")
    maintenance_database: str = Field(
        default="postgres",
        description="Database to connect to for CREATE/DROP DATABASE",
    )
    cache_max_size: int = Field(
        default=50,
        description="Maximum number of cached tenant handles",
        ge=1,
        le=10_000,
    )
    cache_ttl_seconds: float = Field(
        default=30 * 60,
        description="Idle seconds before a cached handle is eligible for eviction",
        gt=0,
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on opening a tenant handle",
        gt=0,
        le=300,
    )
    health_check_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on a health-check probe",
        gt=0,
        le=300,
    )
    provisioning_step_timeout_seconds: float = Field(
        default=120.0,
        description="Upper bound on each create/migrate provisioning step",
        gt=0,
        le=3600,
    )
    sweep_interval_seconds: float = Field(
        default=0.0,
        description="Background TTL sweep period (0 disables the sweeper)",
        ge=0,
    )
    handle_pool_size: int = Field(
        default=5,
        description="Connections kept by each cached tenant engine",
        ge=1,
        le=100,
    )

    @model_validator(mode="after")
    def validate_timeouts(self) -> "TenantDatabaseSettings":
        """Validate the health probe bound does not undercut the connect bound."""
        if self.health_check_timeout_seconds < self.connect_timeout_seconds:
            raise ValueError(
                f"health_check_timeout_seconds ({self.health_check_timeout_seconds}) "
                f"must be >= connect_timeout_seconds ({self.connect_timeout_seconds})"
            )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(
        default="ElectionCaffe Tenant Databases", description="Application name"
    )
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def core_database(self) -> CoreDatabaseSettings:
        """Get core database settings."""
        return get_core_database_settings()

    @property
    def tenant_database(self) -> TenantDatabaseSettings:
        """Get tenant database settings."""
        return get_tenant_database_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_core_database_settings() -> CoreDatabaseSettings:
    """Get cached core database settings."""
    return CoreDatabaseSettings()


@lru_cache
def get_tenant_database_settings() -> TenantDatabaseSettings:
    """Get cached tenant database settings."""
    return TenantDatabaseSettings()
