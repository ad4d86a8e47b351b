"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from infrastructure.database.dependencies import close_database_connections
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_settings, get_tenant_database_settings
from infrastructure.version import __version__
from tenancy.dependencies import get_connection_cache
from tenancy.presentation import routes as tenancy_routes


@asynccontextmanager
async def tenancy_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Tenant connection cache construction and optional TTL sweeper
    - Release of every cached handle and the core engine on shutdown
    """
    configure_logging()
    probe = DefaultStartupProbe()
    settings = get_tenant_database_settings()

    cache = get_connection_cache()
    probe.tenant_cache_initialized(
        max_size=settings.cache_max_size,
        ttl_seconds=settings.cache_ttl_seconds,
    )
    if settings.sweep_interval_seconds > 0:
        cache.start_sweeper(settings.sweep_interval_seconds)
        probe.ttl_sweeper_enabled(settings.sweep_interval_seconds)

    try:
        yield
    finally:
        await cache.stop_sweeper()
        released = await cache.release_all()
        await close_database_connections()
        probe.shutdown_completed(released_handles=released)


app = FastAPI(
    title=get_settings().app_name,
    description="Tenant database provisioning, health and connection management",
    version=__version__,
    lifespan=tenancy_lifespan,
)

app.include_router(tenancy_routes.router)
app.include_router(tenancy_routes.tenant_router)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}
