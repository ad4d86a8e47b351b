"""Tenant context resolved from the X-Tenant-ID request header.

Framework-agnostic: the FastAPI dependency that reads the header lives in
the tenancy context and maps the errors raised here to HTTP responses.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared_kernel.middleware.observability.tenant_context_probe import (
    DefaultTenantContextProbe,
    TenantContextProbe,
)

TENANT_HEADER = "X-Tenant-ID"


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant context for the current request.

    Attributes:
        tenant_id: The tenant identifier as sent by the caller, stripped.
        source: How the tenant was resolved. Always 'header' today.
    """

    tenant_id: str
    source: str = "header"


class MissingTenantHeaderError(ValueError):
    """Raised when the request carries no usable X-Tenant-ID header."""


def resolve_tenant_context(
    x_tenant_id: str | None,
    probe: TenantContextProbe | None = None,
) -> TenantContext:
    """Build the tenant context from a raw header value.

    Args:
        x_tenant_id: The X-Tenant-ID header value, or None if missing.
        probe: Optional domain probe for observability.

    Raises:
        MissingTenantHeaderError: If the header is missing or blank.
    """
    probe = probe or DefaultTenantContextProbe()
    if x_tenant_id is None or not x_tenant_id.strip():
        probe.tenant_header_missing()
        raise MissingTenantHeaderError(f"{TENANT_HEADER} header is required")

    tenant_id = x_tenant_id.strip()
    probe.tenant_resolved_from_header(tenant_id)
    return TenantContext(tenant_id=tenant_id)
