"""Protocol for provisioning workflow observability.

Defines the interface for domain probes that capture each step of
creating, migrating, verifying and recording a tenant database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class ProvisioningProbe(Protocol):
    """Domain probe for the provisioning workflow."""

    def provisioning_started(self, tenant_id: str, database_name: str) -> None:
        """Record that provisioning began for a tenant."""
        ...

    def already_provisioned(self, tenant_id: str) -> None:
        """Record that a READY tenant was left untouched."""
        ...

    def step_completed(self, tenant_id: str, step: str) -> None:
        """Record that a workflow step succeeded."""
        ...

    def provisioning_failed(self, tenant_id: str, step: str, error: str) -> None:
        """Record that a workflow step failed."""
        ...

    def failure_not_recorded(self, tenant_id: str, step: str, error: str) -> None:
        """Record that the failed status could not be saved."""
        ...

    def provisioning_succeeded(self, tenant_id: str, database_name: str) -> None:
        """Record that the tenant database is READY."""
        ...

    def tenant_not_found(self, tenant_id: str) -> None:
        """Record that provisioning was requested for an unknown tenant."""
        ...

    def bulk_provisioning_completed(
        self, total: int, provisioned: int, failed: int
    ) -> None:
        """Record the outcome of a bulk provisioning run."""
        ...

    def with_context(self, context: ObservationContext) -> ProvisioningProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultProvisioningProbe:
    """Default implementation of ProvisioningProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultProvisioningProbe:
        """Create a new probe with observation context bound."""
        return DefaultProvisioningProbe(logger=self._logger, context=context)

    def provisioning_started(self, tenant_id: str, database_name: str) -> None:
        """Record that provisioning began for a tenant."""
        self._logger.info(
            "tenant_provisioning_started",
            tenant_id=tenant_id,
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def already_provisioned(self, tenant_id: str) -> None:
        """Record that a READY tenant was left untouched."""
        self._logger.info(
            "tenant_already_provisioned",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def step_completed(self, tenant_id: str, step: str) -> None:
        """Record that a workflow step succeeded."""
        self._logger.debug(
            "tenant_provisioning_step_completed",
            tenant_id=tenant_id,
            step=step,
            **self._get_context_kwargs(),
        )

    def provisioning_failed(self, tenant_id: str, step: str, error: str) -> None:
        """Record that a workflow step failed."""
        self._logger.error(
            "tenant_provisioning_failed",
            tenant_id=tenant_id,
            step=step,
            error=error,
            **self._get_context_kwargs(),
        )

    def failure_not_recorded(self, tenant_id: str, step: str, error: str) -> None:
        """Record that the failed status could not be saved."""
        self._logger.error(
            "tenant_provisioning_failure_not_recorded",
            tenant_id=tenant_id,
            step=step,
            error=error,
            **self._get_context_kwargs(),
        )

    def provisioning_succeeded(self, tenant_id: str, database_name: str) -> None:
        """Record that the tenant database is READY."""
        self._logger.info(
            "tenant_provisioning_succeeded",
            tenant_id=tenant_id,
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def tenant_not_found(self, tenant_id: str) -> None:
        """Record that provisioning was requested for an unknown tenant."""
        self._logger.warning(
            "tenant_provisioning_tenant_not_found",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def bulk_provisioning_completed(
        self, total: int, provisioned: int, failed: int
    ) -> None:
        """Record the outcome of a bulk provisioning run."""
        self._logger.info(
            "tenant_bulk_provisioning_completed",
            total=total,
            provisioned=provisioned,
            failed=failed,
            **self._get_context_kwargs(),
        )
