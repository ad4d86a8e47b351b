"""Domain probe for tenant record repository operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class TenantDatabaseRepositoryProbe(Protocol):
    """Domain probe for tenant record persistence."""

    def tenant_retrieved(self, tenant_id: str) -> None:
        ...

    def tenant_not_found(self, tenant_id: str) -> None:
        ...

    def tenants_listed(self, count: int) -> None:
        ...

    def database_state_saved(self, tenant_id: str, status: str) -> None:
        ...

    def with_context(self, context: ObservationContext) -> TenantDatabaseRepositoryProbe:
        ...


class DefaultTenantDatabaseRepositoryProbe:
    """Default implementation of TenantDatabaseRepositoryProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(
        self, context: ObservationContext
    ) -> DefaultTenantDatabaseRepositoryProbe:
        return DefaultTenantDatabaseRepositoryProbe(logger=self._logger, context=context)

    def tenant_retrieved(self, tenant_id: str) -> None:
        self._logger.debug(
            "tenant_database_record_retrieved",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def tenant_not_found(self, tenant_id: str) -> None:
        self._logger.debug(
            "tenant_database_record_not_found",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def tenants_listed(self, count: int) -> None:
        self._logger.debug(
            "tenant_database_records_listed",
            count=count,
            **self._get_context_kwargs(),
        )

    def database_state_saved(self, tenant_id: str, status: str) -> None:
        self._logger.info(
            "tenant_database_state_saved",
            tenant_id=tenant_id,
            database_status=status,
            **self._get_context_kwargs(),
        )
