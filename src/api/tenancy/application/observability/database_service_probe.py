"""Probes for tenant database access, teardown and health services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class TenantDatabaseServiceProbe(Protocol):
    """Domain probe for request-path acquisition and admin actions."""

    def connection_unavailable(
        self, tenant_id: str, error_type: str, detail: str | None
    ) -> None:
        ...

    def tenant_not_found(self, tenant_id: str) -> None:
        ...

    def drop_refused(self, tenant_id: str, code: str) -> None:
        ...

    def database_dropped(self, tenant_id: str, database_name: str) -> None:
        ...

    def drop_failed(self, tenant_id: str, database_name: str, error: str) -> None:
        ...

    def database_config_updated(self, tenant_id: str, fields: list[str]) -> None:
        ...

    def tenant_released(self, tenant_id: str, released: bool) -> None:
        ...

    def with_context(self, context: ObservationContext) -> TenantDatabaseServiceProbe:
        ...


class DefaultTenantDatabaseServiceProbe:
    """Default implementation of TenantDatabaseServiceProbe using structlog."""

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
    ) -> DefaultTenantDatabaseServiceProbe:
        return DefaultTenantDatabaseServiceProbe(logger=self._logger, context=context)

    def connection_unavailable(
        self, tenant_id: str, error_type: str, detail: str | None
    ) -> None:
        self._logger.error(
            "tenant_database_unavailable",
            tenant_id=tenant_id,
            error_type=error_type,
            detail=detail,
            **self._get_context_kwargs(),
        )

    def tenant_not_found(self, tenant_id: str) -> None:
        self._logger.warning(
            "tenant_not_found",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def drop_refused(self, tenant_id: str, code: str) -> None:
        self._logger.warning(
            "tenant_database_drop_refused",
            tenant_id=tenant_id,
            code=code,
            **self._get_context_kwargs(),
        )

    def database_dropped(self, tenant_id: str, database_name: str) -> None:
        self._logger.warning(
            "tenant_database_dropped_for_tenant",
            tenant_id=tenant_id,
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def drop_failed(self, tenant_id: str, database_name: str, error: str) -> None:
        self._logger.error(
            "tenant_database_drop_failed_for_tenant",
            tenant_id=tenant_id,
            database_name=database_name,
            error=error,
            **self._get_context_kwargs(),
        )

    def database_config_updated(self, tenant_id: str, fields: list[str]) -> None:
        self._logger.info(
            "tenant_database_config_updated",
            tenant_id=tenant_id,
            fields=fields,
            **self._get_context_kwargs(),
        )

    def tenant_released(self, tenant_id: str, released: bool) -> None:
        self._logger.info(
            "tenant_database_handle_release_requested",
            tenant_id=tenant_id,
            released=released,
            **self._get_context_kwargs(),
        )


class HealthServiceProbe(Protocol):
    """Domain probe for tenant health checks."""

    def health_checked(
        self, tenant_id: str, healthy: bool, latency_ms: float | None
    ) -> None:
        ...

    def health_check_skipped(self, tenant_id: str, reason: str) -> None:
        ...

    def with_context(self, context: ObservationContext) -> HealthServiceProbe:
        ...


class DefaultHealthServiceProbe:
    """Default implementation of HealthServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultHealthServiceProbe:
        return DefaultHealthServiceProbe(logger=self._logger, context=context)

    def health_checked(
        self, tenant_id: str, healthy: bool, latency_ms: float | None
    ) -> None:
        log = self._logger.info if healthy else self._logger.warning
        log(
            "tenant_database_health_checked",
            tenant_id=tenant_id,
            healthy=healthy,
            latency_ms=latency_ms,
            **self._get_context_kwargs(),
        )

    def health_check_skipped(self, tenant_id: str, reason: str) -> None:
        self._logger.info(
            "tenant_database_health_check_skipped",
            tenant_id=tenant_id,
            reason=reason,
            **self._get_context_kwargs(),
        )
