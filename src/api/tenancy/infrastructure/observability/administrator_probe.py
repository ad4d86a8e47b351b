"""Domain probes for database administration and health probing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class DatabaseAdministratorProbe(Protocol):
    """Domain probe for CREATE/DROP DATABASE and schema application."""

    def database_created(self, database_name: str) -> None:
        ...

    def database_already_exists(self, database_name: str) -> None:
        ...

    def database_dropped(self, database_name: str) -> None:
        ...

    def database_drop_failed(self, database_name: str, error: Exception) -> None:
        ...

    def schema_applied(self, table_count: int) -> None:
        ...

    def with_context(self, context: ObservationContext) -> DatabaseAdministratorProbe:
        ...


class DefaultDatabaseAdministratorProbe:
    """Default implementation of DatabaseAdministratorProbe using structlog."""

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
    ) -> DefaultDatabaseAdministratorProbe:
        return DefaultDatabaseAdministratorProbe(logger=self._logger, context=context)

    def database_created(self, database_name: str) -> None:
        self._logger.info(
            "tenant_database_created",
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def database_already_exists(self, database_name: str) -> None:
        self._logger.info(
            "tenant_database_already_exists",
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def database_dropped(self, database_name: str) -> None:
        self._logger.warning(
            "tenant_database_dropped",
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def database_drop_failed(self, database_name: str, error: Exception) -> None:
        self._logger.error(
            "tenant_database_drop_failed",
            database_name=database_name,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def schema_applied(self, table_count: int) -> None:
        self._logger.info(
            "tenant_schema_applied",
            table_count=table_count,
            **self._get_context_kwargs(),
        )


class HealthCheckProbe(Protocol):
    """Domain probe for short-lived connection tests."""

    def connection_test_succeeded(self, target: str, latency_ms: float) -> None:
        ...

    def connection_test_failed(self, target: str, error: str, kind: str) -> None:
        ...

    def probe_close_failed(self, target: str, error: Exception) -> None:
        ...

    def with_context(self, context: ObservationContext) -> HealthCheckProbe:
        ...


class DefaultHealthCheckProbe:
    """Default implementation of HealthCheckProbe using structlog.

    ``target`` is always the masked connection string.
    """

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

    def with_context(self, context: ObservationContext) -> DefaultHealthCheckProbe:
        return DefaultHealthCheckProbe(logger=self._logger, context=context)

    def connection_test_succeeded(self, target: str, latency_ms: float) -> None:
        self._logger.debug(
            "tenant_connection_test_succeeded",
            target=target,
            latency_ms=latency_ms,
            **self._get_context_kwargs(),
        )

    def connection_test_failed(self, target: str, error: str, kind: str) -> None:
        self._logger.warning(
            "tenant_connection_test_failed",
            target=target,
            error=error,
            failure_kind=kind,
            **self._get_context_kwargs(),
        )

    def probe_close_failed(self, target: str, error: Exception) -> None:
        self._logger.warning(
            "tenant_connection_test_close_failed",
            target=target,
            error=str(error),
            **self._get_context_kwargs(),
        )
