"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class CoreDatabaseProbe(Protocol):
    """Domain probe for the core (tenant registry) database engine."""

    def engine_created(self, host: str, database: str, pool_size: int) -> None:
        """Record that the core database engine was created."""
        ...

    def engine_disposed(self) -> None:
        """Record that the core database engine was disposed."""
        ...

    def with_context(self, context: ObservationContext) -> CoreDatabaseProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultCoreDatabaseProbe:
    """Default implementation of CoreDatabaseProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultCoreDatabaseProbe:
        """Create a new probe with observation context bound."""
        return DefaultCoreDatabaseProbe(logger=self._logger, context=context)

    def engine_created(self, host: str, database: str, pool_size: int) -> None:
        self._logger.info(
            "core_database_engine_created",
            host=host,
            database=database,
            pool_size=pool_size,
            **self._get_context_kwargs(),
        )

    def engine_disposed(self) -> None:
        self._logger.info(
            "core_database_engine_disposed",
            **self._get_context_kwargs(),
        )
