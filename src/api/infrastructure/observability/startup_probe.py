"""Domain probe for application startup and lifecycle events.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events during application initialization and shutdown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class StartupProbe(Protocol):
    """Domain probe for application startup operations."""

    def tenant_cache_initialized(self, max_size: int, ttl_seconds: float) -> None:
        """Record that the tenant connection cache was constructed."""
        ...

    def ttl_sweeper_enabled(self, interval_seconds: float) -> None:
        """Record that the background TTL sweeper was started."""
        ...

    def shutdown_completed(self, released_handles: int) -> None:
        """Record that cached tenant handles were released at shutdown."""
        ...

    def with_context(self, context: ObservationContext) -> StartupProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultStartupProbe:
    """Default implementation of StartupProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultStartupProbe:
        """Create a new probe with observation context bound."""
        return DefaultStartupProbe(logger=self._logger, context=context)

    def tenant_cache_initialized(self, max_size: int, ttl_seconds: float) -> None:
        """Record that the tenant connection cache was constructed."""
        self._logger.info(
            "tenant_cache_initialized",
            max_size=max_size,
            ttl_seconds=ttl_seconds,
            **self._get_context_kwargs(),
        )

    def ttl_sweeper_enabled(self, interval_seconds: float) -> None:
        """Record that the background TTL sweeper was started."""
        self._logger.info(
            "tenant_cache_sweeper_enabled",
            interval_seconds=interval_seconds,
            **self._get_context_kwargs(),
        )

    def shutdown_completed(self, released_handles: int) -> None:
        """Record that cached tenant handles were released at shutdown."""
        self._logger.info(
            "tenant_cache_released_on_shutdown",
            released_handles=released_handles,
            **self._get_context_kwargs(),
        )
