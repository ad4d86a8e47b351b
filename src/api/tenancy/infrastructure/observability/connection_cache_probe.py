"""Domain probe for the tenant connection cache.

Captures cache hits/misses, handle lifecycle and eviction without ever
logging connection strings or credentials.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class ConnectionCacheProbe(Protocol):
    """Domain probe for tenant connection cache operations."""

    def cache_hit(self, tenant_id: str) -> None:
        """Record that a cached handle was served."""
        ...

    def cache_miss(self, tenant_id: str) -> None:
        """Record that a new handle has to be opened."""
        ...

    def joined_inflight_open(self, tenant_id: str) -> None:
        """Record that a caller is waiting on another caller's open."""
        ...

    def handle_opened(self, tenant_id: str, cache_size: int) -> None:
        """Record that a validated handle was stored."""
        ...

    def handle_open_failed(self, tenant_id: str, error: Exception) -> None:
        """Record that opening or validating a handle failed."""
        ...

    def handle_open_timed_out(self, tenant_id: str, timeout: float) -> None:
        """Record that opening a handle exceeded its bound."""
        ...

    def handle_evicted(self, tenant_id: str, reason: str) -> None:
        """Record that a handle was evicted (reason: ttl or lru)."""
        ...

    def handle_released(self, tenant_id: str) -> None:
        """Record that a handle was explicitly released."""
        ...

    def handle_close_failed(self, tenant_id: str, error: Exception) -> None:
        """Record that closing a handle failed (never raised)."""
        ...

    def all_released(self, count: int) -> None:
        """Record that every cached handle was released."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionCacheProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionCacheProbe:
    """Default implementation of ConnectionCacheProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultConnectionCacheProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionCacheProbe(logger=self._logger, context=context)

    def cache_hit(self, tenant_id: str) -> None:
        self._logger.debug(
            "tenant_connection_cache_hit",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def cache_miss(self, tenant_id: str) -> None:
        self._logger.debug(
            "tenant_connection_cache_miss",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def joined_inflight_open(self, tenant_id: str) -> None:
        self._logger.debug(
            "tenant_connection_open_joined",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def handle_opened(self, tenant_id: str, cache_size: int) -> None:
        self._logger.info(
            "tenant_connection_opened",
            tenant_id=tenant_id,
            cache_size=cache_size,
            **self._get_context_kwargs(),
        )

    def handle_open_failed(self, tenant_id: str, error: Exception) -> None:
        self._logger.error(
            "tenant_connection_open_failed",
            tenant_id=tenant_id,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def handle_open_timed_out(self, tenant_id: str, timeout: float) -> None:
        self._logger.error(
            "tenant_connection_open_timed_out",
            tenant_id=tenant_id,
            timeout_seconds=timeout,
            **self._get_context_kwargs(),
        )

    def handle_evicted(self, tenant_id: str, reason: str) -> None:
        self._logger.info(
            "tenant_connection_evicted",
            tenant_id=tenant_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def handle_released(self, tenant_id: str) -> None:
        self._logger.info(
            "tenant_connection_released",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def handle_close_failed(self, tenant_id: str, error: Exception) -> None:
        self._logger.warning(
            "tenant_connection_close_failed",
            tenant_id=tenant_id,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def all_released(self, count: int) -> None:
        self._logger.info(
            "tenant_connections_released",
            count=count,
            **self._get_context_kwargs(),
        )
