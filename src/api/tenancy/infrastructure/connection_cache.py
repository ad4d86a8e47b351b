"""Process-wide cache of open tenant database handles.

One handle per tenant id, opened lazily on first use, validated before it is
stored, and evicted by idle TTL or least-recent use when the cache is full.
Concurrent first requests for the same tenant share one open.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from tenancy.domain.exceptions import (
    TenantDatabaseConnectionError,
    TenantDatabaseTimeoutError,
)
from tenancy.infrastructure.observability import (
    ConnectionCacheProbe,
    DefaultConnectionCacheProbe,
)
from tenancy.ports.protocols import HandleOpener, TenantDatabaseHandle

DEFAULT_MAX_SIZE = 50
DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0

# Share of the remaining entries dropped when TTL eviction frees nothing
LRU_TRIM_FRACTION = 0.1


@dataclass
class CachedHandle:
    """A cache entry. Timestamps come from the cache's clock."""

    tenant_id: str
    handle: TenantDatabaseHandle
    created_at: float
    last_accessed_at: float


def _retrieve_exception(task: asyncio.Task) -> None:
    # Failed opens nobody awaited anymore must not warn at garbage collection
    if not task.cancelled():
        task.exception()


class TenantConnectionCache:
    """Bounded map from tenant id to an open, validated database handle.

    The map is guarded by a single asyncio lock that is never held across
    network I/O: opening, pinging and closing handles all happen outside it,
    so a slow tenant never blocks acquisition for other tenants.

    Handles are owned by the cache. Callers borrow them and must not close
    them; a handle evicted while in use keeps serving its checked-out
    connections until they are returned.
    """

    def __init__(
        self,
        opener: HandleOpener,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        probe: ConnectionCacheProbe | None = None,
    ):
        """Initialize the cache.

        Args:
            opener: Creates handles from connection strings
            max_size: Maximum number of cached handles
            ttl_seconds: Idle time after which an entry may be evicted
            connect_timeout_seconds: Upper bound on opening plus validating
            clock: Monotonic time source (injectable for tests)
            probe: Optional domain probe for observability

        Raises:
            ValueError: If max_size or a duration is not positive
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl_seconds <= 0 or connect_timeout_seconds <= 0:
            raise ValueError("ttl_seconds and connect_timeout_seconds must be positive")

        self._opener = opener
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._connect_timeout = connect_timeout_seconds
        self._clock = clock
        self._probe = probe or DefaultConnectionCacheProbe()

        self._entries: dict[str, CachedHandle] = {}
        self._inflight: dict[str, asyncio.Task[TenantDatabaseHandle]] = {}
        self._lock = asyncio.Lock()
        self._sweeper: asyncio.Task[None] | None = None
        self._closing: set[asyncio.Task[None]] = set()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def acquire(
        self,
        tenant_id: str,
        connection_string: str,
        timeout: float | None = None,
    ) -> TenantDatabaseHandle:
        """Return the open handle for a tenant, opening it on first use.

        A cache hit refreshes the entry's last access time and does no I/O.
        On a miss the handle is opened and pinged; concurrent callers for the
        same tenant wait on that single open instead of starting their own.

        Args:
            tenant_id: Cache key
            connection_string: Used only when a new handle has to be opened
            timeout: Caller's bound on waiting (capped by the connect timeout)

        Returns:
            The cached handle

        Raises:
            TenantDatabaseTimeoutError: If the open or the wait timed out
            TenantDatabaseConnectionError: If the open or validation failed
        """
        async with self._lock:
            entry = self._entries.get(tenant_id)
            if entry is not None:
                entry.last_accessed_at = self._clock()
                self._probe.cache_hit(tenant_id)
                return entry.handle

            task = self._inflight.get(tenant_id)
            if task is None:
                self._probe.cache_miss(tenant_id)
                task = asyncio.create_task(
                    self._open_and_store(tenant_id, connection_string),
                    name=f"tenant-db-open:{tenant_id}",
                )
                task.add_done_callback(_retrieve_exception)
                self._inflight[tenant_id] = task
            else:
                self._probe.joined_inflight_open(tenant_id)

        wait = (
            self._connect_timeout
            if timeout is None
            else min(timeout, self._connect_timeout)
        )
        try:
            # Shielded so one impatient caller does not abort the shared open
            return await asyncio.wait_for(asyncio.shield(task), timeout=wait)
        except TimeoutError as e:
            raise TenantDatabaseTimeoutError(
                f"Timed out waiting for database of tenant {tenant_id}",
                tenant_id=tenant_id,
                timeout=wait,
            ) from e

    async def release(self, tenant_id: str) -> bool:
        """Close and forget a tenant's handle.

        Returns:
            True if an entry was removed, False if none was cached
        """
        async with self._lock:
            entry = self._entries.pop(tenant_id, None)

        if entry is None:
            return False

        await self._close_quietly(entry)
        self._probe.handle_released(tenant_id)
        return True

    async def release_all(self) -> int:
        """Close every cached handle concurrently.

        Close failures are logged and never raised.

        Returns:
            Number of entries released
        """
        async with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()

        await asyncio.gather(*(self._close_quietly(entry) for entry in entries))
        await self.wait_closed()
        self._probe.all_released(len(entries))
        return len(entries)

    async def evict_expired(self) -> int:
        """Evict every entry idle longer than the TTL.

        Returns:
            Number of entries evicted
        """
        async with self._lock:
            expired = self._pop_expired_locked(self._clock())

        await self._close_evicted(expired, reason="ttl")
        return len(expired)

    def start_sweeper(self, interval_seconds: float) -> None:
        """Start a background task that runs ``evict_expired`` periodically."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(
            self._sweep_forever(interval_seconds), name="tenant-db-ttl-sweeper"
        )

    async def stop_sweeper(self) -> None:
        """Cancel the background sweeper, if running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    async def wait_closed(self) -> None:
        """Wait for evicted handles that are still closing in the background."""
        while self._closing:
            await asyncio.gather(*list(self._closing))

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def contains(self, tenant_id: str) -> bool:
        return tenant_id in self._entries

    async def _open_and_store(
        self, tenant_id: str, connection_string: str
    ) -> TenantDatabaseHandle:
        try:
            handle = await self._open_validated(tenant_id, connection_string)
            async with self._lock:
                evicted = self._make_room_locked()
                now = self._clock()
                self._entries[tenant_id] = CachedHandle(
                    tenant_id=tenant_id,
                    handle=handle,
                    created_at=now,
                    last_accessed_at=now,
                )
                size = len(self._entries)
        finally:
            self._inflight.pop(tenant_id, None)

        self._probe.handle_opened(tenant_id, size)
        for entry, reason in evicted:
            self._probe.handle_evicted(entry.tenant_id, reason)
        # Evicted handles close detached from this open
        self._close_in_background([entry for entry, _ in evicted])
        return handle

    async def _open_validated(
        self, tenant_id: str, connection_string: str
    ) -> TenantDatabaseHandle:
        handle: TenantDatabaseHandle | None = None
        try:
            async with asyncio.timeout(self._connect_timeout):
                handle = await self._opener.open(connection_string)
                await handle.ping()
        except TimeoutError as e:
            await self._close_handle_quietly(tenant_id, handle)
            self._probe.handle_open_timed_out(tenant_id, self._connect_timeout)
            raise TenantDatabaseTimeoutError(
                f"Timed out opening database for tenant {tenant_id}",
                tenant_id=tenant_id,
                timeout=self._connect_timeout,
            ) from e
        except Exception as e:
            await self._close_handle_quietly(tenant_id, handle)
            self._probe.handle_open_failed(tenant_id, e)
            raise TenantDatabaseConnectionError(
                f"Could not open database for tenant {tenant_id}",
                tenant_id=tenant_id,
                driver_message=str(e),
            ) from e
        return handle

    def _make_room_locked(self) -> list[tuple[CachedHandle, str]]:
        """Evict until one more entry fits. Caller holds the lock.

        Idle entries go first; if none were idle, the least recently
        accessed tenth of the cache (at least one entry) is dropped.
        """
        if len(self._entries) < self._max_size:
            return []

        evicted = [(entry, "ttl") for entry in self._pop_expired_locked(self._clock())]

        if len(self._entries) >= self._max_size:
            count = max(1, math.ceil(len(self._entries) * LRU_TRIM_FRACTION))
            oldest = sorted(self._entries.values(), key=lambda e: e.last_accessed_at)
            for entry in oldest[:count]:
                del self._entries[entry.tenant_id]
                evicted.append((entry, "lru"))

        return evicted

    def _pop_expired_locked(self, now: float) -> list[CachedHandle]:
        expired = [
            entry
            for entry in self._entries.values()
            if now - entry.last_accessed_at > self._ttl
        ]
        for entry in expired:
            del self._entries[entry.tenant_id]
        return expired

    async def _close_evicted(self, entries: list[CachedHandle], reason: str) -> None:
        for entry in entries:
            self._probe.handle_evicted(entry.tenant_id, reason)
        await asyncio.gather(*(self._close_quietly(entry) for entry in entries))

    def _close_in_background(self, entries: list[CachedHandle]) -> None:
        if not entries:
            return
        task = asyncio.create_task(
            self._close_entries(entries), name="tenant-db-close-evicted"
        )
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_entries(self, entries: list[CachedHandle]) -> None:
        await asyncio.gather(*(self._close_quietly(entry) for entry in entries))

    async def _close_quietly(self, entry: CachedHandle) -> None:
        await self._close_handle_quietly(entry.tenant_id, entry.handle)

    async def _close_handle_quietly(
        self, tenant_id: str, handle: TenantDatabaseHandle | None
    ) -> None:
        if handle is None:
            return
        try:
            await handle.close()
        except Exception as e:
            self._probe.handle_close_failed(tenant_id, e)

    async def _sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.evict_expired()
