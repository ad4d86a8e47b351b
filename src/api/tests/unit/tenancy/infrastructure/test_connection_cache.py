"""Unit tests for TenantConnectionCache.

Time is driven by a fake monotonic clock; network I/O is replaced by
FakeOpener/FakeHandle from the unit conftest.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from tenancy.domain.exceptions import (
    TenantDatabaseConnectionError,
    TenantDatabaseTimeoutError,
)
from tenancy.infrastructure.connection_cache import TenantConnectionCache
from tenancy.infrastructure.observability import ConnectionCacheProbe
from tests.unit.conftest import FakeClock, FakeOpener

URL_A = "postgresql://ec:pw@db:5432/EC_A"
URL_B = "postgresql://ec:pw@db:5432/EC_B"
URL_C = "postgresql://ec:pw@db:5432/EC_C"


@pytest.fixture
def mock_probe() -> MagicMock:
    return MagicMock(spec=ConnectionCacheProbe)


def make_cache(
    opener: FakeOpener,
    clock: FakeClock,
    probe: MagicMock,
    **kwargs,
) -> TenantConnectionCache:
    kwargs.setdefault("max_size", 50)
    kwargs.setdefault("ttl_seconds", 1800)
    kwargs.setdefault("connect_timeout_seconds", 1.0)
    return TenantConnectionCache(opener=opener, clock=clock, probe=probe, **kwargs)


class TestConstruction:
    """Tests for cache configuration validation."""

    def test_rejects_zero_max_size(self, fake_opener):
        """max_size below 1 should be rejected."""
        with pytest.raises(ValueError, match="max_size"):
            TenantConnectionCache(opener=fake_opener, max_size=0)

    def test_rejects_non_positive_ttl(self, fake_opener):
        """A zero TTL should be rejected."""
        with pytest.raises(ValueError):
            TenantConnectionCache(opener=fake_opener, ttl_seconds=0)

    def test_exposes_configuration(self, fake_opener):
        """max_size and ttl_seconds should reflect constructor arguments."""
        cache = TenantConnectionCache(opener=fake_opener, max_size=7, ttl_seconds=90)
        assert cache.max_size == 7
        assert cache.ttl_seconds == 90

    def test_defaults_match_documented_values(self, fake_opener):
        """Defaults should be 50 entries and a 30 minute TTL."""
        cache = TenantConnectionCache(opener=fake_opener)
        assert cache.max_size == 50
        assert cache.ttl_seconds == 1800


class TestAcquire:
    """Tests for cache hits and misses."""

    @pytest.mark.asyncio
    async def test_miss_opens_and_validates_handle(
        self, fake_opener, fake_clock, mock_probe
    ):
        """First acquire should open, ping and store a handle."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        handle = await cache.acquire("a", URL_A)

        assert fake_opener.open_count == 1
        assert handle is fake_opener.opened[0]
        assert handle.connection_string == URL_A
        assert handle.ping_count == 1
        assert cache.contains("a")
        assert cache.size() == 1
        mock_probe.cache_miss.assert_called_once_with("a")
        mock_probe.handle_opened.assert_called_once_with("a", 1)

    @pytest.mark.asyncio
    async def test_hit_returns_same_handle_without_io(
        self, fake_opener, fake_clock, mock_probe
    ):
        """Second acquire should return the cached handle with no open or ping."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        first = await cache.acquire("a", URL_A)
        second = await cache.acquire("a", URL_A)

        assert second is first
        assert fake_opener.open_count == 1
        assert first.ping_count == 1
        mock_probe.cache_hit.assert_called_once_with("a")

    @pytest.mark.asyncio
    async def test_hit_ignores_connection_string(
        self, fake_opener, fake_clock, mock_probe
    ):
        """A cached tenant is served even if a different URL is passed."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        first = await cache.acquire("a", URL_A)
        second = await cache.acquire("a", URL_B)

        assert second is first
        assert fake_opener.open_count == 1

    @pytest.mark.asyncio
    async def test_distinct_tenants_get_distinct_handles(
        self, fake_opener, fake_clock, mock_probe
    ):
        """Each tenant id should map to its own handle."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        handle_a = await cache.acquire("a", URL_A)
        handle_b = await cache.acquire("b", URL_B)

        assert handle_a is not handle_b
        assert sorted(cache.keys()) == ["a", "b"]


class TestSingleFlight:
    """Tests for concurrent first acquisitions of the same tenant."""

    @pytest.mark.asyncio
    async def test_concurrent_acquires_share_one_open(
        self, fake_opener, fake_clock, mock_probe
    ):
        """Concurrent misses for one tenant should open exactly one handle."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        fake_opener.gate = asyncio.Event()

        tasks = [asyncio.create_task(cache.acquire("a", URL_A)) for _ in range(5)]
        await asyncio.sleep(0)
        fake_opener.gate.set()
        handles = await asyncio.gather(*tasks)

        assert fake_opener.open_count == 1
        assert all(h is handles[0] for h in handles)
        assert cache.size() == 1
        mock_probe.cache_miss.assert_called_once_with("a")
        assert mock_probe.joined_inflight_open.call_count == 4

    @pytest.mark.asyncio
    async def test_slow_tenant_does_not_block_other_tenants(
        self, fake_opener, fake_clock, mock_probe
    ):
        """An open in flight for one tenant should not hold the map lock."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        gate = asyncio.Event()
        fake_opener.gate = gate
        slow = asyncio.create_task(cache.acquire("a", URL_A))
        await asyncio.sleep(0)

        # Only the open for "a" waits on the gate
        fake_opener.gate = None
        handle_b = await cache.acquire("b", URL_B)

        assert handle_b.connection_string == URL_B
        assert not slow.done()
        assert cache.keys() == ["b"]

        gate.set()
        handle_a = await slow
        assert handle_a.connection_string == URL_A
        assert sorted(cache.keys()) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_failed_shared_open_fails_every_waiter(
        self, fake_opener, fake_clock, mock_probe
    ):
        """All callers joined on a failing open should see the same error."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        fake_opener.gate = asyncio.Event()
        fake_opener.open_error = OSError("connection refused")

        tasks = [asyncio.create_task(cache.acquire("a", URL_A)) for _ in range(3)]
        await asyncio.sleep(0)
        fake_opener.gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, TenantDatabaseConnectionError) for r in results)
        assert cache.size() == 0
        mock_probe.handle_open_failed.assert_called_once()


class TestOpenFailures:
    """Tests for open and validation failures."""

    @pytest.mark.asyncio
    async def test_open_error_raises_connection_error_and_stores_nothing(
        self, fake_opener, fake_clock, mock_probe
    ):
        """A failing open should raise and leave no entry behind."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        fake_opener.open_error = OSError("connection refused")

        with pytest.raises(TenantDatabaseConnectionError) as exc_info:
            await cache.acquire("a", URL_A)

        assert exc_info.value.tenant_id == "a"
        assert exc_info.value.driver_message == "connection refused"
        assert URL_A not in str(exc_info.value)
        assert cache.size() == 0
        assert not cache.contains("a")

    @pytest.mark.asyncio
    async def test_failed_ping_closes_handle(
        self, fake_opener, fake_clock, mock_probe
    ):
        """A handle that fails validation should be closed and not cached."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        fake_opener.ping_error = OSError("database does not exist")

        with pytest.raises(TenantDatabaseConnectionError):
            await cache.acquire("a", URL_A)

        assert fake_opener.opened[0].closed is True
        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_retry_after_failure_opens_again(
        self, fake_opener, fake_clock, mock_probe
    ):
        """A failed open should not poison later acquisitions."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        fake_opener.open_error = OSError("connection refused")
        with pytest.raises(TenantDatabaseConnectionError):
            await cache.acquire("a", URL_A)

        fake_opener.open_error = None
        handle = await cache.acquire("a", URL_A)

        assert handle is fake_opener.opened[0]
        assert cache.contains("a")

    @pytest.mark.asyncio
    async def test_open_timeout_raises_timeout_error(
        self, fake_opener, fake_clock, mock_probe
    ):
        """An open exceeding the connect timeout should raise a timeout error."""
        cache = make_cache(
            fake_opener, fake_clock, mock_probe, connect_timeout_seconds=0.05
        )
        fake_opener.delay = 1.0

        with pytest.raises(TenantDatabaseTimeoutError) as exc_info:
            await cache.acquire("a", URL_A)

        assert exc_info.value.tenant_id == "a"
        # Let the background open finish unwinding
        await asyncio.sleep(0.1)
        assert cache.size() == 0
        assert fake_opener.open_count == 0

    @pytest.mark.asyncio
    async def test_caller_timeout_does_not_abort_shared_open(
        self, fake_opener, fake_clock, mock_probe
    ):
        """A caller giving up early should leave the open running for others."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        fake_opener.gate = asyncio.Event()

        with pytest.raises(TenantDatabaseTimeoutError) as exc_info:
            await cache.acquire("a", URL_A, timeout=0.01)
        assert exc_info.value.timeout == 0.01

        waiter = asyncio.create_task(cache.acquire("a", URL_A))
        await asyncio.sleep(0)
        fake_opener.gate.set()
        handle = await waiter

        assert fake_opener.open_count == 1
        assert cache.keys() == ["a"]
        assert handle is fake_opener.opened[0]


class TestRelease:
    """Tests for explicit teardown."""

    @pytest.mark.asyncio
    async def test_release_closes_and_removes_entry(
        self, fake_opener, fake_clock, mock_probe
    ):
        """release should close the handle and forget the tenant."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        handle = await cache.acquire("a", URL_A)

        released = await cache.release("a")

        assert released is True
        assert handle.closed is True
        assert cache.size() == 0
        mock_probe.handle_released.assert_called_once_with("a")

    @pytest.mark.asyncio
    async def test_release_unknown_tenant_is_noop(
        self, fake_opener, fake_clock, mock_probe
    ):
        """Releasing a tenant that is not cached should return False."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        assert await cache.release("missing") is False
        mock_probe.handle_released.assert_not_called()

    @pytest.mark.asyncio
    async def test_release_survives_close_error(
        self, fake_opener, fake_clock, mock_probe
    ):
        """A close failure should be logged and the entry still removed."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        handle = await cache.acquire("a", URL_A)
        handle.close_error = RuntimeError("socket already closed")

        assert await cache.release("a") is True

        assert cache.size() == 0
        mock_probe.handle_close_failed.assert_called_once_with(
            "a", handle.close_error
        )

    @pytest.mark.asyncio
    async def test_next_acquire_after_release_opens_fresh_handle(
        self, fake_opener, fake_clock, mock_probe
    ):
        """After release the tenant should be opened again on demand."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        first = await cache.acquire("a", URL_A)
        await cache.release("a")

        second = await cache.acquire("a", URL_A)

        assert second is not first
        assert fake_opener.open_count == 2

    @pytest.mark.asyncio
    async def test_release_all_closes_everything(
        self, fake_opener, fake_clock, mock_probe
    ):
        """release_all should close every handle, even if one close fails."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)
        handles = [
            await cache.acquire("a", URL_A),
            await cache.acquire("b", URL_B),
            await cache.acquire("c", URL_C),
        ]
        handles[1].close_error = RuntimeError("boom")

        count = await cache.release_all()

        assert count == 3
        assert all(h.closed for h in handles)
        assert cache.size() == 0
        mock_probe.all_released.assert_called_once_with(3)
        mock_probe.handle_close_failed.assert_called_once_with(
            "b", handles[1].close_error
        )

    @pytest.mark.asyncio
    async def test_release_all_on_empty_cache(
        self, fake_opener, fake_clock, mock_probe
    ):
        """release_all on an empty cache should return 0."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        assert await cache.release_all() == 0


class TestCapacityEviction:
    """Tests for the TTL-then-LRU eviction policy."""

    @pytest.mark.asyncio
    async def test_stale_entries_evicted_before_lru(
        self, fake_opener, fake_clock, mock_probe
    ):
        """With max=2, two idle entries past the TTL make room for a third."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, max_size=2, ttl_seconds=1.0)

        handle_a = await cache.acquire("a", URL_A)
        handle_b = await cache.acquire("b", URL_B)
        fake_clock.advance(1.1)
        await cache.acquire("c", URL_C)
        await cache.wait_closed()

        assert cache.keys() == ["c"]
        assert handle_a.closed and handle_b.closed
        evictions = [c.args for c in mock_probe.handle_evicted.call_args_list]
        assert sorted(evictions) == [("a", "ttl"), ("b", "ttl")]

    @pytest.mark.asyncio
    async def test_stale_entry_preferred_over_fresh_one(
        self, fake_opener, fake_clock, mock_probe
    ):
        """Only the stale entry should go when one is stale and one is fresh."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, max_size=2, ttl_seconds=10)

        await cache.acquire("a", URL_A)
        fake_clock.advance(8)
        await cache.acquire("b", URL_B)
        fake_clock.advance(3)
        await cache.acquire("c", URL_C)

        assert sorted(cache.keys()) == ["b", "c"]
        mock_probe.handle_evicted.assert_called_once_with("a", "ttl")

    @pytest.mark.asyncio
    async def test_lru_trim_drops_least_recently_accessed(
        self, fake_opener, fake_clock, mock_probe
    ):
        """Without stale entries, the least recently accessed entry goes."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, max_size=2, ttl_seconds=1000)

        await cache.acquire("a", URL_A)
        fake_clock.advance(1)
        handle_b = await cache.acquire("b", URL_B)
        fake_clock.advance(1)
        await cache.acquire("a", URL_A)  # refresh a
        fake_clock.advance(1)
        await cache.acquire("c", URL_C)
        await cache.wait_closed()

        assert sorted(cache.keys()) == ["a", "c"]
        assert handle_b.closed is True
        mock_probe.handle_evicted.assert_called_once_with("b", "lru")

    @pytest.mark.asyncio
    async def test_lru_trim_removes_ten_percent(
        self, fake_opener, fake_clock, mock_probe
    ):
        """At capacity 20 the trim should drop the two oldest entries."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, max_size=20, ttl_seconds=1000)
        for i in range(20):
            await cache.acquire(f"t{i:02d}", f"postgresql://u:p@h/EC_{i}")
            fake_clock.advance(1)

        await cache.acquire("new", URL_A)

        assert cache.size() == 19
        assert not cache.contains("t00")
        assert not cache.contains("t01")
        assert cache.contains("t02")
        assert cache.contains("new")

    @pytest.mark.asyncio
    async def test_size_never_exceeds_max(self, fake_opener, fake_clock, mock_probe):
        """The cache should stay within max_size under sustained misses."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, max_size=3, ttl_seconds=1000)

        for i in range(10):
            await cache.acquire(f"t{i}", URL_A)
            fake_clock.advance(1)
            assert cache.size() <= 3

    @pytest.mark.asyncio
    async def test_entry_at_exact_ttl_is_not_stale(
        self, fake_opener, fake_clock, mock_probe
    ):
        """An entry idle for exactly the TTL is not yet eligible."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, ttl_seconds=10)
        await cache.acquire("a", URL_A)
        fake_clock.advance(10)

        assert await cache.evict_expired() == 0
        fake_clock.advance(0.5)
        assert await cache.evict_expired() == 1


class TestEvictedHandleClosing:
    """Tests for closing evicted handles outside the acquiring request."""

    @pytest.mark.asyncio
    async def test_slow_close_of_evicted_handle_does_not_delay_acquire(
        self, fake_opener, fake_clock, mock_probe
    ):
        """Tenant b gets its handle while tenant a's evicted handle is still closing."""
        cache = make_cache(
            fake_opener, fake_clock, mock_probe, max_size=1, connect_timeout_seconds=0.2
        )
        handle_a = await cache.acquire("a", URL_A)
        close_gate = asyncio.Event()

        async def slow_close() -> None:
            await close_gate.wait()
            handle_a.closed = True

        handle_a.close = slow_close

        handle_b = await cache.acquire("b", URL_B)

        assert handle_b is fake_opener.opened[1]
        assert cache.keys() == ["b"]
        assert handle_a.closed is False

        close_gate.set()
        await cache.wait_closed()
        assert handle_a.closed is True

    @pytest.mark.asyncio
    async def test_release_all_waits_for_background_closes(
        self, fake_opener, fake_clock, mock_probe
    ):
        cache = make_cache(fake_opener, fake_clock, mock_probe, max_size=1)
        handle_a = await cache.acquire("a", URL_A)
        close_gate = asyncio.Event()

        async def slow_close() -> None:
            await close_gate.wait()
            handle_a.closed = True

        handle_a.close = slow_close
        handle_b = await cache.acquire("b", URL_B)

        release = asyncio.create_task(cache.release_all())
        await asyncio.sleep(0)
        assert not release.done()

        close_gate.set()
        assert await release == 1
        assert handle_a.closed is True
        assert handle_b.closed is True


class TestSweeper:
    """Tests for the background TTL sweeper."""

    @pytest.mark.asyncio
    async def test_evict_expired_closes_idle_entries(
        self, fake_opener, fake_clock, mock_probe
    ):
        """evict_expired should drop only idle entries."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, ttl_seconds=10)
        handle_a = await cache.acquire("a", URL_A)
        fake_clock.advance(11)
        await cache.acquire("b", URL_B)

        assert await cache.evict_expired() == 1
        assert handle_a.closed is True
        assert cache.keys() == ["b"]

    @pytest.mark.asyncio
    async def test_sweeper_runs_periodically(self, fake_opener, fake_clock, mock_probe):
        """The sweeper task should evict stale entries without an acquire."""
        cache = make_cache(fake_opener, fake_clock, mock_probe, ttl_seconds=10)
        await cache.acquire("a", URL_A)
        fake_clock.advance(20)

        cache.start_sweeper(0.01)
        await asyncio.sleep(0.05)
        await cache.stop_sweeper()

        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_start_sweeper_rejects_non_positive_interval(
        self, fake_opener, fake_clock, mock_probe
    ):
        """A zero interval should be rejected."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        with pytest.raises(ValueError):
            cache.start_sweeper(0)

    @pytest.mark.asyncio
    async def test_stop_sweeper_without_start_is_noop(
        self, fake_opener, fake_clock, mock_probe
    ):
        """stop_sweeper should be safe when no sweeper is running."""
        cache = make_cache(fake_opener, fake_clock, mock_probe)

        await cache.stop_sweeper()
