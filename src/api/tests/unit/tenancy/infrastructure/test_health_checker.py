"""Unit tests for HealthChecker."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tenancy.domain.results import FailureKind
from tenancy.infrastructure.health_checker import HealthChecker
from tenancy.infrastructure.observability import HealthCheckProbe

URL = "postgresql://ec:s3cret@db:5432/EC_Acme"
MASKED = "postgresql://ec:***@db:5432/EC_Acme"


@pytest.fixture
def mock_conn() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_engine(mock_conn) -> MagicMock:
    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = mock_conn
    engine.connect.return_value.__aexit__.return_value = False
    engine.dispose = AsyncMock()
    return engine


@pytest.fixture
def mock_probe() -> MagicMock:
    return MagicMock(spec=HealthCheckProbe)


@pytest.fixture
def patched_engine(mock_engine):
    with patch(
        "tenancy.infrastructure.health_checker.create_async_engine",
        return_value=mock_engine,
    ) as create:
        yield create


class TestTestConnection:
    """Tests for the short-lived liveness probe."""

    @pytest.mark.asyncio
    async def test_success_reports_latency(
        self, patched_engine, mock_engine, mock_conn, mock_probe
    ):
        """A reachable database should yield success with a latency."""
        checker = HealthChecker(timeout_seconds=5, probe=mock_probe)

        result = await checker.test_connection(URL)

        assert result.success is True
        assert result.latency_ms is not None
        assert result.latency_ms >= 0
        assert result.error is None
        mock_conn.execute.assert_awaited_once()
        mock_engine.dispose.assert_awaited_once()
        mock_probe.connection_test_succeeded.assert_called_once_with(
            MASKED, result.latency_ms
        )

    @pytest.mark.asyncio
    async def test_engine_is_unpooled_with_timeout(self, patched_engine, mock_probe):
        """The probe engine should use NullPool and the bound as connect timeout."""
        from sqlalchemy.pool import NullPool

        checker = HealthChecker(timeout_seconds=5, probe=mock_probe)

        await checker.test_connection(URL, timeout=2)

        kwargs = patched_engine.call_args.kwargs
        assert kwargs["poolclass"] is NullPool
        assert kwargs["connect_args"]["timeout"] == 2

    @pytest.mark.asyncio
    async def test_connect_failure_is_reported_not_raised(
        self, patched_engine, mock_engine, mock_probe
    ):
        """Connection errors should come back in the result."""
        mock_engine.connect.return_value.__aenter__.side_effect = OSError(
            "connection refused"
        )
        checker = HealthChecker(probe=mock_probe)

        result = await checker.test_connection(URL)

        assert result.success is False
        assert result.error == "connection refused"
        assert result.failure_kind == FailureKind.CONNECT
        mock_engine.dispose.assert_awaited_once()
        mock_probe.connection_test_failed.assert_called_once_with(
            MASKED, "connection refused", FailureKind.CONNECT
        )

    @pytest.mark.asyncio
    async def test_timeout_is_distinguished(
        self, patched_engine, mock_engine, mock_conn, mock_probe
    ):
        """A query exceeding the bound should be reported as a timeout."""

        async def slow_execute(*args, **kwargs):
            await asyncio.sleep(1)

        mock_conn.execute.side_effect = slow_execute
        checker = HealthChecker(probe=mock_probe)

        result = await checker.test_connection(URL, timeout=0.01)

        assert result.success is False
        assert result.failure_kind == FailureKind.TIMEOUT
        assert result.error == "Connection timed out after 0.01s"
        mock_engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_url_is_connect_failure(self, patched_engine, mock_probe):
        """An unusable connection string should fail without creating an engine."""
        checker = HealthChecker(probe=mock_probe)

        result = await checker.test_connection("mysql://u:p@db/x")

        assert result.success is False
        assert result.failure_kind == FailureKind.CONNECT
        patched_engine.assert_not_called()

    @pytest.mark.asyncio
    async def test_dispose_failure_is_logged(
        self, patched_engine, mock_engine, mock_probe
    ):
        """A failing dispose should not change a successful outcome."""
        error = RuntimeError("dispose failed")
        mock_engine.dispose.side_effect = error
        checker = HealthChecker(probe=mock_probe)

        result = await checker.test_connection(URL)

        assert result.success is True
        mock_probe.probe_close_failed.assert_called_once_with(MASKED, error)

    @pytest.mark.asyncio
    async def test_password_never_reaches_probe(
        self, patched_engine, mock_engine, mock_probe
    ):
        """Every probe event should carry the masked target."""
        mock_engine.connect.return_value.__aenter__.side_effect = OSError("nope")
        checker = HealthChecker(probe=mock_probe)

        await checker.test_connection(URL)

        for call in mock_probe.method_calls:
            assert "s3cret" not in repr(call)
