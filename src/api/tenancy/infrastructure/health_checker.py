"""Short-lived liveness probe for tenant databases.

Each probe opens its own unpooled engine and disposes of it afterwards;
it never goes through the connection cache.
"""

from __future__ import annotations

import asyncio
import time

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from tenancy.domain.naming import mask_connection_string
from tenancy.domain.results import ConnectionTestResult, FailureKind
from tenancy.infrastructure.observability import (
    DefaultHealthCheckProbe,
    HealthCheckProbe,
)
from tenancy.infrastructure.urls import to_async_url

DEFAULT_TIMEOUT_SECONDS = 10.0


class HealthChecker:
    """ConnectionTester backed by SQLAlchemy and asyncpg."""

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        probe: HealthCheckProbe | None = None,
    ):
        self._timeout = timeout_seconds
        self._probe = probe or DefaultHealthCheckProbe()

    async def test_connection(
        self, connection_string: str, timeout: float | None = None
    ) -> ConnectionTestResult:
        """Open a connection, run ``SELECT 1`` and close it.

        Never raises for connection problems; the outcome is in the result.

        Args:
            connection_string: Database to probe
            timeout: Bound for this probe (defaults to the checker's timeout)

        Returns:
            ConnectionTestResult with latency on success, error and kind on failure
        """
        bound = self._timeout if timeout is None else timeout
        target = mask_connection_string(connection_string)
        engine: AsyncEngine | None = None
        started = time.perf_counter()

        try:
            url, connect_args = to_async_url(connection_string)
            connect_args["timeout"] = bound
            engine = create_async_engine(
                url, poolclass=NullPool, connect_args=connect_args
            )
            async with asyncio.timeout(bound):
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
        except TimeoutError:
            error = f"Connection timed out after {bound:g}s"
            self._probe.connection_test_failed(target, error, FailureKind.TIMEOUT)
            return ConnectionTestResult(
                success=False, error=error, failure_kind=FailureKind.TIMEOUT
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            self._probe.connection_test_failed(target, error, FailureKind.CONNECT)
            return ConnectionTestResult(
                success=False, error=error, failure_kind=FailureKind.CONNECT
            )
        finally:
            if engine is not None:
                await self._dispose_quietly(engine, target)

        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        self._probe.connection_test_succeeded(target, latency_ms)
        return ConnectionTestResult(success=True, latency_ms=latency_ms)

    async def _dispose_quietly(self, engine: AsyncEngine, target: str) -> None:
        try:
            await engine.dispose()
        except Exception as e:
            self._probe.probe_close_failed(target, e)
