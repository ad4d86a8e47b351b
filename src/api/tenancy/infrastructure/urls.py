"""Connection-string helpers for tenant databases.

Stored connection strings use the portable ``postgresql://`` form with a
libpq-style ``sslmode`` parameter. The async engines need the asyncpg
driver name and take SSL as a connect argument instead.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

ASYNC_DRIVERNAME = "postgresql+asyncpg"

_POSTGRES_DRIVERNAMES = {
    "postgres",
    "postgresql",
    "postgresql+psycopg2",
    "postgresql+psycopg",
    "postgresql+asyncpg",
}


def to_async_url(connection_string: str) -> tuple[URL, dict[str, Any]]:
    """Convert a stored connection string into an asyncpg URL.

    Args:
        connection_string: ``postgres://``, ``postgresql://`` or driver-qualified URL

    Returns:
        Tuple of (asyncpg URL, connect_args for create_async_engine)

    Raises:
        ValueError: If the string is not a PostgreSQL URL
    """
    try:
        url = make_url(connection_string)
    except ArgumentError as e:
        raise ValueError("Malformed database connection string") from e

    if url.drivername not in _POSTGRES_DRIVERNAMES:
        raise ValueError(f"Unsupported database driver: {url.drivername}")

    query = dict(url.query)
    connect_args: dict[str, Any] = {}
    sslmode = query.pop("sslmode", None)
    if sslmode:
        # asyncpg accepts the libpq sslmode names directly
        connect_args["ssl"] = sslmode if isinstance(sslmode, str) else sslmode[-1]

    return url.set(drivername=ASYNC_DRIVERNAME, query=query), connect_args

