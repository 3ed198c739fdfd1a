"""PostgreSQL-backed subdomain existence lookup (asyncpg)."""

from __future__ import annotations

import asyncio
from typing import Any

import asyncpg

from ..errors import ExistenceLookupError

SUBDOMAIN_LOOKUP_SQL = "select id from jobs where subdomain = $1 limit 1"

_LOOKUP_FAILURES = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


class SQLExistenceLookup:
    """ExistenceLookup that queries the jobs table directly.

    The connection pool is created on first use so that app startup does not
    block on the database.

    Args:
        database_url: PostgreSQL DSN.
        pool: Pre-built pool (anything with ``fetchrow`` and ``close``).
        timeout_seconds: Deadline applied to each query.
        pool_size: Maximum connections when the pool is created here.
    """

    name = "sql"

    def __init__(
        self,
        database_url: str = "",
        *,
        pool: Any | None = None,
        timeout_seconds: float = 10.0,
        pool_size: int = 10,
    ) -> None:
        if not database_url and pool is None:
            raise ValueError("database_url is required")
        self._database_url = database_url
        self._pool = pool
        self._timeout_seconds = float(timeout_seconds)
        self._pool_size = pool_size
        self._pool_lock = asyncio.Lock()

    async def _get_pool(self) -> Any:
        if self._pool is not None:
            return self._pool
        async with self._pool_lock:
            if self._pool is None:
                self._pool = await asyncpg.create_pool(
                    self._database_url,
                    min_size=1,
                    max_size=self._pool_size,
                    timeout=self._timeout_seconds,
                )
        return self._pool

    async def exists(self, subdomain: str) -> bool:
        try:
            pool = await self._get_pool()
            row = await pool.fetchrow(
                SUBDOMAIN_LOOKUP_SQL,
                subdomain,
                timeout=self._timeout_seconds,
            )
        except _LOOKUP_FAILURES as exc:
            raise ExistenceLookupError(subdomain, f"jobs query failed: {exc!r}") from exc
        return row is not None

    async def aclose(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
